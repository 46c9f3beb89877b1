# backend/main.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load .env before settings are read
load_dotenv()

from config import settings
from database import init_db
from services.exceptions import InventoryError

from routes.auth import router as auth_router
from routes.users import router as users_router
from routes.logs import router as logs_router
from routes.categories import router as categories_router
from routes.products import router as products_router
from routes.movements import router as movements_router

# Logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("inventory")

# Init
init_db()

app = FastAPI(title="Inventory Admin API", version="1.0.0")

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# Domain errors from repositories and the movement ledger
@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("%s %s failed", request.method, request.url.path)
        raise

    duration = round((time.time() - start_time) * 1000, 2)
    logger.info(
        "%s %s Status: %s Time: %sms",
        request.method, request.url.path, response.status_code, duration,
    )
    return response


# Routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(logs_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(movements_router)


@app.get("/")
def read_root():
    return {"message": "Inventory Admin API is running"}
