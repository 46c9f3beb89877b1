# backend/routes/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from repositories.categories import CategoryRepository
from repositories.products import ProductRepository
from utils.audit import client_ip, write_log
from utils.tokenJWT import require_staff
import schemas.product as product_schemas

router = APIRouter(tags=["Products"])


# =========================
# PRODUCT LIST
# =========================
@router.get("/products", response_model=List[product_schemas.ProductResponse])
def list_products(
    q: Optional[str] = Query(None, description="Search by description or category name"),
    category_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return ProductRepository(db).list(search=q, category_id=category_id)


@router.get("/categories/{category_id}/products", response_model=List[product_schemas.ProductResponse])
def list_category_products(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    CategoryRepository(db).get_by_id(category_id)
    return ProductRepository(db).list(category_id=category_id)


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/products/{product_id}", response_model=product_schemas.ProductResponse)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return ProductRepository(db).get_by_id(product_id)


# =========================
# CREATE
# =========================
@router.post("/products", response_model=product_schemas.ProductResponse, status_code=status.HTTP_201_CREATED)
def add_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    CategoryRepository(db).get_by_id(payload.category_id)
    product = ProductRepository(db).create(payload.model_dump())
    db.commit()

    write_log(
        db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
        ip=client_ip(request), meta={"id": product.id, "stock": product.stock},
    )
    return product


# =========================
# PARTIAL EDIT (stock excluded)
# =========================
@router.patch("/products/{product_id}", response_model=product_schemas.ProductResponse)
def edit_product(
    product_id: int,
    payload: product_schemas.ProductEditRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    products = ProductRepository(db)
    products.get_by_id(product_id)
    if "category_id" in changes:
        CategoryRepository(db).get_by_id(changes["category_id"])

    product = products.update(product_id, changes)
    db.commit()

    write_log(
        db, user_id=current_user.id, action="PRODUCT_EDIT", resource="products",
        ip=client_ip(request), meta={"id": product_id, "fields": sorted(changes)},
    )
    return product


# =========================
# DELETE
# =========================
@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    ProductRepository(db).delete(product_id)
    db.commit()
    write_log(
        db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
        ip=client_ip(request), meta={"id": product_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
