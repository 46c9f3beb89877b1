# backend/routes/movements.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.movement import MovementType
from models.users import User
from repositories.movements import MovementRepository
from repositories.products import ProductRepository
from services.ledger import MovementLedger, product_locks
from utils.audit import client_ip, write_log
from utils.dates import parse_iso
from utils.tokenJWT import require_staff
import schemas.movement as movement_schemas

router = APIRouter(prefix="/movements", tags=["Movements"])


def get_ledger(db: Session = Depends(get_db)) -> MovementLedger:
    return MovementLedger(
        ProductRepository(db), MovementRepository(db), locks=product_locks, transaction=db
    )


@router.get("", response_model=List[movement_schemas.MovementResponse])
def list_movements(
    q: Optional[str] = Query(None, description="Search by product description or user"),
    ledger: MovementLedger = Depends(get_ledger),
    current_user: User = Depends(require_staff),
):
    return ledger.list_all(search=q)


@router.get("/by-product/{product_id}", response_model=List[movement_schemas.MovementResponse])
def list_movements_by_product(
    product_id: int,
    ledger: MovementLedger = Depends(get_ledger),
    current_user: User = Depends(require_staff),
):
    return ledger.list_by_product(product_id)


@router.get("/by-type/{movement_type}", response_model=List[movement_schemas.MovementResponse])
def list_movements_by_type(
    movement_type: MovementType,
    ledger: MovementLedger = Depends(get_ledger),
    current_user: User = Depends(require_staff),
):
    return ledger.list_by_type(movement_type)


@router.get("/by-date", response_model=List[movement_schemas.MovementResponse])
def list_movements_by_date(
    start: str = Query(..., description="ISO date or datetime"),
    end: str = Query(..., description="ISO date or datetime, inclusive"),
    ledger: MovementLedger = Depends(get_ledger),
    current_user: User = Depends(require_staff),
):
    return ledger.list_by_date_range(parse_iso(start), parse_iso(end, end_of_day=True))


@router.get("/{movement_id}", response_model=movement_schemas.MovementResponse)
def get_movement(
    movement_id: int,
    ledger: MovementLedger = Depends(get_ledger),
    current_user: User = Depends(require_staff),
):
    return ledger.get(movement_id)


@router.post("", response_model=movement_schemas.MovementResponse, status_code=status.HTTP_201_CREATED)
def create_movement(
    payload: movement_schemas.MovementCreate,
    request: Request,
    db: Session = Depends(get_db),
    ledger: MovementLedger = Depends(get_ledger),
    current_user: User = Depends(require_staff),
):
    movement = ledger.create(payload.model_dump(), user=current_user.username)
    write_log(
        db, user_id=current_user.id, action="MOVEMENT_CREATE", resource="movements",
        ip=client_ip(request),
        meta={"id": movement.id, "product_id": movement.product_id, "type": movement.type, "quantity": movement.quantity},
    )
    return movement


@router.patch("/{movement_id}", response_model=movement_schemas.MovementResponse)
def update_movement(
    movement_id: int,
    payload: movement_schemas.MovementUpdate,
    request: Request,
    db: Session = Depends(get_db),
    ledger: MovementLedger = Depends(get_ledger),
    current_user: User = Depends(require_staff),
):
    changes = payload.model_dump(exclude_unset=True)
    movement = ledger.update(movement_id, changes)
    write_log(
        db, user_id=current_user.id, action="MOVEMENT_UPDATE", resource="movements",
        ip=client_ip(request), meta={"id": movement_id, "fields": sorted(changes)},
    )
    return movement


@router.delete("/{movement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_movement(
    movement_id: int,
    request: Request,
    db: Session = Depends(get_db),
    ledger: MovementLedger = Depends(get_ledger),
    current_user: User = Depends(require_staff),
):
    ledger.delete(movement_id)
    write_log(
        db, user_id=current_user.id, action="MOVEMENT_DELETE", resource="movements",
        ip=client_ip(request), meta={"id": movement_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
