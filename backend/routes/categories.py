# backend/routes/categories.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from repositories.categories import CategoryRepository
from utils.audit import client_ip, write_log
from utils.tokenJWT import require_staff
from schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=List[CategoryResponse])
def list_categories(
    q: Optional[str] = Query(None, description="Search by name or description"),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return CategoryRepository(db).list(search=q, active_only=active_only)


# Categories offered when creating a product
@router.get("/active", response_model=List[CategoryResponse])
def list_active_categories(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return CategoryRepository(db).list(active_only=True)


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return CategoryRepository(db).get_by_id(category_id)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    category = CategoryRepository(db).create(payload.model_dump())
    db.commit()
    write_log(
        db, user_id=current_user.id, action="CATEGORY_CREATE", resource="categories",
        ip=client_ip(request), meta={"id": category.id, "name": category.name},
    )
    return category


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    changes = payload.model_dump(exclude_unset=True)
    # name and is_active are required columns
    for field in ("name", "is_active"):
        if changes.get(field, "") is None:
            changes.pop(field)

    category = CategoryRepository(db).update(category_id, changes)
    db.commit()
    write_log(
        db, user_id=current_user.id, action="CATEGORY_UPDATE", resource="categories",
        ip=client_ip(request), meta={"id": category_id, "fields": sorted(changes)},
    )
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    CategoryRepository(db).delete(category_id)
    db.commit()
    write_log(
        db, user_id=current_user.id, action="CATEGORY_DELETE", resource="categories",
        ip=client_ip(request), meta={"id": category_id},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
