# backend/routes/users.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.user import UserCreate, UserResponse, UserUpdate
from services.exceptions import DuplicateUsername, UserNotFound
from utils.audit import client_ip, write_log
from utils.hashing import get_password_hash
from utils.tokenJWT import require_admin

router = APIRouter(prefix="/users", tags=["Users"])


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserNotFound(user_id)
    return user


def _ensure_username_free(db: Session, username: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(User).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise DuplicateUsername(username)


# Retrieve accounts, newest first, optionally filtered by username (Admin only)
@router.get("", response_model=List[UserResponse])
def list_users(
    q: Optional[str] = Query(None, description="Search by username"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    query = db.query(User)
    if q:
        query = query.filter(User.username.ilike(f"%{q}%"))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return _get_user(db, user_id)


# Create a panel account (Admin only)
@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    username = payload.username.strip()
    _ensure_username_free(db, username)

    new_user = User(username=username, password_hash=get_password_hash(payload.password), role=payload.role)
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    write_log(
        db, user_id=current_user.id, action="USER_CREATE", resource="users",
        ip=client_ip(request), meta={"id": new_user.id, "username": new_user.username},
    )
    return new_user


# Update username, password or role (Admin only)
@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = _get_user(db, user_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    if "username" in changes:
        changes["username"] = changes["username"].strip()
        _ensure_username_free(db, changes["username"], exclude_id=user.id)
        user.username = changes["username"]
    if "password" in changes:
        user.password_hash = get_password_hash(changes["password"])
    if "role" in changes:
        if user.id == current_user.id and changes["role"] != "admin":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove your own admin role")
        user.role = changes["role"]

    db.commit()
    db.refresh(user)

    write_log(
        db, user_id=current_user.id, action="USER_UPDATE", resource="users",
        ip=client_ip(request), meta={"id": user.id, "fields": sorted(changes)},
    )
    return user


# Delete a user account (Admin only)
@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    user = _get_user(db, user_id)

    # Prevent self-deletion
    if user.id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")

    username = user.username
    db.delete(user)
    db.commit()

    write_log(
        db, user_id=current_user.id, action="USER_DELETE", resource="users",
        ip=client_ip(request), meta={"id": user_id, "username": username},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
