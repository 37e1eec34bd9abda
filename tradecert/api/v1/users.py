# tradecert/api/v1/users.py
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from tradecert.api.deps import get_current_user, get_db, require_admin
from tradecert.core.errors import NotFound
from tradecert.core.rbac import Identity, ensure_self_or_admin
from tradecert.crud.user import user_crud
from tradecert.schemas.user import StatusChangeIn, UserDetailOut, UserOut
from tradecert.services import accounts

router = APIRouter()

@router.get("", response_model=List[UserOut])
def list_users(
    role: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return user_crud.list(db, role=role, status=status)

@router.get("/{user_id}", response_model=UserDetailOut)
def get_user(
    user_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_user),
):
    ensure_self_or_admin(identity, user_id)
    user = user_crud.get(db, user_id)
    if not user:
        raise NotFound("USER_NOT_FOUND", "User not found.")
    return user

@router.put("/{user_id}/status", response_model=UserDetailOut)
def change_status(
    payload: StatusChangeIn,
    user_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    return accounts.change_user_status(db, admin, user_id=user_id, status=payload.status, reason=payload.reason)
