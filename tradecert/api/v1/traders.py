# tradecert/api/v1/traders.py
from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from tradecert.api.deps import get_current_user, get_db, require_admin
from tradecert.core.rbac import Identity
from tradecert.crud.trader import trader_crud
from tradecert.schemas.trader import TraderDetailOut, TraderOut, TraderUpdate, VerifyIdIn, VerifyIdOut
from tradecert.services import traders

router = APIRouter()

@router.get("", response_model=List[TraderOut])
def list_traders(
    include_deleted: bool = Query(False),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return trader_crud.list(db, include_deleted=include_deleted)

@router.post("/verify-id", response_model=VerifyIdOut)
def verify_id(payload: VerifyIdIn, db: Session = Depends(get_db), identity: Identity = Depends(get_current_user)):
    return traders.verify_id_card(db, identity, user_id=payload.user_id, id_card=payload.id_card)

@router.get("/{user_id}", response_model=TraderDetailOut)
def get_trader(user_id: int = Path(..., ge=1), db: Session = Depends(get_db),
               identity: Identity = Depends(get_current_user)):
    return traders.get_trader(db, identity, user_id=user_id)

@router.patch("/{user_id}", response_model=TraderOut)
def update_profile(payload: TraderUpdate, user_id: int = Path(..., ge=1), db: Session = Depends(get_db),
                   identity: Identity = Depends(get_current_user)):
    return traders.update_profile(db, identity, user_id=user_id, data=payload)

@router.delete("/{user_id}", response_model=TraderOut)
def delete_trader(user_id: int = Path(..., ge=1), db: Session = Depends(get_db),
                  _: Identity = Depends(require_admin)):
    return traders.soft_delete(db, user_id=user_id)
