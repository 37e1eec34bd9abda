# tradecert/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tradecert.api.deps import get_current_user, get_db
from tradecert.core.rbac import Identity
from tradecert.schemas.token import AuthOut
from tradecert.schemas.trader import TraderOut
from tradecert.schemas.user import LoginIn, MeOut, RegisterIn, UserOut
from tradecert.services import accounts

router = APIRouter()

@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    user, trader, token = accounts.register_account(db, payload)
    return AuthOut(access_token=token, user=UserOut.model_validate(user), trader=TraderOut.model_validate(trader))

@router.post("/login", response_model=AuthOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user, trader, token = accounts.login(db, email=payload.email, password=payload.password)
    return AuthOut(
        access_token=token,
        user=UserOut.model_validate(user),
        trader=TraderOut.model_validate(trader) if trader else None,
    )

@router.get("/me", response_model=MeOut)
def me(identity: Identity = Depends(get_current_user)):
    return MeOut(user_id=identity.user_id, email=identity.email, role=identity.role)
