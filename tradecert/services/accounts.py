# tradecert/services/accounts.py
"""Account registration, login and account-status administration."""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from loguru import logger
from sqlalchemy.orm import Session

from tradecert.core import clock
from tradecert.core.errors import Conflict, Forbidden, NotFound, Unauthorized
from tradecert.core.rbac import Identity
from tradecert.core.security import ensure_password_policy, hash_password, normalize_email, verify_and_maybe_upgrade
from tradecert.core.tokens import create_access_token
from tradecert.crud.trader import trader_crud
from tradecert.crud.user import user_crud
from tradecert.db.session import unit_of_work
from tradecert.models.trader import Trader, zero_display
from tradecert.models.user import AccountStatus, User, UserRole
from tradecert.schemas.user import RegisterIn


def issue_token(user: User) -> str:
    return create_access_token(user_id=user.id, email=user.email, role=user.role)


def register_account(db: Session, data: RegisterIn) -> Tuple[User, Trader, str]:
    ensure_password_policy(data.password)
    email = normalize_email(data.email)
    id_card = data.id_card.strip()
    phone = data.phone_number.strip()

    if user_crud.get_by_email(db, email):
        raise Conflict("EMAIL_EXISTS", "Email already exists.")
    if trader_crud.get_by_id_card(db, id_card):
        raise Conflict("ID_CARD_EXISTS", "ID card already exists.")
    if trader_crud.get_by_phone(db, phone):
        raise Conflict("PHONE_EXISTS", "Phone number already exists.")

    with unit_of_work(db, "register_account"):
        user = user_crud.create(
            db, email=email, hashed_password=hash_password(data.password),
            role=UserRole.user.value, name=data.name.strip(),
        )
        trader = trader_crud.add(db, Trader(
            user_id=user.id,
            company=data.company.strip(),
            name=data.name.strip(),
            id_card=id_card,
            email=email,
            phone_number=phone,
            duration_display=zero_display(),
            remaining_time_display=zero_display(),
        ))

    logger.info("account registered user={} trader={}", user.id, trader.id)
    return user, trader, issue_token(user)


def login(db: Session, *, email: str, password: str, now: Optional[datetime] = None) -> Tuple[User, Optional[Trader], str]:
    user = user_crud.get_by_email(db, normalize_email(email))
    if not user:
        raise NotFound("USER_NOT_FOUND", "User not found.")

    ok, new_hash = verify_and_maybe_upgrade(password or "", user.hashed_password)
    if not ok:
        logger.warning("bad password for user {}", user.id)
        raise Unauthorized("INVALID_PASSWORD", "Invalid password.")
    if user.status != AccountStatus.active.value:
        raise Forbidden(f"ACCOUNT_{user.status.upper()}", f"Account is {user.status.lower()}.")

    with unit_of_work(db, "login"):
        if new_hash:
            user.hashed_password = new_hash
        user.last_login_at = now or clock.now()
        db.flush()

    return user, trader_crud.get_by_user_id(db, user.id), issue_token(user)


def change_user_status(db: Session, admin: Identity, *, user_id: int, status: str, reason: str,
                       now: Optional[datetime] = None) -> User:
    if admin.user_id == user_id:
        raise Forbidden("SELF_STATUS_CHANGE", "Administrators cannot change their own status.")
    user = user_crud.get(db, user_id)
    if not user:
        raise NotFound("USER_NOT_FOUND", "User not found.")

    with unit_of_work(db, "change_user_status"):
        user_crud.set_status(db, user, status=status, reason=reason, updated_by=admin.user_id, at=now or clock.now())

    logger.info("user {} status -> {} by admin {}", user.id, status, admin.user_id)
    return user
