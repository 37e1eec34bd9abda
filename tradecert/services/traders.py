# tradecert/services/traders.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from tradecert.core import clock
from tradecert.core.errors import Conflict, Forbidden, NotFound
from tradecert.core.rbac import Identity, ensure_self_or_admin
from tradecert.core.security import normalize_email
from tradecert.crud.trader import trader_crud
from tradecert.db.session import unit_of_work
from tradecert.models.trader import Trader
from tradecert.schemas.trader import TraderDetailOut, TraderOut, TraderUpdate, TrainingOut, VerifyIdOut
from tradecert.services.trader_status import certification_status


def _load(db: Session, user_id: int) -> Trader:
    trader = trader_crud.get_by_user_id(db, user_id)
    if not trader:
        raise NotFound("TRADER_NOT_FOUND", "Trader not found.")
    return trader


def trader_detail(trader: Trader, now: Optional[datetime] = None) -> TraderDetailOut:
    base = TraderOut.model_validate(trader).model_dump()
    trainings = sorted(trader.trainings, key=lambda t: t.date)
    return TraderDetailOut(
        **base,
        certification_status=certification_status(trader, now or clock.now()),
        trainings=[TrainingOut.model_validate(t) for t in trainings],
    )


def get_trader(db: Session, identity: Identity, *, user_id: int) -> TraderDetailOut:
    ensure_self_or_admin(identity, user_id)
    return trader_detail(_load(db, user_id))


def update_profile(db: Session, identity: Identity, *, user_id: int, data: TraderUpdate) -> Trader:
    ensure_self_or_admin(identity, user_id, "You can only update your own profile.")
    trader = _load(db, user_id)
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in fields:
        fields["email"] = normalize_email(fields["email"])
    if "phone_number" in fields:
        other = trader_crud.get_by_phone(db, fields["phone_number"])
        if other and other.id != trader.id:
            raise Conflict("PHONE_EXISTS", "Phone number already exists.")

    with unit_of_work(db, "update_profile"):
        trader_crud.update(db, trader, fields)

    logger.info("trader {} profile updated: {}", trader.id, sorted(fields))
    return trader


def soft_delete(db: Session, *, user_id: int) -> Trader:
    trader = _load(db, user_id)
    with unit_of_work(db, "soft_delete_trader"):
        trader.is_deleted = True
        db.flush()
    logger.info("trader {} deactivated", trader.id)
    return trader


def verify_id_card(db: Session, identity: Identity, *, user_id: int, id_card: str,
                   now: Optional[datetime] = None) -> VerifyIdOut:
    ensure_self_or_admin(identity, user_id)
    trader = trader_crud.get_by_id_card(db, id_card.strip())
    if not trader:
        raise NotFound("ID_CARD_NOT_FOUND", "ID card not found.")
    if trader.user_id != user_id:
        logger.warning("id card mismatch for user {}", user_id)
        raise Forbidden("ID_CARD_MISMATCH", "ID card does not match this user.")
    return VerifyIdOut(user_id=user_id, verified_at=clock.to_local(now) if now else clock.now())
