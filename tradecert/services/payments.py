# tradecert/services/payments.py
"""Payment ledger.

Rows are created when a checkout session starts and move through
created -> completed | failed, completed -> refunded as gateway events
arrive. Rows are never deleted.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from tradecert.core.config import settings
from tradecert.core.errors import NotFound, ValidationFailed
from tradecert.core.rbac import Identity, ensure_self_or_admin
from tradecert.crud.payment import payment_crud
from tradecert.db.session import unit_of_work
from tradecert.models.payment import Payment, PaymentStatus
from tradecert.schemas.payment import CheckoutIn, GatewayEvent
from tradecert.services.checkout import StripeClient


def _metadata_int(meta: Dict[str, Any], *keys: str) -> int:
    for key in keys:
        if meta.get(key) not in (None, ""):
            return int(meta[key])
    return 0


def create_checkout_session(db: Session, identity: Identity, data: CheckoutIn, stripe: StripeClient) -> Dict[str, Any]:
    if not data.stripe_price_id or data.metadata is None:
        raise ValidationFailed("MISSING_FIELDS", "Missing required fields.")
    ensure_self_or_admin(identity, data.metadata.user_id, "You can only pay for your own registration.")

    metadata = data.metadata.model_dump()
    session = stripe.create_checkout_session(price_id=data.stripe_price_id, metadata=metadata)

    with unit_of_work(db, "create_checkout_session"):
        payment_crud.add(db, Payment(
            session_id=session["id"],
            user_id=data.metadata.user_id,
            course_id=data.metadata.course_id,
            amount=0,
            currency=settings.DEFAULT_CURRENCY,
            status=PaymentStatus.created,
            meta=metadata,
        ))

    logger.info("checkout session {} opened for user {} course {}",
                session["id"], data.metadata.user_id, data.metadata.course_id)
    return session


def sync_checkout_session(db: Session, session_id: str, stripe: StripeClient) -> Dict[str, Any]:
    session = stripe.retrieve_checkout_session(session_id)
    if session.get("payment_status") == "paid":
        payment = payment_crud.get_by_session(db, session_id)
        if payment:
            details = session.get("customer_details") or {}
            with unit_of_work(db, "sync_checkout_session"):
                payment.status = PaymentStatus.completed
                payment.amount = session.get("amount_total") or 0
                payment.customer_email = details.get("email")
                payment.customer_name = details.get("name")
                payment.payment_intent = session.get("payment_intent")
                db.flush()
            logger.info("payment {} completed via session sync", session_id)
        else:
            logger.warning("paid session {} has no ledger row", session_id)
    return session


# -------------------------- gateway events --------------------------

def _on_session_completed(db: Session, obj: Dict[str, Any]) -> Payment:
    details = obj.get("customer_details") or {}
    methods = obj.get("payment_method_types") or []
    values = dict(
        amount=obj.get("amount_total") or 0,
        currency=(obj.get("currency") or settings.DEFAULT_CURRENCY),
        status=PaymentStatus.completed,
        customer_email=details.get("email") or "",
        customer_name=details.get("name") or "",
        payment_method=methods[0] if methods else None,
        payment_intent=obj.get("payment_intent"),
    )
    payment = payment_crud.get_by_session(db, obj["id"])
    if payment:
        payment_crud.update(db, payment, values)
        return payment

    meta = obj.get("metadata") or {}
    if obj.get("created"):
        values["created_at"] = datetime.fromtimestamp(obj["created"], tz=timezone.utc)
    return payment_crud.add(db, Payment(
        session_id=obj["id"],
        user_id=_metadata_int(meta, "user_id", "userId"),
        course_id=_metadata_int(meta, "course_id", "courseId"),
        meta=meta,
        **values,
    ))


def _on_session_expired(db: Session, obj: Dict[str, Any]) -> Optional[Payment]:
    payment = payment_crud.get_by_session(db, obj.get("id", ""))
    if payment:
        payment.status = PaymentStatus.failed
        db.flush()
    return payment


def _on_charge_refunded(db: Session, obj: Dict[str, Any]) -> Optional[Payment]:
    intent = obj.get("payment_intent")
    payment = payment_crud.get_by_intent(db, intent) if intent else None
    if payment:
        payment.status = PaymentStatus.refunded
        db.flush()
    return payment


HANDLERS = {
    "checkout.session.completed": _on_session_completed,
    "checkout.session.expired": _on_session_expired,
    "charge.refunded": _on_charge_refunded,
}


def apply_gateway_event(db: Session, event: GatewayEvent) -> bool:
    """Applies one already-verified event. Returns False for unhandled types."""
    handler = HANDLERS.get(event.type)
    if handler is None:
        logger.debug("ignoring gateway event {}", event.type)
        return False

    obj = event.data.get("object") or {}
    with unit_of_work(db, f"gateway_event:{event.type}"):
        payment = handler(db, obj)

    if payment is None:
        logger.warning("gateway event {} matched no payment", event.type)
    else:
        logger.info("gateway event {} -> payment {} {}", event.type, payment.session_id, payment.status.value)
    return True


# -------------------------- queries --------------------------

def list_payments(db: Session, *, status: Optional[PaymentStatus] = None, user_id: Optional[int] = None,
                  skip: int = 0, limit: int = 100) -> List[Payment]:
    return payment_crud.list(db, status=status, user_id=user_id, skip=skip, limit=limit)


def get_payment(db: Session, identity: Identity, session_id: str) -> Payment:
    payment = payment_crud.get_by_session(db, session_id)
    if not payment:
        raise NotFound("PAYMENT_NOT_FOUND", "Payment not found.")
    ensure_self_or_admin(identity, payment.user_id, "You can only view your own payments.")
    return payment
