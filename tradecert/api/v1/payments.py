# tradecert/api/v1/payments.py
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Path, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from tradecert.api.deps import get_current_user, get_db, require_admin
from tradecert.core.rbac import Identity, ensure_self_or_admin
from tradecert.crud.payment import payment_crud
from tradecert.models.payment import PaymentStatus
from tradecert.schemas.payment import CheckoutIn, CheckoutOut, EventAck, PaymentOut, SessionSyncOut
from tradecert.services import payments
from tradecert.services.checkout import StripeClient, construct_event, get_stripe

router = APIRouter()

@router.post("/checkout-session", response_model=CheckoutOut)
def create_checkout_session(
    payload: CheckoutIn,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_user),
    stripe: StripeClient = Depends(get_stripe),
):
    session = payments.create_checkout_session(db, identity, payload, stripe)
    return CheckoutOut(session_id=session["id"], client_secret=session.get("client_secret"))

@router.get("/checkout-session/{session_id}", response_model=SessionSyncOut)
def sync_checkout_session(
    session_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_user),
    stripe: StripeClient = Depends(get_stripe),
):
    row = payment_crud.get_by_session(db, session_id)
    if row:
        ensure_self_or_admin(identity, row.user_id, "You can only view your own payments.")
    session = payments.sync_checkout_session(db, session_id, stripe)
    row = payment_crud.get_by_session(db, session_id)
    return SessionSyncOut(
        session_id=session_id,
        payment_status=session.get("payment_status"),
        payment=PaymentOut.model_validate(row) if row else None,
    )

# signed with STRIPE_WEBHOOK_SECRET; the raw body is needed for the check
@router.post("/webhook", response_model=EventAck)
async def gateway_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    event = construct_event(await request.body(), stripe_signature)
    handled = await run_in_threadpool(payments.apply_gateway_event, db, event)
    return EventAck(handled=handled)

@router.get("", response_model=List[PaymentOut])
def list_payments(
    status: Optional[PaymentStatus] = Query(None),
    user_id: Optional[int] = Query(None, ge=1),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _: Identity = Depends(require_admin),
):
    return payments.list_payments(db, status=status, user_id=user_id, skip=skip, limit=limit)

@router.get("/{session_id}", response_model=PaymentOut)
def get_payment(session_id: str = Path(..., min_length=1), db: Session = Depends(get_db),
                identity: Identity = Depends(get_current_user)):
    return payments.get_payment(db, identity, session_id)
