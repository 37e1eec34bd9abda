# tradecert/schemas/payment.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from tradecert.models.payment import PaymentStatus

class CheckoutMetadata(BaseModel):
    user_id: int
    course_id: int

    model_config = {"extra": "allow"}

class CheckoutIn(BaseModel):
    stripe_price_id: str = ""
    metadata: Optional[CheckoutMetadata] = None

class CheckoutOut(BaseModel):
    session_id: str
    client_secret: Optional[str] = None

class GatewayEvent(BaseModel):
    """Already-verified webhook event: {"type": ..., "data": {"object": {...}}}."""
    id: Optional[str] = None
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)

class EventAck(BaseModel):
    received: bool = True
    handled: bool

class PaymentOut(BaseModel):
    id: int
    session_id: str
    user_id: int
    course_id: int
    amount: int
    currency: str
    status: PaymentStatus
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    payment_method: Optional[str] = None
    payment_intent: Optional[str] = None
    meta: Optional[Dict[str, Any]] = Field(default=None, serialization_alias="metadata")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

class SessionSyncOut(BaseModel):
    session_id: str
    payment_status: Optional[str] = None
    payment: Optional[PaymentOut] = None
