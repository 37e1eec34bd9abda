from enum import Enum
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tradecert.db.base import Base
from tradecert.db.types import UTCDateTime, utcnow


class PaymentStatus(str, Enum):
    created = "created"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    course_id: Mapped[int] = mapped_column(Integer, index=True)
    amount: Mapped[int] = mapped_column(Integer, default=0)  # minor units
    currency: Mapped[str] = mapped_column(String(8), default="THB")
    status: Mapped[PaymentStatus] = mapped_column(default=PaymentStatus.created)
    customer_email: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    payment_intent: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    meta: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_payments_status_created", "status", "created_at"),
        Index("ix_payments_user_status", "user_id", "status"),
    )
