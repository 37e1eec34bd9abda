from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradecert.db.base import Base
from tradecert.db.types import UTCDateTime, utcnow


def zero_display() -> Dict[str, int]:
    return {"years": 0, "months": 0, "days": 0}


class Trader(Base):
    __tablename__ = "traders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, index=True)
    company: Mapped[str] = mapped_column(String(200))
    name: Mapped[str] = mapped_column(String(160))
    id_card: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(160))
    phone_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, index=True)
    # certification window, unset until the first approval
    start_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    duration_display: Mapped[Dict[str, Any]] = mapped_column(JSON, default=zero_display)
    remaining_time_display: Mapped[Dict[str, Any]] = mapped_column(JSON, default=zero_display)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    trainings: Mapped[List["TraderTraining"]] = relationship(
        back_populates="trader",
        cascade="all, delete-orphan",
        order_by="TraderTraining.id",
    )


class TraderTraining(Base):
    __tablename__ = "trader_trainings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    trader_id: Mapped[int] = mapped_column(ForeignKey("traders.id", ondelete="CASCADE"), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    course_name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text())
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    hours: Mapped[int] = mapped_column(Integer)
    date: Mapped[datetime] = mapped_column(UTCDateTime)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    trader: Mapped[Trader] = relationship(back_populates="trainings")

    __table_args__ = (UniqueConstraint("trader_id", "course_id", name="uq_training_trader_course"),)
