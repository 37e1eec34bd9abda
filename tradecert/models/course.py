from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradecert.db.base import Base
from tradecert.db.types import UTCDateTime, utcnow


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_name: Mapped[str] = mapped_column(String(200))
    course_code: Mapped[str] = mapped_column(String(40))
    description: Mapped[str] = mapped_column(Text())
    start_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    course_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    location: Mapped[str] = mapped_column(String(200))
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    hours: Mapped[int] = mapped_column(Integer)
    max_seats: Mapped[int] = mapped_column(Integer)
    available_seats: Mapped[int] = mapped_column(Integer)
    course_tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    stripe_product_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    stripe_price_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    # attendance code for the current session
    generated_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True, index=True)
    generated_code_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    registrations: Mapped[List["CourseRegistration"]] = relationship(
        back_populates="course", cascade="all, delete-orphan", order_by="CourseRegistration.id",
    )
    approval_queue: Mapped[List["ApprovalQueueEntry"]] = relationship(
        back_populates="course", cascade="all, delete-orphan", order_by="ApprovalQueueEntry.id",
    )

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="seats_non_negative"),
        CheckConstraint("available_seats <= max_seats", name="seats_within_max"),
    )


class CourseRegistration(Base):
    """Users holding a seat on a course."""
    __tablename__ = "course_registrations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    registered_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    course: Mapped[Course] = relationship(back_populates="registrations")

    __table_args__ = (UniqueConstraint("course_id", "user_id", name="uq_registration_course_user"),)


class ApprovalQueueEntry(Base):
    """Attendees who validated their code and wait for an admin decision."""
    __tablename__ = "course_approval_queue"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    email: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    queued_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    course: Mapped[Course] = relationship(back_populates="approval_queue")

    __table_args__ = (UniqueConstraint("course_id", "user_id", name="uq_approval_course_user"),)
