from enum import Enum
from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradecert.db.base import Base
from tradecert.db.types import UTCDateTime, utcnow


class EnrollmentStatus(str, Enum):
    pending = "pending"
    validated = "validated"
    approved = "approved"
    rejected = "rejected"


# states an admin may still act on
OPEN_STATUSES = (EnrollmentStatus.pending, EnrollmentStatus.validated)


class Enrollment(Base):
    __tablename__ = "enrollments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), index=True)
    status: Mapped[EnrollmentStatus] = mapped_column(default=EnrollmentStatus.pending, index=True)
    enroll_date: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    validation_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    validated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    verified_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    course = relationship("Course")

    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),)
