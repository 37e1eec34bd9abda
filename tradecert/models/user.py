from enum import Enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradecert.db.base import Base
from tradecert.db.types import UTCDateTime, utcnow


class UserRole(str, Enum):
    admin = "admin"
    user = "user"


class AccountStatus(str, Enum):
    active = "Active"
    suspended = "Suspended"
    locked = "Locked"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(160), default="")
    email: Mapped[str] = mapped_column(String(160), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=UserRole.user.value)
    status: Mapped[str] = mapped_column(String(20), default=AccountStatus.active.value)
    status_reason: Mapped[str] = mapped_column(Text(), default="")
    last_status_update: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    status_history: Mapped[List["UserStatusHistory"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserStatusHistory.id",
        foreign_keys="UserStatusHistory.user_id",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value


class UserStatusHistory(Base):
    __tablename__ = "user_status_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    status: Mapped[str] = mapped_column(String(20))
    reason: Mapped[str] = mapped_column(Text(), default="")
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)

    user: Mapped[User] = relationship(back_populates="status_history", foreign_keys=[user_id])
