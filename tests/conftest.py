from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from tradecert.core.rbac import Identity
from tradecert.core.security import hash_password
from tradecert.core.tokens import create_access_token
from tradecert.db.base import Base
from tradecert.db.session import get_db, make_engine
from tradecert.models.course import Course
from tradecert.models.trader import Trader, zero_display
from tradecert.models.user import User
import tradecert.models  # noqa: F401

PASSWORD = "password123"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class Factory:
    """Persists fixtures straight through the ORM, bypassing the services."""

    def __init__(self, db: Session):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def user(self, *, email: Optional[str] = None, role: str = "user", status: str = "Active",
             password: str = PASSWORD) -> User:
        n = self._next()
        user = User(
            name=f"User {n}",
            email=email or f"user{n}@example.com",
            hashed_password=hash_password(password),
            role=role,
            status=status,
        )
        self.db.add(user)
        self.db.commit()
        return user

    def trader_user(self, **fields) -> Tuple[User, Trader]:
        user = self.user()
        return user, self.trader(user, **fields)

    def admin(self) -> User:
        return self.user(email=f"admin{self._seq + 1}@example.com", role="admin")

    def trader(self, user: Optional[User] = None, **fields) -> Trader:
        user = user or self.user()
        n = self._next()
        values = dict(
            user_id=user.id,
            company="Acme Securities",
            name=user.name,
            id_card=f"1{n:012d}",
            email=user.email,
            phone_number=f"08{n:08d}",
            duration_display=zero_display(),
            remaining_time_display=zero_display(),
        )
        values.update(fields)
        trader = Trader(**values)
        self.db.add(trader)
        self.db.commit()
        return trader

    def course(self, *, course_date: datetime = utc(2025, 3, 10, 9, 0), hours: int = 3, max_seats: int = 10,
               published: bool = True, **fields) -> Course:
        n = self._next()
        values = dict(
            course_name=f"Course {n}",
            course_code=f"C-{n:03d}",
            description="Market conduct refresher",
            course_date=course_date,
            start_date=course_date,
            end_date=course_date,
            location="Bangkok",
            price=Decimal("1500.00"),
            hours=hours,
            max_seats=max_seats,
            available_seats=max_seats,
            course_tags=["compliance"],
            is_published=published,
            is_deleted=False,
        )
        values.update(fields)
        course = Course(**values)
        self.db.add(course)
        self.db.commit()
        return course


def identity_of(user: User) -> Identity:
    return Identity(user_id=user.id, email=user.email, role=user.role)


def auth_header(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def engine(tmp_path: Path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture()
def make(db) -> Factory:
    return Factory(db)


@pytest.fixture()
def client(session_factory):
    from tradecert.main import api

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    api.dependency_overrides[get_db] = _get_db
    # no context manager: startup migrations stay off the default database
    yield TestClient(api)
    api.dependency_overrides.clear()
