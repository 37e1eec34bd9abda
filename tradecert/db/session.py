# tradecert/db/session.py
from contextlib import contextmanager
from typing import Generator, Iterator

from loguru import logger

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from tradecert.core.config import settings

def _normalize(url: str) -> str:
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url and url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url

def make_engine(url: str):
    url = _normalize(url)
    kwargs = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    eng = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        @event.listens_for(eng, "connect")
        def _fk_on(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()
    return eng

SQLALCHEMY_DATABASE_URL = _normalize(settings.DATABASE_URL)

engine = make_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def unit_of_work(db: Session, label: str) -> Iterator[Session]:
    """Commits once on success; rolls back everything on any failure."""
    try:
        yield db
        db.commit()
    except Exception:
        try:
            db.rollback()
        except Exception:
            logger.exception("rollback failed during {}", label)
        raise
