# tradecert/db/init_db.py
from loguru import logger
from sqlalchemy.orm import Session

from tradecert.core.config import settings
from tradecert.core.security import hash_password, normalize_email
from tradecert.crud.user import user_crud
from tradecert.db.session import unit_of_work
from tradecert.models.user import UserRole

def init_db(db: Session) -> None:
    """Seeds the first administrator; admins carry no trader profile."""
    email = normalize_email(settings.ADMIN_EMAIL)
    if user_crud.get_by_email(db, email):
        return
    with unit_of_work(db, "seed_admin"):
        admin = user_crud.create(
            db,
            email=email,
            hashed_password=hash_password(settings.ADMIN_PASSWORD),
            role=UserRole.admin.value,
            name="Administrator",
        )
    logger.info("seeded admin user {} ({})", admin.id, email)
