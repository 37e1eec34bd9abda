# tradecert/db/bootstrap.py
import os
from typing import Optional

from alembic import command
from alembic.config import Config
from loguru import logger

from tradecert.db.init_db import init_db
from tradecert.db.session import SessionLocal

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

def alembic_config(database_url: Optional[str] = None) -> Config:
    # explicit paths so startup works from any cwd
    cfg = Config(os.path.join(BASE_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(BASE_DIR, "migrations"))
    if database_url:
        cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg

def run_migrations_and_seed() -> None:
    command.upgrade(alembic_config(), "head")
    logger.info("database migrated to head")

    with SessionLocal() as db:
        init_db(db)
