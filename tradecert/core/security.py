# tradecert/core/security.py
from __future__ import annotations

from typing import Tuple

from passlib.context import CryptContext

from tradecert.core.errors import ValidationFailed

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__time_cost=2,
    argon2__memory_cost=19456,
    argon2__parallelism=1,
)

PASSWORD_MIN = 8
PASSWORD_MAX = 128


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def ensure_password_policy(password: str) -> None:
    if not isinstance(password, str) or not (PASSWORD_MIN <= len(password) <= PASSWORD_MAX):
        raise ValidationFailed("WEAK_PASSWORD", f"Password must be {PASSWORD_MIN}-{PASSWORD_MAX} characters.")


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_and_maybe_upgrade(plain: str, stored_hash: str) -> Tuple[bool, str | None]:
    """Returns (ok, new_hash); new_hash is set when the stored hash is outdated."""
    if not stored_hash or not pwd_context.identify(stored_hash):
        return False, None
    if not pwd_context.verify(plain, stored_hash):
        return False, None
    if pwd_context.needs_update(stored_hash):
        return True, pwd_context.hash(plain)
    return True, None
