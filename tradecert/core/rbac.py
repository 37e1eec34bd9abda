# tradecert/core/rbac.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tradecert.core.errors import Forbidden

ROLE_ADMIN = "admin"
ROLE_USER = "user"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as seen by the domain services."""
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def ensure_admin(identity: Identity) -> Identity:
    if not identity.is_admin:
        raise Forbidden("ADMIN_REQUIRED", "Administrator role required.")
    return identity


def ensure_self_or_admin(identity: Identity, user_id: Optional[int], message: str = "You can only access your own records.") -> Identity:
    if identity.is_admin or identity.user_id == user_id:
        return identity
    raise Forbidden("NOT_OWNER", message)
