from fastapi import Depends, Header
from sqlalchemy.orm import Session

from tradecert.core.errors import Forbidden, Unauthorized
from tradecert.core.rbac import Identity, ensure_admin
from tradecert.core.tokens import decode_access
from tradecert.crud.user import user_crud
from tradecert.db.session import get_db
from tradecert.models.user import AccountStatus

# ----------------------------------------------------------------------
# Reads the Bearer token from the Authorization header
# ----------------------------------------------------------------------
def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise Unauthorized("MISSING_TOKEN", "Missing Authorization header.")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthorized("INVALID_TOKEN", "Invalid Authorization header.")
    return parts[1]

# ----------------------------------------------------------------------
# Caller identity; the account must still exist and be Active
# ----------------------------------------------------------------------
def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> Identity:
    payload = decode_access(token)
    if not payload:
        raise Unauthorized("INVALID_TOKEN", "Invalid or expired token.")
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthorized("INVALID_TOKEN", "Invalid token subject.")

    user = user_crud.get(db, user_id)
    if not user:
        raise Unauthorized("INVALID_TOKEN", "User no longer exists.")
    if user.status != AccountStatus.active.value:
        raise Forbidden(f"ACCOUNT_{user.status.upper()}", f"Account is {user.status.lower()}.")
    return Identity(user_id=user.id, email=user.email, role=user.role)

def require_admin(identity: Identity = Depends(get_current_user)) -> Identity:
    return ensure_admin(identity)
