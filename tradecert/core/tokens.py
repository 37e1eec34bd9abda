# tradecert/core/tokens.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from tradecert.core.config import settings

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _exp(minutes: int) -> datetime:
    return _now() + timedelta(minutes=minutes)

def create_access_token(*, user_id: int, email: str, role: str, expires_minutes: Optional[int] = None) -> str:
    """Short-lived access token; `sub` carries the user id."""
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload: Dict[str, Any] = {
        "type": "access",
        "sub": str(user_id),
        "email": email,
        "role": role,
        "jti": uuid.uuid4().hex,
        "iat": int(_now().timestamp()),
        "exp": int(_exp(minutes).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access(token: str) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("type") != "access":
        return None
    if not payload.get("sub") or not payload.get("role"):
        return None
    return payload
