# tradecert/core/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Business-rule failure with a stable machine-readable code."""

    status_code: int = 400

    def __init__(self, code: str, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data:
            body["data"] = self.data
        return body


class ValidationFailed(DomainError):
    status_code = 400


class Unauthorized(DomainError):
    status_code = 401


class Forbidden(DomainError):
    status_code = 403


class NotFound(DomainError):
    status_code = 404


class Conflict(DomainError):
    status_code = 409


class GatewayError(DomainError):
    status_code = 502
