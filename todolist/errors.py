from __future__ import annotations

import uuid
from typing import Any, Optional


class TodoError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationFailed(TodoError):
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotAuthenticated(TodoError):
    status_code = 401
    code = "token_required"

    def __init__(self, message: str = "Access token required") -> None:
        super().__init__(message)


class InvalidToken(TodoError):
    status_code = 401
    code = "invalid_token"

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class InvalidCredentials(TodoError):
    status_code = 401
    code = "invalid_credentials"

    def __init__(self, message: str = "Invalid username or password") -> None:
        super().__init__(message)


class Forbidden(TodoError):
    status_code = 403
    code = "forbidden"


class NotFound(TodoError):
    status_code = 404
    code = "not_found"


class Conflict(TodoError):
    status_code = 409
    code = "conflict"


def json_error(
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
            "requestId": request_id or str(uuid.uuid4()),
        }
    }
