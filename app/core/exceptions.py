"""
Application exceptions.

Route handlers and services raise these; ``app.main`` turns them into
``{"success": false, "error": ...}`` JSON responses with the carried
HTTP status.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base error carrying an HTTP status and optional extra payload."""

    http_status = 500

    def __init__(self, message: str, status_code: Optional[int] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.http_status
        self.extra = extra

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message, **self.extra}


class ValidationError(AppError):
    """Invalid input that passed schema validation but breaks a business rule."""

    http_status = 400


class UnauthorizedError(AppError):
    http_status = 401


class ForbiddenError(AppError):
    http_status = 403


class NotFoundError(AppError):
    http_status = 404


class DayClosedError(ForbiddenError):
    """Raised when an order is placed after the business day was closed."""

    def __init__(self, message: str = "Day is closed. Orders cannot be placed until the day is reopened."):
        super().__init__(message, day_closed=True)
