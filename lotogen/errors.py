"""Custom exceptions for centralized error handling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class AppError(Exception):
    """Base application error."""

    code: str
    message: str
    status_code: int
    details: Any | None = None


class NotFoundError(AppError):
    """Resource not found."""

    def __init__(self, message: str = "Not found", details: Any | None = None) -> None:
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class ValidationError(AppError):
    """Input validation error."""

    def __init__(self, message: str = "Validation error", details: Any | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=400, details=details)


class InvalidGameTypeError(AppError):
    """Game type is not part of the catalog."""

    def __init__(self, game_type: object, details: Any | None = None) -> None:
        super().__init__(
            code="invalid_game_type",
            message=f"Unknown game type: {game_type}",
            status_code=400,
            details=details,
        )


class InvalidOptionsError(AppError):
    """Generation options not valid for the requested game."""

    def __init__(self, message: str = "Invalid generation options", details: Any | None = None) -> None:
        super().__init__(code="invalid_options", message=message, status_code=400, details=details)


class NotAuthenticatedError(AppError):
    """No owner in the request context."""

    def __init__(self, message: str = "Authentication required", details: Any | None = None) -> None:
        super().__init__(code="not_authenticated", message=message, status_code=401, details=details)


class NotAuthorizedError(AppError):
    """Caller does not own the resource."""

    def __init__(self, message: str = "You do not have access to this resource", details: Any | None = None) -> None:
        super().__init__(code="not_authorized", message=message, status_code=403, details=details)


class NotAdminError(AppError):
    """Operation requires administrator privileges."""

    def __init__(self, message: str = "Administrator privileges required", details: Any | None = None) -> None:
        super().__init__(code="not_admin", message=message, status_code=403, details=details)


class StorageUnavailableError(AppError):
    """Transient storage failure (timeout, lost connection). Retryable."""

    def __init__(self, message: str = "Storage temporarily unavailable, try again later", details: Any | None = None) -> None:
        super().__init__(
            code="storage_unavailable",
            message=message,
            status_code=503,
            details={"retryable": True, **(details or {})},
        )


class StatisticsUpdateFailedError(AppError):
    """Number statistics could not be updated. Never fatal to the saved draw."""

    def __init__(self, message: str = "Number statistics could not be updated", details: Any | None = None) -> None:
        super().__init__(code="statistics_update_failed", message=message, status_code=500, details=details)
