from __future__ import annotations

from typing import Any


class BuildSeasonError(Exception):
    status_code = 500
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BuildSeasonError):
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str = "Validation failed", details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.details = details or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, details=[{"path": [field], "message": message}])


class InvalidStateError(BuildSeasonError):
    status_code = 409
    code = "invalid_state"

    def __init__(self, action: str, current_status: str, reason: str | None = None):
        message = f"{action} not allowed for order in status '{current_status}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.action = action
        self.current_status = current_status


class NotFoundError(BuildSeasonError):
    status_code = 404
    code = "not_found"


class AuthorizationError(BuildSeasonError, PermissionError):
    status_code = 403
    code = "forbidden"


class StorageError(BuildSeasonError):
    status_code = 500
    code = "storage_error"
    public_message = "Internal Server Error"
