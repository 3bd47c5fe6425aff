"""Error taxonomy shared by the engines, the store adapter, and the HTTP layer.

Every error carries a stable ``code`` and the HTTP ``status_code`` the API
layer maps it to. Engines raise; route handlers translate with
``_error_response``. Nothing here is retried.
"""

from __future__ import annotations

from typing import Any


class WorkpostError(Exception):
    """Base class for all workpost errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class InvalidInputError(WorkpostError, ValueError):
    """Malformed request body or missing/invalid filter parameters."""

    code = "INVALID_INPUT"
    status_code = 400


class InvalidTransitionError(WorkpostError, ValueError):
    """Requested status is not reachable from the current one."""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, from_status: str, to_status: str, allowed: tuple[str, ...]) -> None:
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = allowed
        if allowed:
            hint = f"Allowed next statuses: {', '.join(allowed)}."
        else:
            hint = f"'{from_status}' is terminal."
        super().__init__(
            f"Transition '{from_status}' -> '{to_status}' is not allowed. {hint}",
            details={"from": from_status, "to": to_status, "allowed": list(allowed)},
        )


class IndexOutOfRangeError(WorkpostError, IndexError):
    """Checklist or checklist item index outside the stored sequence."""

    code = "INDEX_OUT_OF_RANGE"
    status_code = 400


class MalformedPropertyError(WorkpostError, ValueError):
    """Stored property bag does not have the expected shape."""

    code = "MALFORMED_PROPERTY"
    status_code = 422


class NotFoundError(WorkpostError, KeyError):
    """Referenced post, channel, or user does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class PermissionDeniedError(WorkpostError):
    """Requester may not act on the channel."""

    code = "PERMISSION_DENIED"
    status_code = 403


class StoreFailureError(WorkpostError):
    """Underlying persistence or query error. The cause is chained."""

    code = "STORE_FAILURE"
    status_code = 500
