"""
Centralized error handling for the notification pipeline.
Domain exceptions plus a reusable mapping so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------


class PaydayNotifyError(Exception):
    """Base class for errors raised by the pipeline's services."""


class NotificationNotFoundError(PaydayNotifyError):
    def __init__(self, notification_id: str):
        super().__init__(f"Notification {notification_id} not found")
        self.notification_id = notification_id


class InvalidPreferencesError(PaydayNotifyError):
    """Partial preference update with unknown keys or invalid values."""


class InvalidEventError(PaydayNotifyError):
    """Event type unknown or payload does not match the event's fields."""


class ReminderNotScheduledError(PaydayNotifyError):
    def __init__(self, user_id: str):
        super().__init__(f"No payday reminder scheduled for user {user_id}")
        self.user_id = user_id


# ---------------------------------------------------------------------------
# HTTP status codes for known error categories
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_UNPROCESSABLE = 422
STATUS_INTERNAL_ERROR = 500

# List of (exception type, status_code). First match wins.
DOMAIN_ERROR_RULES: list[tuple[type[Exception], int]] = [
    (NotificationNotFoundError, STATUS_NOT_FOUND),
    (ReminderNotScheduledError, STATUS_NOT_FOUND),
    (InvalidPreferencesError, STATUS_UNPROCESSABLE),
    (InvalidEventError, STATUS_UNPROCESSABLE),
    (PaydayNotifyError, STATUS_BAD_REQUEST),
]


def domain_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception raised by a service into an HTTPException.
    Uses DOMAIN_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code in DOMAIN_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
