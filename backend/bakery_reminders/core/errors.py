"""
Domain errors for scheduling and dispatch, plus mapping to HTTP for the API layer.
Constants and a reusable helper so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# HTTP status codes for known error categories
STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_BAD_GATEWAY = 502
STATUS_INTERNAL_ERROR = 500


class ReminderError(Exception):
    """Base class for errors raised by the reminder subsystem."""


class OrderNotFound(ReminderError):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class RecipientNotFound(ReminderError):
    def __init__(self, user_id: str):
        super().__init__(f"Recipient {user_id} not found")
        self.user_id = user_id


class PushDeliveryError(ReminderError):
    """Push did not reach the provider or the provider rejected the message."""


class InvalidToken(PushDeliveryError):
    """Device token is not a recognized push token; raised before any network call."""

    def __init__(self, token: str):
        preview = (token or "")[:20]
        super().__init__(f"Invalid push token format: {preview!r}")
        self.token = token


# List of (exception type, status_code). First match wins; subclasses before bases.
DOMAIN_ERROR_RULES: list[tuple[type[Exception], int]] = [
    (OrderNotFound, STATUS_NOT_FOUND),
    (RecipientNotFound, STATUS_NOT_FOUND),
    (InvalidToken, STATUS_BAD_REQUEST),
    (PushDeliveryError, STATUS_BAD_GATEWAY),
]


def domain_error_to_http(exc: Exception) -> HTTPException:
    """
    Map a domain exception into an HTTPException.
    Uses DOMAIN_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code in DOMAIN_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
