from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

logger = logging.getLogger(__name__)


class BookingError(Exception):
    status_code = 400
    default_message = "Booking request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class ValidationError(BookingError):
    status_code = 422
    default_message = "Invalid booking request"


class ConflictError(BookingError):
    status_code = 409
    default_message = "Slot is already booked"


class InvalidTransitionError(BookingError):
    status_code = 409
    default_message = "Booking status does not allow this action"


class AuthorizationError(BookingError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(BookingError):
    status_code = 404
    default_message = "Not found"


class StoreError(BookingError):
    """Storage failure. Callers may retry after re-reading current state."""

    status_code = 503
    default_message = "Storage is temporarily unavailable"


@contextmanager
def store_errors() -> Iterator[None]:
    try:
        yield
    except IntegrityError:
        raise
    except (OperationalError, DBAPIError) as exc:
        logger.exception("Store call failed")
        raise StoreError() from exc


__all__ = [
    "BookingError",
    "ValidationError",
    "ConflictError",
    "InvalidTransitionError",
    "AuthorizationError",
    "NotFoundError",
    "StoreError",
    "store_errors",
]
