"""Typed scheduling errors.

Every precondition failure of the booking engine and the grid generator is a
``SchedulingError`` subclass tagged with an ``ErrorKind``; the service facade
turns them into result values for callers.
"""

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_DURATION = "invalid_duration"
    PROVIDER_NOT_FOUND = "provider_not_found"
    SLOT_NOT_FOUND = "slot_not_found"
    SLOT_UNAVAILABLE = "slot_unavailable"
    SLOT_OCCUPIED = "slot_occupied"
    PAST_SLOT = "past_slot"
    CLIENT_CONFLICT = "client_conflict"
    BOOKING_NOT_FOUND = "booking_not_found"
    NOT_CANCELLABLE = "not_cancellable"
    FORBIDDEN = "forbidden"
    CANCELLATION_WINDOW_VIOLATED = "cancellation_window_violated"
    INVALID_STATUS = "invalid_status"
    STORE_CONFLICT = "store_conflict"


class SchedulingError(Exception):
    """Base class for scheduling failures."""

    kind: ErrorKind

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value


class InvalidDuration(SchedulingError):
    kind = ErrorKind.INVALID_DURATION


class ProviderNotFound(SchedulingError):
    kind = ErrorKind.PROVIDER_NOT_FOUND


class SlotNotFound(SchedulingError):
    kind = ErrorKind.SLOT_NOT_FOUND


class SlotUnavailable(SchedulingError):
    """Slot is held or blocked."""
    kind = ErrorKind.SLOT_UNAVAILABLE


class SlotOccupied(SchedulingError):
    """Slot has an active booking and cannot be toggled."""
    kind = ErrorKind.SLOT_OCCUPIED


class PastSlot(SchedulingError):
    kind = ErrorKind.PAST_SLOT


class ClientConflict(SchedulingError):
    """Client already has a scheduled booking at the same instant."""
    kind = ErrorKind.CLIENT_CONFLICT


class BookingNotFound(SchedulingError):
    kind = ErrorKind.BOOKING_NOT_FOUND


class NotCancellable(SchedulingError):
    kind = ErrorKind.NOT_CANCELLABLE


class Forbidden(SchedulingError):
    kind = ErrorKind.FORBIDDEN


class CancellationWindowViolated(SchedulingError):
    kind = ErrorKind.CANCELLATION_WINDOW_VIOLATED


class InvalidStatus(SchedulingError):
    kind = ErrorKind.INVALID_STATUS


class StoreConflict(SchedulingError):
    """Optimistic write lost the race; re-read and retry."""
    kind = ErrorKind.STORE_CONFLICT


__all__ = [
    "ErrorKind",
    "SchedulingError",
    "InvalidDuration",
    "ProviderNotFound",
    "SlotNotFound",
    "SlotUnavailable",
    "SlotOccupied",
    "PastSlot",
    "ClientConflict",
    "BookingNotFound",
    "NotCancellable",
    "Forbidden",
    "CancellationWindowViolated",
    "InvalidStatus",
    "StoreConflict",
]
