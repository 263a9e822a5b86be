# backend/agenda/services/booking/__init__.py
"""
Booking engine, cancellation policy and the result-returning service facade.
"""

from .policy import admit_cancellation, Operation, Relationship, PERMISSIONS
from .engine import BookingEngine, utc_now
from .service import BookingService, OperationError, OperationResult

__all__ = [
    "admit_cancellation",
    "Operation",
    "Relationship",
    "PERMISSIONS",
    "BookingEngine",
    "utc_now",
    "BookingService",
    "OperationError",
    "OperationResult",
]
