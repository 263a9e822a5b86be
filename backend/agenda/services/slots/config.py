# backend/agenda/services/slots/config.py
"""
Booking configuration: policy constants for the grid and the booking engine.
"""

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from ...config import settings


# Clients may cancel only this long before the slot starts.
CANCELLATION_MIN_ADVANCE = timedelta(hours=24)

WEEKDAYS = (0, 1, 2, 3, 4)  # Mon..Fri


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the booking engine.

    Attributes:
        cancel_min_advance_hours: Minimum hours before slot start a client may cancel
        store_retry_limit: Attempts per operation when the optimistic write loses a race
        working_weekdays: Weekdays (0 = Monday) that receive slots
    """
    cancel_min_advance_hours: int = int(CANCELLATION_MIN_ADVANCE.total_seconds() // 3600)
    store_retry_limit: int = 2
    working_weekdays: tuple[int, ...] = WEEKDAYS

    def __post_init__(self):
        """Validate configuration."""
        if self.cancel_min_advance_hours < 0:
            raise ValueError(
                f"cancel_min_advance_hours must be >= 0, got {self.cancel_min_advance_hours}"
            )
        if self.store_retry_limit < 1:
            raise ValueError(f"store_retry_limit must be >= 1, got {self.store_retry_limit}")
        if any(d not in range(7) for d in self.working_weekdays):
            raise ValueError(f"working_weekdays must be within 0..6, got {self.working_weekdays}")

    @property
    def cancel_min_advance(self) -> timedelta:
        return timedelta(hours=self.cancel_min_advance_hours)


@lru_cache
def get_booking_config() -> BookingConfig:
    """Booking configuration built from environment settings (singleton)."""
    return BookingConfig(
        cancel_min_advance_hours=settings.cancel_min_advance_hours,
        store_retry_limit=settings.store_retry_limit,
    )


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hour, minute = value.split(":")
    return int(hour) * 60 + int(minute)
