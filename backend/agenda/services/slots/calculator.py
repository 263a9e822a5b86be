# backend/agenda/services/slots/calculator.py
"""
Slot grid generation.

Turns a provider's visit duration and a daily availability window into
candidate slots for every working day of a date range:

  day 1: [08:00, 08:30) [08:30, 09:00) ...
  day 2: ...

✓ weekdays only (BookingConfig.working_weekdays)
✓ UTC day boundaries
✓ slots that would overrun the window are dropped, not truncated

Does NOT touch storage; see SlotStore.insert_slots.
"""

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone

from ..errors import InvalidDuration
from ...schemas.slots import DailyWindow, DateRange, SlotCandidate
from .config import BookingConfig, get_booking_config, time_str_to_minutes


class SlotGrid:
    """Lazy, re-iterable sequence of candidate slots."""

    def __init__(
        self,
        provider_id: int,
        duration_minutes: int,
        date_range: DateRange,
        daily_window: DailyWindow,
        working_weekdays: tuple[int, ...],
    ):
        if duration_minutes <= 0:
            raise InvalidDuration(f"Visit duration must be positive, got {duration_minutes}")

        self.provider_id = provider_id
        self.duration = timedelta(minutes=duration_minutes)
        self.date_range = date_range
        self.window_start = time_str_to_minutes(daily_window.start)
        self.window_end = time_str_to_minutes(daily_window.end)
        self.working_weekdays = working_weekdays

    def __iter__(self) -> Iterator[SlotCandidate]:
        current = self.date_range.start
        while current <= self.date_range.end:
            if current.weekday() in self.working_weekdays:
                yield from self._day_slots(current)
            current += timedelta(days=1)

    def _day_slots(self, day: date) -> Iterator[SlotCandidate]:
        if self.window_end <= self.window_start:
            return

        midnight = datetime.combine(day, time.min, tzinfo=timezone.utc)
        cursor = midnight + timedelta(minutes=self.window_start)
        day_end = midnight + timedelta(minutes=self.window_end)

        while cursor + self.duration <= day_end:
            slot_end = cursor + self.duration
            yield SlotCandidate(provider_id=self.provider_id, start=cursor, end=slot_end)
            cursor = slot_end


def generate_slot_grid(
    provider_id: int,
    duration_minutes: int,
    date_range: DateRange,
    daily_window: DailyWindow,
    config: BookingConfig | None = None,
) -> SlotGrid:
    """
    Build the candidate grid for a provider.

    Raises:
        InvalidDuration: duration_minutes <= 0 (raised here, before any iteration)
    """
    config = config or get_booking_config()
    return SlotGrid(
        provider_id,
        duration_minutes,
        date_range,
        daily_window,
        config.working_weekdays,
    )
