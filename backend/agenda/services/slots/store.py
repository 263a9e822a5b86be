# backend/agenda/services/slots/store.py
"""
Slot Store contract.

The booking engine only needs point lookups plus a handful of atomic
conditional writes; each write covers exactly one slot and at most one
booking and either fully commits or leaves both records untouched.

Conditional writes raise:
  StoreConflict   — the expected prior status no longer holds (race lost)
  ClientConflict  — client already holds a scheduled booking at that instant
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from ...schemas.bookings import BookingFilters, BookingRead, CancelReason
from ...schemas.slots import ProviderRead, SlotCandidate, SlotRead, SlotStatus


class SlotStore(Protocol):

    # ── Read ─────────────────────────────────────────────────────────────

    def get_provider(self, provider_id: int) -> ProviderRead | None: ...

    def get_slot(self, slot_id: int) -> SlotRead | None: ...

    def find_slot(self, provider_id: int, start: datetime) -> SlotRead | None: ...

    def get_booking(self, booking_id: int) -> BookingRead | None: ...

    def find_scheduled_booking(self, client_id: int, start: datetime) -> BookingRead | None: ...

    def list_slots(
        self,
        provider_id: int,
        start_from: datetime | None,
        end_to: datetime | None,
        offset: int,
        limit: int,
    ) -> tuple[int, list[SlotRead]]: ...

    def list_bookings(
        self,
        filters: BookingFilters,
        offset: int,
        limit: int,
    ) -> tuple[int, list[BookingRead]]: ...

    # ── Write ────────────────────────────────────────────────────────────

    def insert_slots(self, candidates: Iterable[SlotCandidate]) -> int:
        """Insert free slots, skipping (provider_id, start) duplicates. Returns inserted count."""
        ...

    def reserve(self, slot_id: int, client_id: int, now: datetime) -> BookingRead:
        """Slot free → held and a scheduled booking, as one unit."""
        ...

    def release(self, booking_id: int, reason: CancelReason, now: datetime) -> BookingRead:
        """Booking scheduled → cancelled and its slot held → free, as one unit."""
        ...

    def complete(self, booking_id: int, now: datetime) -> BookingRead:
        """Booking scheduled → completed; the slot stays held."""
        ...

    def set_slot_status(self, slot_id: int, expected: SlotStatus, target: SlotStatus) -> SlotRead:
        """Compare-and-swap on slot status."""
        ...
