# backend/agenda/services/slots/memory_store.py
"""
In-process Slot Store.

A single lock guards the check-and-write of every conditional operation;
it is never held while calling back into user code. Records are immutable
pydantic models replaced on write, so readers never see a half-applied
transition.
"""

import itertools
import threading
from collections.abc import Iterable
from datetime import datetime

from ...schemas._time import as_utc
from ...schemas.bookings import BookingFilters, BookingRead, BookingStatus, CancelReason
from ...schemas.slots import ProviderRead, SlotCandidate, SlotRead, SlotStatus
from ..errors import BookingNotFound, ClientConflict, SlotNotFound, StoreConflict


class MemorySlotStore:

    def __init__(self):
        self._lock = threading.Lock()
        self._providers: dict[int, ProviderRead] = {}
        self._slots: dict[int, SlotRead] = {}
        self._slot_keys: dict[tuple[int, datetime], int] = {}
        self._bookings: dict[int, BookingRead] = {}
        self._slot_ids = itertools.count(1)
        self._booking_ids = itertools.count(1)

    def add_provider(self, provider: ProviderRead) -> ProviderRead:
        with self._lock:
            self._providers[provider.id] = provider
        return provider

    # ── Read ─────────────────────────────────────────────────────────────

    def get_provider(self, provider_id: int) -> ProviderRead | None:
        return self._providers.get(provider_id)

    def get_slot(self, slot_id: int) -> SlotRead | None:
        return self._slots.get(slot_id)

    def find_slot(self, provider_id: int, start: datetime) -> SlotRead | None:
        slot_id = self._slot_keys.get((provider_id, as_utc(start)))
        return self._slots.get(slot_id) if slot_id is not None else None

    def get_booking(self, booking_id: int) -> BookingRead | None:
        return self._bookings.get(booking_id)

    def find_scheduled_booking(self, client_id: int, start: datetime) -> BookingRead | None:
        with self._lock:
            return self._scheduled_at(client_id, as_utc(start))

    def list_slots(
        self,
        provider_id: int,
        start_from: datetime | None,
        end_to: datetime | None,
        offset: int,
        limit: int,
    ) -> tuple[int, list[SlotRead]]:
        with self._lock:
            rows = [s for s in self._slots.values() if s.provider_id == provider_id]
        if start_from is not None:
            rows = [s for s in rows if s.start >= as_utc(start_from)]
        if end_to is not None:
            rows = [s for s in rows if s.end <= as_utc(end_to)]
        rows.sort(key=lambda s: s.start)
        return len(rows), rows[offset:offset + limit]

    def list_bookings(
        self,
        filters: BookingFilters,
        offset: int,
        limit: int,
    ) -> tuple[int, list[BookingRead]]:
        with self._lock:
            rows = list(self._bookings.values())
        if filters.provider_id is not None:
            rows = [b for b in rows if b.provider_id == filters.provider_id]
        if filters.client_id is not None:
            rows = [b for b in rows if b.client_id == filters.client_id]
        if filters.status is not None:
            rows = [b for b in rows if b.status == filters.status]
        if filters.start_from is not None:
            rows = [b for b in rows if b.slot_start >= as_utc(filters.start_from)]
        if filters.end_to is not None:
            rows = [b for b in rows if b.slot_start <= as_utc(filters.end_to)]
        rows.sort(key=lambda b: (b.slot_start, b.id))
        return len(rows), rows[offset:offset + limit]

    # ── Write ────────────────────────────────────────────────────────────

    def insert_slots(self, candidates: Iterable[SlotCandidate]) -> int:
        candidates = list(candidates)
        inserted = 0
        with self._lock:
            for c in candidates:
                key = (c.provider_id, c.start)
                if key in self._slot_keys:
                    continue
                slot_id = next(self._slot_ids)
                self._slots[slot_id] = SlotRead(
                    id=slot_id,
                    provider_id=c.provider_id,
                    start=c.start,
                    end=c.end,
                    status=SlotStatus.FREE,
                )
                self._slot_keys[key] = slot_id
                inserted += 1
        return inserted

    def reserve(self, slot_id: int, client_id: int, now: datetime) -> BookingRead:
        with self._lock:
            slot = self._slots.get(slot_id)
            if slot is None:
                raise SlotNotFound(f"Slot {slot_id} not found")
            if slot.status != SlotStatus.FREE:
                raise StoreConflict(f"Slot {slot_id} is no longer free")
            if self._scheduled_at(client_id, slot.start) is not None:
                raise ClientConflict(
                    f"Client {client_id} already has a booking at {slot.start.isoformat()}"
                )

            booking = BookingRead(
                id=next(self._booking_ids),
                slot_id=slot_id,
                client_id=client_id,
                provider_id=slot.provider_id,
                slot_start=slot.start,
                status=BookingStatus.SCHEDULED,
                created_at=now,
                updated_at=now,
            )
            self._slots[slot_id] = slot.model_copy(update={"status": SlotStatus.HELD})
            self._bookings[booking.id] = booking
            return booking

    def release(self, booking_id: int, reason: CancelReason, now: datetime) -> BookingRead:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise BookingNotFound(f"Booking {booking_id} not found")
            if booking.status != BookingStatus.SCHEDULED:
                raise StoreConflict(f"Booking {booking_id} is no longer scheduled")
            slot = self._slots[booking.slot_id]
            if slot.status != SlotStatus.HELD:
                raise StoreConflict(f"Slot {slot.id} is not held")

            booking = booking.model_copy(update={
                "status": BookingStatus.CANCELLED,
                "cancel_reason": reason,
                "updated_at": now,
            })
            self._bookings[booking_id] = booking
            self._slots[slot.id] = slot.model_copy(update={"status": SlotStatus.FREE})
            return booking

    def complete(self, booking_id: int, now: datetime) -> BookingRead:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise BookingNotFound(f"Booking {booking_id} not found")
            if booking.status != BookingStatus.SCHEDULED:
                raise StoreConflict(f"Booking {booking_id} is no longer scheduled")

            booking = booking.model_copy(update={
                "status": BookingStatus.COMPLETED,
                "updated_at": now,
            })
            self._bookings[booking_id] = booking
            return booking

    def set_slot_status(self, slot_id: int, expected: SlotStatus, target: SlotStatus) -> SlotRead:
        with self._lock:
            slot = self._slots.get(slot_id)
            if slot is None:
                raise SlotNotFound(f"Slot {slot_id} not found")
            if slot.status != expected:
                raise StoreConflict(f"Slot {slot_id} is no longer {expected.value}")

            slot = slot.model_copy(update={"status": target})
            self._slots[slot_id] = slot
            return slot

    def _scheduled_at(self, client_id: int, start: datetime) -> BookingRead | None:
        # caller holds the lock
        for b in self._bookings.values():
            if (
                b.client_id == client_id
                and b.slot_start == start
                and b.status == BookingStatus.SCHEDULED
            ):
                return b
        return None
