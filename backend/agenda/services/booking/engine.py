# backend/agenda/services/booking/engine.py
"""
Booking engine: the slot/booking state machine.

  Slot:     free ⇄ held     (reserve / cancel / update_outcome)
            free ⇄ blocked  (set_slot_status)
  Booking:  scheduled → cancelled | completed

Every operation reads, checks its preconditions and then commits through a
single conditional write on the store. A lost race (StoreConflict) re-runs
the whole read-check-write sequence, up to BookingConfig.store_retry_limit
attempts in total.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar

from ...schemas.actors import Actor
from ...schemas.bookings import BookingRead, BookingStatus, CancelReason
from ...schemas.slots import DailyWindow, DateRange, SlotRead, SlotStatus, SlotsGenerated
from ..errors import (
    BookingNotFound,
    CancellationWindowViolated,
    ClientConflict,
    InvalidStatus,
    NotCancellable,
    PastSlot,
    ProviderNotFound,
    SchedulingError,
    SlotNotFound,
    SlotOccupied,
    SlotUnavailable,
    StoreConflict,
)
from ..events import EventEmitter
from ..slots.calculator import generate_slot_grid
from ..slots.config import BookingConfig, get_booking_config
from ..slots.store import SlotStore
from .policy import Operation, admit_cancellation, authorize

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BookingEngine:

    def __init__(
        self,
        store: SlotStore,
        clock: Clock | None = None,
        config: BookingConfig | None = None,
        events: EventEmitter | None = None,
    ):
        self.store = store
        self.clock = clock or utc_now
        self.config = config or get_booking_config()
        self.events = events or EventEmitter(None)

    # ── Grid ─────────────────────────────────────────────────────────────

    def generate_slots(
        self,
        provider_id: int,
        date_range: DateRange,
        daily_window: DailyWindow,
    ) -> SlotsGenerated:
        """Generate the provider's grid and store it; existing slots are skipped."""
        provider = self.store.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFound(f"Provider {provider_id} not found")

        grid = generate_slot_grid(
            provider.id,
            provider.duration_minutes,
            date_range,
            daily_window,
            self.config,
        )
        candidates = list(grid)
        inserted = self.store.insert_slots(candidates)

        logger.info(
            f"Generated {inserted} new slots for provider {provider_id} "
            f"({len(candidates)} candidates, {date_range.start}..{date_range.end})"
        )
        self.events.emit("slots_generated", {
            "provider_id": provider_id,
            "inserted": inserted,
        })
        return SlotsGenerated(
            provider_id=provider_id,
            candidates=len(candidates),
            inserted=inserted,
        )

    # ── Reserve ──────────────────────────────────────────────────────────

    def reserve(self, slot_id: int, client_id: int) -> BookingRead:
        """
        Book a free, future slot for a client.

        Raises:
            SlotNotFound, PastSlot, SlotUnavailable, ClientConflict
        """
        def attempt() -> BookingRead:
            now = self.clock()
            slot = self._get_slot(slot_id)

            if slot.start <= now:
                raise PastSlot(f"Slot {slot_id} started at {slot.start.isoformat()}")
            if slot.status != SlotStatus.FREE:
                raise SlotUnavailable(f"Slot {slot_id} is {slot.status.value}")
            if self.store.find_scheduled_booking(client_id, slot.start) is not None:
                raise ClientConflict(
                    f"Client {client_id} already has a booking at {slot.start.isoformat()}"
                )

            return self.store.reserve(slot_id, client_id, now)

        booking = self._with_retry(attempt, f"reserve slot {slot_id}", SlotUnavailable)

        logger.info(f"Client {client_id} booked slot {slot_id} (booking {booking.id})")
        self.events.emit("booking_created", {
            "booking_id": booking.id,
            "slot_id": slot_id,
            "client_id": client_id,
            "provider_id": booking.provider_id,
            "slot_start": booking.slot_start.isoformat(),
        })
        return booking

    # ── Cancel ───────────────────────────────────────────────────────────

    def cancel(self, booking_id: int, actor: Actor) -> BookingRead:
        """
        Cancel a scheduled booking and free its slot.

        Clients must cancel at least `cancel_min_advance_hours` before the
        slot starts; administrators are not bound by the window.
        """
        def attempt() -> BookingRead:
            now = self.clock()
            booking = self._get_scheduled_booking(booking_id)

            authorize(
                Operation.CANCEL,
                actor,
                client_id=booking.client_id,
                target=f"booking {booking_id}",
            )

            if not admit_cancellation(
                now, booking.slot_start, actor.role, self.config.cancel_min_advance
            ):
                logger.warning(
                    f"Cancellation: {actor.role.value} {actor.id} tried to cancel booking "
                    f"{booking_id} less than {self.config.cancel_min_advance_hours}h ahead"
                )
                raise CancellationWindowViolated(
                    f"Bookings can only be cancelled {self.config.cancel_min_advance_hours} "
                    f"hours in advance"
                )

            reason = CancelReason.ADMIN_CANCEL if actor.is_admin else CancelReason.CLIENT_REQUEST
            return self.store.release(booking_id, reason, now)

        booking = self._with_retry(attempt, f"cancel booking {booking_id}", SlotUnavailable)

        logger.info(f"{actor.role.value} {actor.id} cancelled booking {booking_id}")
        self._emit_cancelled(booking)
        return booking

    # ── Outcome ──────────────────────────────────────────────────────────

    def update_outcome(
        self,
        booking_id: int,
        actor: Actor,
        outcome: BookingStatus,
    ) -> BookingRead:
        """
        Record the outcome of a booking (administrator or owning provider).

        completed → slot stays held for the record
        cancelled → slot is freed, no cancellation window applies
        """
        if outcome not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
            raise InvalidStatus(f"Outcome must be completed or cancelled, got {outcome.value}")

        def attempt() -> BookingRead:
            now = self.clock()
            booking = self._get_booking(booking_id)

            authorize(
                Operation.UPDATE_OUTCOME,
                actor,
                provider_id=booking.provider_id,
                target=f"booking {booking_id}",
            )

            if booking.status != BookingStatus.SCHEDULED:
                raise NotCancellable(f"Booking {booking_id} is already {booking.status.value}")

            if outcome == BookingStatus.CANCELLED:
                return self.store.release(booking_id, CancelReason.OUTCOME_OVERRIDE, now)
            return self.store.complete(booking_id, now)

        booking = self._with_retry(attempt, f"update booking {booking_id}", SlotUnavailable)

        logger.info(
            f"{actor.role.value} {actor.id} set booking {booking_id} to {booking.status.value}"
        )
        if booking.status == BookingStatus.CANCELLED:
            self._emit_cancelled(booking)
        else:
            self.events.emit("booking_done", {"booking_id": booking.id})
        return booking

    # ── Block / unblock ──────────────────────────────────────────────────

    def set_slot_status(
        self,
        slot_id: int,
        actor: Actor,
        target: SlotStatus,
    ) -> SlotRead:
        """Block or unblock a slot that has no active booking."""
        if target not in (SlotStatus.BLOCKED, SlotStatus.FREE):
            raise InvalidStatus(f"Slot status must be blocked or free, got {target.value}")

        def attempt() -> SlotRead:
            slot = self._get_slot(slot_id)

            authorize(
                Operation.SET_SLOT_STATUS,
                actor,
                provider_id=slot.provider_id,
                target=f"slot {slot_id}",
            )

            if slot.status == SlotStatus.HELD:
                raise SlotOccupied(f"Slot {slot_id} has a scheduled booking")

            return self.store.set_slot_status(slot_id, slot.status, target)

        slot = self._with_retry(attempt, f"set status of slot {slot_id}", SlotOccupied)

        logger.info(f"{actor.role.value} {actor.id} set slot {slot_id} to {slot.status.value}")
        self.events.emit("slot_status_changed", {
            "slot_id": slot_id,
            "provider_id": slot.provider_id,
            "status": slot.status.value,
        })
        return slot

    # ── Helpers ──────────────────────────────────────────────────────────

    def _with_retry(
        self,
        attempt: Callable[[], T],
        label: str,
        exhausted: type[SchedulingError],
    ) -> T:
        limit = self.config.store_retry_limit
        for n in range(1, limit + 1):
            try:
                return attempt()
            except StoreConflict as e:
                logger.debug(f"{label}: store conflict on attempt {n}/{limit}: {e}")
        raise exhausted(f"{label}: lost {limit} concurrent write races")

    def _get_slot(self, slot_id: int) -> SlotRead:
        slot = self.store.get_slot(slot_id)
        if slot is None:
            raise SlotNotFound(f"Slot {slot_id} not found")
        return slot

    def _get_booking(self, booking_id: int) -> BookingRead:
        booking = self.store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found")
        return booking

    def _get_scheduled_booking(self, booking_id: int) -> BookingRead:
        booking = self._get_booking(booking_id)
        if booking.status != BookingStatus.SCHEDULED:
            raise NotCancellable(f"Booking {booking_id} is already {booking.status.value}")
        return booking

    def _emit_cancelled(self, booking: BookingRead) -> None:
        self.events.emit("booking_cancelled", {
            "booking_id": booking.id,
            "slot_id": booking.slot_id,
            "client_id": booking.client_id,
            "provider_id": booking.provider_id,
            "cancel_reason": booking.cancel_reason.value if booking.cancel_reason else None,
        })
