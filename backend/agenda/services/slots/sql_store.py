# backend/agenda/services/slots/sql_store.py
"""
SQLAlchemy implementation of the Slot Store.

Atomicity: every conditional write is
  UPDATE ... WHERE id = :id AND status = :expected
followed by the booking write in the same session transaction.
rowcount != 1 → rollback → StoreConflict.

Partial unique indexes on bookings back the invariants up:
  one scheduled booking per slot, one per (client, slot_start).
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ...models.generated import Bookings, Providers, Slots
from ...schemas._time import as_utc
from ...schemas.bookings import BookingFilters, BookingRead, BookingStatus, CancelReason
from ...schemas.slots import ProviderRead, SlotCandidate, SlotRead, SlotStatus
from ..errors import BookingNotFound, ClientConflict, SlotNotFound, StoreConflict

logger = logging.getLogger(__name__)


class SqlSlotStore:
    """Slot Store over a SQLAlchemy session factory (one session per call)."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    # ── Read ─────────────────────────────────────────────────────────────

    def get_provider(self, provider_id: int) -> ProviderRead | None:
        db = self.session_factory()
        try:
            obj = db.get(Providers, provider_id)
            return ProviderRead.model_validate(obj) if obj else None
        finally:
            db.close()

    def get_slot(self, slot_id: int) -> SlotRead | None:
        db = self.session_factory()
        try:
            obj = db.get(Slots, slot_id)
            return SlotRead.model_validate(obj) if obj else None
        finally:
            db.close()

    def find_slot(self, provider_id: int, start: datetime) -> SlotRead | None:
        db = self.session_factory()
        try:
            obj = (
                db.query(Slots)
                .filter(Slots.provider_id == provider_id, Slots.start == as_utc(start))
                .first()
            )
            return SlotRead.model_validate(obj) if obj else None
        finally:
            db.close()

    def get_booking(self, booking_id: int) -> BookingRead | None:
        db = self.session_factory()
        try:
            obj = db.get(Bookings, booking_id)
            return BookingRead.model_validate(obj) if obj else None
        finally:
            db.close()

    def find_scheduled_booking(self, client_id: int, start: datetime) -> BookingRead | None:
        db = self.session_factory()
        try:
            obj = _scheduled_at(db, client_id, start)
            return BookingRead.model_validate(obj) if obj else None
        finally:
            db.close()

    def list_slots(
        self,
        provider_id: int,
        start_from: datetime | None,
        end_to: datetime | None,
        offset: int,
        limit: int,
    ) -> tuple[int, list[SlotRead]]:
        db = self.session_factory()
        try:
            query = db.query(Slots).filter(Slots.provider_id == provider_id)
            if start_from is not None:
                query = query.filter(Slots.start >= as_utc(start_from))
            if end_to is not None:
                query = query.filter(Slots.end <= as_utc(end_to))

            total = query.with_entities(func.count(Slots.id)).scalar()
            rows = query.order_by(Slots.start.asc()).offset(offset).limit(limit).all()
            return total, [SlotRead.model_validate(r) for r in rows]
        finally:
            db.close()

    def list_bookings(
        self,
        filters: BookingFilters,
        offset: int,
        limit: int,
    ) -> tuple[int, list[BookingRead]]:
        db = self.session_factory()
        try:
            query = db.query(Bookings)
            if filters.provider_id is not None:
                query = query.filter(Bookings.provider_id == filters.provider_id)
            if filters.client_id is not None:
                query = query.filter(Bookings.client_id == filters.client_id)
            if filters.status is not None:
                query = query.filter(Bookings.status == filters.status.value)
            if filters.start_from is not None:
                query = query.filter(Bookings.slot_start >= as_utc(filters.start_from))
            if filters.end_to is not None:
                query = query.filter(Bookings.slot_start <= as_utc(filters.end_to))

            total = query.with_entities(func.count(Bookings.id)).scalar()
            rows = (
                query.order_by(Bookings.slot_start.asc(), Bookings.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return total, [BookingRead.model_validate(r) for r in rows]
        finally:
            db.close()

    # ── Write ────────────────────────────────────────────────────────────

    def insert_slots(self, candidates: Iterable[SlotCandidate]) -> int:
        """
        Insert candidates as free slots, skipping existing (provider_id, start).

        Existing keys are read first; a unique-constraint collision from a
        concurrent generator rolls the batch back and the dedupe is redone
        until the batch commits. A collision that does not shrink the batch
        is not a duplicate and is re-raised.
        """
        candidates = list(candidates)
        if not candidates:
            return 0

        attempt = 0
        pending: int | None = None
        collision: IntegrityError | None = None
        while True:
            attempt += 1
            db = self.session_factory()
            try:
                existing = _existing_keys(db, candidates)
                fresh: dict[tuple[int, datetime], SlotCandidate] = {}
                for c in candidates:
                    key = (c.provider_id, as_utc(c.start))
                    if key not in existing and key not in fresh:
                        fresh[key] = c
                if pending is not None and len(fresh) >= pending:
                    break
                pending = len(fresh)

                db.add_all([
                    Slots(
                        provider_id=c.provider_id,
                        start=c.start,
                        end=c.end,
                        status=SlotStatus.FREE.value,
                    )
                    for c in fresh.values()
                ])
                db.commit()
                return len(fresh)
            except IntegrityError as e:
                db.rollback()
                collision = e
                logger.debug(f"insert_slots collided with a concurrent insert (attempt {attempt})")
            finally:
                db.close()

        raise collision

    def reserve(self, slot_id: int, client_id: int, now: datetime) -> BookingRead:
        db = self.session_factory()
        try:
            # conditional write first: no read lock to upgrade under contention
            updated = (
                db.query(Slots)
                .filter(Slots.id == slot_id, Slots.status == SlotStatus.FREE.value)
                .update({Slots.status: SlotStatus.HELD.value}, synchronize_session=False)
            )
            if updated != 1:
                db.rollback()
                if db.get(Slots, slot_id) is None:
                    raise SlotNotFound(f"Slot {slot_id} not found")
                raise StoreConflict(f"Slot {slot_id} is no longer free")

            slot = db.get(Slots, slot_id)
            slot_start = slot.start
            if _scheduled_at(db, client_id, slot_start) is not None:
                db.rollback()
                raise ClientConflict(
                    f"Client {client_id} already has a booking at {as_utc(slot_start).isoformat()}"
                )

            booking = Bookings(
                slot_id=slot_id,
                client_id=client_id,
                provider_id=slot.provider_id,
                slot_start=slot_start,
                status=BookingStatus.SCHEDULED.value,
                created_at=now,
                updated_at=now,
            )
            db.add(booking)
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                if _scheduled_at(db, client_id, slot_start) is not None:
                    raise ClientConflict(f"Client {client_id} already has a booking at that time")
                raise StoreConflict(f"Slot {slot_id} was taken concurrently")

            db.commit()
            db.refresh(booking)
            return BookingRead.model_validate(booking)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def release(self, booking_id: int, reason: CancelReason, now: datetime) -> BookingRead:
        db = self.session_factory()
        try:
            updated = (
                db.query(Bookings)
                .filter(Bookings.id == booking_id, Bookings.status == BookingStatus.SCHEDULED.value)
                .update(
                    {
                        Bookings.status: BookingStatus.CANCELLED.value,
                        Bookings.cancel_reason: reason.value,
                        Bookings.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                db.rollback()
                _raise_booking_conflict(db, booking_id)

            booking = db.get(Bookings, booking_id)
            freed = (
                db.query(Slots)
                .filter(Slots.id == booking.slot_id, Slots.status == SlotStatus.HELD.value)
                .update({Slots.status: SlotStatus.FREE.value}, synchronize_session=False)
            )
            if freed != 1:
                db.rollback()
                raise StoreConflict(f"Slot {booking.slot_id} is not held")

            db.commit()
            db.refresh(booking)
            return BookingRead.model_validate(booking)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def complete(self, booking_id: int, now: datetime) -> BookingRead:
        db = self.session_factory()
        try:
            updated = (
                db.query(Bookings)
                .filter(Bookings.id == booking_id, Bookings.status == BookingStatus.SCHEDULED.value)
                .update(
                    {
                        Bookings.status: BookingStatus.COMPLETED.value,
                        Bookings.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                db.rollback()
                _raise_booking_conflict(db, booking_id)

            db.commit()
            booking = db.get(Bookings, booking_id)
            return BookingRead.model_validate(booking)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def set_slot_status(self, slot_id: int, expected: SlotStatus, target: SlotStatus) -> SlotRead:
        db = self.session_factory()
        try:
            updated = (
                db.query(Slots)
                .filter(Slots.id == slot_id, Slots.status == expected.value)
                .update({Slots.status: target.value}, synchronize_session=False)
            )
            if updated != 1:
                db.rollback()
                if db.get(Slots, slot_id) is None:
                    raise SlotNotFound(f"Slot {slot_id} not found")
                raise StoreConflict(f"Slot {slot_id} is no longer {expected.value}")

            db.commit()
            slot = db.get(Slots, slot_id)
            return SlotRead.model_validate(slot)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


# ── Helpers ──────────────────────────────────────────────────────────────


def _scheduled_at(db: Session, client_id: int, start: datetime) -> Bookings | None:
    """Scheduled booking of a client at exactly this slot start."""
    return (
        db.query(Bookings)
        .filter(
            Bookings.client_id == client_id,
            Bookings.slot_start == as_utc(start),
            Bookings.status == BookingStatus.SCHEDULED.value,
        )
        .first()
    )


def _existing_keys(db: Session, candidates: list[SlotCandidate]) -> set[tuple[int, datetime]]:
    """(provider_id, start) pairs already stored within the candidates' span."""
    provider_ids = {c.provider_id for c in candidates}
    lo = min(c.start for c in candidates)
    hi = max(c.start for c in candidates)

    rows = (
        db.query(Slots.provider_id, Slots.start)
        .filter(
            Slots.provider_id.in_(provider_ids),
            Slots.start >= lo,
            Slots.start <= hi,
        )
        .all()
    )
    return {(pid, as_utc(start)) for pid, start in rows}


def _raise_booking_conflict(db: Session, booking_id: int) -> None:
    """Conditional booking write matched nothing: missing, or no longer scheduled."""
    if db.get(Bookings, booking_id) is None:
        raise BookingNotFound(f"Booking {booking_id} not found")
    raise StoreConflict(f"Booking {booking_id} is no longer scheduled")
