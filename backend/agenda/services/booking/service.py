# backend/agenda/services/booking/service.py
"""
Boundary of the scheduling core.

Callers get an OperationResult instead of an exception; they map
`error.kind` to their own transport responses. Anything that is not a
SchedulingError is a bug or an infrastructure failure and propagates.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Optional, TypeVar

from ...schemas.actors import Actor
from ...schemas.bookings import BookingFilters, BookingRead, BookingStatus
from ...schemas.pagination import Page, PageParams
from ...schemas.slots import SlotGenerateRequest, SlotRead, SlotStatus, SlotsGenerated
from .. import listing
from ..errors import ErrorKind, SchedulingError
from .engine import BookingEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class OperationError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[OperationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, exc: SchedulingError) -> "OperationResult[T]":
        return cls(error=OperationError(kind=exc.kind, message=exc.message))


class BookingService:
    """Result-returning facade over BookingEngine and the listing queries."""

    def __init__(self, engine: BookingEngine):
        self.engine = engine

    def generate_slots(self, request: SlotGenerateRequest) -> OperationResult[SlotsGenerated]:
        return self._run(
            "generate_slots",
            self.engine.generate_slots,
            request.provider_id,
            request.date_range,
            request.daily_window,
        )

    def reserve(self, slot_id: int, client_id: int) -> OperationResult[BookingRead]:
        return self._run("reserve", self.engine.reserve, slot_id, client_id)

    def cancel(self, booking_id: int, actor: Actor) -> OperationResult[BookingRead]:
        return self._run("cancel", self.engine.cancel, booking_id, actor)

    def update_outcome(
        self,
        booking_id: int,
        actor: Actor,
        outcome: BookingStatus,
    ) -> OperationResult[BookingRead]:
        return self._run("update_outcome", self.engine.update_outcome, booking_id, actor, outcome)

    def set_slot_status(
        self,
        slot_id: int,
        actor: Actor,
        target: SlotStatus,
    ) -> OperationResult[SlotRead]:
        return self._run("set_slot_status", self.engine.set_slot_status, slot_id, actor, target)

    def list_slots(
        self,
        provider_id: int,
        start_from: datetime | None = None,
        end_to: datetime | None = None,
        params: PageParams | None = None,
    ) -> OperationResult[Page[SlotRead]]:
        return self._run(
            "list_slots",
            listing.list_slots,
            self.engine.store,
            provider_id,
            start_from,
            end_to,
            params,
        )

    def list_bookings(
        self,
        actor: Actor,
        filters: BookingFilters | None = None,
        params: PageParams | None = None,
    ) -> OperationResult[Page[BookingRead]]:
        return self._run(
            "list_bookings",
            listing.list_bookings,
            self.engine.store,
            actor,
            filters,
            params,
        )

    def _run(self, name: str, fn, *args) -> OperationResult:
        try:
            return OperationResult.success(fn(*args))
        except SchedulingError as e:
            logger.info(f"{name} rejected: {e.kind.value}: {e.message}")
            return OperationResult.failure(e)
        except Exception:
            logger.exception(f"{name} failed")
            raise
