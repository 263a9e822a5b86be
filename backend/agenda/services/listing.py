# backend/agenda/services/listing.py
"""
Paginated reads of slots and bookings.

Bookings are scoped through the LIST_BOOKINGS permission:
  administrator → everything (optional provider/client filters)
  provider      → own bookings (optional client filter)
  client        → own bookings (optional provider filter)
"""

from datetime import datetime

from ..schemas.actors import Actor, Role
from ..schemas.bookings import BookingFilters, BookingRead
from ..schemas.pagination import Page, PageParams
from ..schemas.slots import SlotRead
from .booking.policy import Operation, authorize, is_allowed, relationships
from .slots.store import SlotStore


def list_slots(
    store: SlotStore,
    provider_id: int,
    start_from: datetime | None = None,
    end_to: datetime | None = None,
    params: PageParams | None = None,
) -> Page[SlotRead]:
    """Slots of a provider within [start_from, end_to], ordered by start."""
    params = params or PageParams()
    total, items = store.list_slots(provider_id, start_from, end_to, params.offset, params.limit)
    return Page[SlotRead].build(items, total, params)


def scope_booking_filters(actor: Actor, filters: BookingFilters) -> BookingFilters:
    """
    Narrow the requested filters to what the actor may see.

    An actor holding a relationship to every record lists unscoped; anyone
    else is pinned to their own provider_id / client_id and must then own
    the result under LIST_BOOKINGS.
    """
    if is_allowed(Operation.LIST_BOOKINGS, relationships(actor)):
        return filters

    if actor.role == Role.PROVIDER:
        filters = filters.model_copy(update={"provider_id": actor.id})
    elif actor.role == Role.CLIENT:
        filters = filters.model_copy(update={"client_id": actor.id})

    authorize(
        Operation.LIST_BOOKINGS,
        actor,
        provider_id=filters.provider_id,
        client_id=filters.client_id,
        target="bookings",
    )
    return filters


def list_bookings(
    store: SlotStore,
    actor: Actor,
    filters: BookingFilters | None = None,
    params: PageParams | None = None,
) -> Page[BookingRead]:
    params = params or PageParams()
    scoped = scope_booking_filters(actor, filters or BookingFilters())
    total, items = store.list_bookings(scoped, params.offset, params.limit)
    return Page[BookingRead].build(items, total, params)
