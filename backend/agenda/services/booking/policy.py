# backend/agenda/services/booking/policy.py
"""
Cancellation policy and the permission table.

Permissions are keyed by (operation, relationship of the actor to the
record). The engine resolves the relationships once and asks `is_allowed`.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum

from ...schemas.actors import Actor, Role
from ..errors import Forbidden
from ..slots.config import CANCELLATION_MIN_ADVANCE

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    CANCEL = "cancel"
    UPDATE_OUTCOME = "update_outcome"
    SET_SLOT_STATUS = "set_slot_status"
    LIST_BOOKINGS = "list_bookings"


class Relationship(str, Enum):
    ADMINISTRATOR = "administrator"
    OWNING_PROVIDER = "owning_provider"
    OWNING_CLIENT = "owning_client"


PERMISSIONS: dict[Operation, frozenset[Relationship]] = {
    Operation.CANCEL: frozenset({Relationship.ADMINISTRATOR, Relationship.OWNING_CLIENT}),
    Operation.UPDATE_OUTCOME: frozenset({Relationship.ADMINISTRATOR, Relationship.OWNING_PROVIDER}),
    Operation.SET_SLOT_STATUS: frozenset({Relationship.ADMINISTRATOR, Relationship.OWNING_PROVIDER}),
    # administrators list unscoped; owners only their own bookings
    Operation.LIST_BOOKINGS: frozenset({
        Relationship.ADMINISTRATOR,
        Relationship.OWNING_PROVIDER,
        Relationship.OWNING_CLIENT,
    }),
}


def relationships(
    actor: Actor,
    provider_id: int | None = None,
    client_id: int | None = None,
) -> set[Relationship]:
    """Relationships the actor has with a slot/booking owned by provider_id/client_id."""
    found: set[Relationship] = set()
    if actor.role == Role.ADMINISTRATOR:
        found.add(Relationship.ADMINISTRATOR)
    if actor.role == Role.PROVIDER and provider_id is not None and actor.id == provider_id:
        found.add(Relationship.OWNING_PROVIDER)
    if actor.role == Role.CLIENT and client_id is not None and actor.id == client_id:
        found.add(Relationship.OWNING_CLIENT)
    return found


def is_allowed(operation: Operation, held: set[Relationship]) -> bool:
    return bool(PERMISSIONS[operation] & held)


def authorize(
    operation: Operation,
    actor: Actor,
    provider_id: int | None = None,
    client_id: int | None = None,
    target: str = "",
) -> None:
    """Raise Forbidden unless the actor may perform the operation."""
    if is_allowed(operation, relationships(actor, provider_id, client_id)):
        return
    logger.warning(
        f"Authorization: {actor.role.value} {actor.id} denied {operation.value} on {target}"
    )
    raise Forbidden(f"{actor.role.value} {actor.id} may not {operation.value} {target}".strip())


def admit_cancellation(
    now: datetime,
    slot_start: datetime,
    actor_role: Role,
    min_advance: timedelta = CANCELLATION_MIN_ADVANCE,
) -> bool:
    """
    Whether a cancellation may go ahead.

    Administrators always; anyone else only while slot_start - now >= min_advance.
    """
    if actor_role == Role.ADMINISTRATOR:
        return True
    return slot_start - now >= min_advance
