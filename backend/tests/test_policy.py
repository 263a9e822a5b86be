from datetime import timedelta

import pytest

from agenda.schemas.actors import Actor, Role
from agenda.services.booking.policy import (
    Operation,
    Relationship,
    admit_cancellation,
    authorize,
    is_allowed,
    relationships,
)
from agenda.services.errors import Forbidden
from agenda.services.slots import CANCELLATION_MIN_ADVANCE

from conftest import MONDAY, at

SLOT_START = at(MONDAY, 10)


def test_threshold_is_24_hours():
    assert CANCELLATION_MIN_ADVANCE == timedelta(hours=24)


@pytest.mark.parametrize("before, admitted", [
    (timedelta(hours=23, minutes=59), False),
    (timedelta(hours=24), True),
    (timedelta(hours=24, minutes=1), True),
    (timedelta(0), False),
    (-timedelta(hours=1), False),
])
def test_client_window(before, admitted):
    assert admit_cancellation(SLOT_START - before, SLOT_START, Role.CLIENT) is admitted


@pytest.mark.parametrize("before", [timedelta(hours=48), timedelta(minutes=1), -timedelta(days=1)])
def test_administrator_always_admitted(before):
    assert admit_cancellation(SLOT_START - before, SLOT_START, Role.ADMINISTRATOR)


def test_custom_threshold():
    now = SLOT_START - timedelta(hours=3)
    assert admit_cancellation(now, SLOT_START, Role.CLIENT, timedelta(hours=2))
    assert not admit_cancellation(now, SLOT_START, Role.CLIENT, timedelta(hours=4))


def test_relationships():
    assert relationships(Actor(id=1, role=Role.ADMINISTRATOR), 9, 9) == {Relationship.ADMINISTRATOR}
    assert relationships(Actor(id=9, role=Role.PROVIDER), 9, 9) == {Relationship.OWNING_PROVIDER}
    assert relationships(Actor(id=9, role=Role.CLIENT), 9, 9) == {Relationship.OWNING_CLIENT}
    assert relationships(Actor(id=8, role=Role.PROVIDER), 9, 8) == set()


@pytest.mark.parametrize("operation, relationship, allowed", [
    (Operation.CANCEL, Relationship.ADMINISTRATOR, True),
    (Operation.CANCEL, Relationship.OWNING_CLIENT, True),
    (Operation.CANCEL, Relationship.OWNING_PROVIDER, False),
    (Operation.UPDATE_OUTCOME, Relationship.OWNING_PROVIDER, True),
    (Operation.UPDATE_OUTCOME, Relationship.OWNING_CLIENT, False),
    (Operation.SET_SLOT_STATUS, Relationship.ADMINISTRATOR, True),
    (Operation.SET_SLOT_STATUS, Relationship.OWNING_CLIENT, False),
    (Operation.LIST_BOOKINGS, Relationship.ADMINISTRATOR, True),
    (Operation.LIST_BOOKINGS, Relationship.OWNING_PROVIDER, True),
    (Operation.LIST_BOOKINGS, Relationship.OWNING_CLIENT, True),
])
def test_permission_table(operation, relationship, allowed):
    assert is_allowed(operation, {relationship}) is allowed


def test_authorize_raises_forbidden():
    with pytest.raises(Forbidden):
        authorize(Operation.SET_SLOT_STATUS, Actor(id=3, role=Role.PROVIDER), provider_id=4)
    authorize(Operation.SET_SLOT_STATUS, Actor(id=4, role=Role.PROVIDER), provider_id=4)
