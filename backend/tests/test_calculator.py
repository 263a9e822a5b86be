from datetime import date, timedelta

import pytest

from agenda.schemas.slots import DailyWindow, DateRange
from agenda.services.errors import InvalidDuration
from agenda.services.slots import BookingConfig, SlotGrid, generate_slot_grid

from conftest import MONDAY, at


def grid(duration=30, start=MONDAY, end=MONDAY, window=("08:00", "09:00"), config=None):
    return generate_slot_grid(
        7,
        duration,
        DateRange(start=start, end=end),
        DailyWindow(start=window[0], end=window[1]),
        config or BookingConfig(),
    )


def test_single_weekday_30_minutes_yields_two_slots():
    slots = list(grid())

    assert [(s.start, s.end) for s in slots] == [
        (at(MONDAY, 8, 0), at(MONDAY, 8, 30)),
        (at(MONDAY, 8, 30), at(MONDAY, 9, 0)),
    ]
    assert all(s.provider_id == 7 for s in slots)


def test_partial_slot_is_discarded():
    slots = list(grid(duration=40, window=("08:00", "10:00")))

    assert [s.start for s in slots] == [at(MONDAY, 8, 0), at(MONDAY, 8, 40), at(MONDAY, 9, 20)]
    assert slots[-1].end == at(MONDAY, 10, 0)

    slots = list(grid(duration=45, window=("08:00", "10:00")))
    assert slots[-1].end == at(MONDAY, 9, 30)


def test_weekend_days_are_skipped():
    saturday = MONDAY - timedelta(days=2)
    slots = list(grid(start=saturday, end=MONDAY + timedelta(days=6)))

    days = sorted({s.start.date() for s in slots})
    assert days == [MONDAY + timedelta(days=i) for i in range(5)]
    assert all(s.start.weekday() < 5 for s in slots)


def test_grid_properties_over_a_month():
    duration = 25
    slots = list(grid(
        duration=duration,
        start=date(2030, 2, 1),
        end=date(2030, 2, 28),
        window=("07:10", "18:45"),
    ))

    assert slots
    for s in slots:
        assert s.end - s.start == timedelta(minutes=duration)
        assert s.start.weekday() not in (5, 6)
    for prev, nxt in zip(slots, slots[1:]):
        assert prev.start < nxt.start
        assert prev.end <= nxt.start


def test_grid_is_restartable():
    g = grid(start=MONDAY, end=MONDAY + timedelta(days=1))

    first = list(g)
    second = list(g)

    assert first == second
    assert len(first) == 4


@pytest.mark.parametrize("duration", [0, -15])
def test_non_positive_duration_fails_before_iteration(duration):
    with pytest.raises(InvalidDuration):
        grid(duration=duration)


@pytest.mark.parametrize("duration", [0, -15])
def test_slot_grid_rejects_non_positive_duration(duration):
    with pytest.raises(InvalidDuration):
        SlotGrid(
            7,
            duration,
            DateRange(start=MONDAY, end=MONDAY),
            DailyWindow(start="08:00", end="09:00"),
            BookingConfig().working_weekdays,
        )


@pytest.mark.parametrize("window", [("09:00", "09:00"), ("10:00", "08:00")])
def test_empty_or_inverted_window_yields_nothing(window):
    assert list(grid(window=window)) == []


def test_inverted_date_range_is_empty_not_error():
    assert list(grid(start=MONDAY, end=MONDAY - timedelta(days=1))) == []


def test_working_weekdays_are_configurable():
    config = BookingConfig(working_weekdays=(0,))
    slots = list(grid(start=MONDAY, end=MONDAY + timedelta(days=6), config=config))

    assert {s.start.date() for s in slots} == {MONDAY}


def test_config_rejects_bad_values():
    with pytest.raises(ValueError):
        BookingConfig(store_retry_limit=0)
    with pytest.raises(ValueError):
        BookingConfig(cancel_min_advance_hours=-1)
    with pytest.raises(ValueError):
        BookingConfig(working_weekdays=(7,))
