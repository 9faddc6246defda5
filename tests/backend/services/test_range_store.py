from datetime import time

import pytest

from backend.core.exceptions import NotFoundError, ValidationError
from backend.services import range_store


def test_add_range_appends_in_order(db, professional) -> None:
    first = range_store.add_range(db, professional.id, 1, time(9, 0), time(12, 0), 30)
    second = range_store.add_range(db, professional.id, 3, time(14, 0), time(16, 0), 15)

    ranges = range_store.list_ranges(db, professional.id)

    assert [availability_range.id for availability_range in ranges] == [first.id, second.id]
    assert [availability_range.position for availability_range in ranges] == [0, 1]
    assert first.id != second.id


def test_add_range_accepts_identical_duplicates(db, professional) -> None:
    range_store.add_range(db, professional.id, 1, time(9, 0), time(12, 0), 30)
    range_store.add_range(db, professional.id, 1, time(9, 0), time(12, 0), 30)

    assert len(range_store.list_ranges(db, professional.id)) == 2


@pytest.mark.parametrize(
    ('day_of_week', 'start', 'end', 'interval', 'message'),
    [
        (1, time(10, 0), time(9, 0), 30, 'Start time must be before end time.'),
        (1, time(9, 0), time(9, 0), 30, 'Start time must be before end time.'),
        (1, time(9, 0, 30), time(9, 0, 50), 30, 'Start time must be before end time.'),
        (1, time(9, 0), time(10, 0), 4, 'Interval must be between 5 and 120 minutes.'),
        (1, time(9, 0), time(10, 0), 121, 'Interval must be between 5 and 120 minutes.'),
        (0, time(9, 0), time(10, 0), 30, 'Day of week must be between 1 (Monday) and 7 (Sunday).'),
        (8, time(9, 0), time(10, 0), 30, 'Day of week must be between 1 (Monday) and 7 (Sunday).'),
    ],
)
def test_add_range_rejects_invalid_input(
    db,
    professional,
    day_of_week: int,
    start: time,
    end: time,
    interval: int,
    message: str,
) -> None:
    with pytest.raises(ValidationError) as exception_info:
        range_store.add_range(db, professional.id, day_of_week, start, end, interval)

    assert exception_info.value.message == message
    assert range_store.list_ranges(db, professional.id) == []


def test_add_range_accepts_interval_bounds(db, professional) -> None:
    range_store.add_range(db, professional.id, 2, time(9, 0), time(10, 0), 5)
    range_store.add_range(db, professional.id, 2, time(9, 0), time(11, 0), 120)

    assert len(range_store.list_ranges(db, professional.id)) == 2


def test_add_range_requires_existing_professional(db) -> None:
    with pytest.raises(NotFoundError):
        range_store.add_range(db, 999, 1, time(9, 0), time(10, 0), 30)


def test_list_ranges_is_empty_for_new_professional(db, professional) -> None:
    assert range_store.list_ranges(db, professional.id) == []


def test_remove_range_by_id(db, professional) -> None:
    keep = range_store.add_range(db, professional.id, 1, time(9, 0), time(12, 0), 30)
    drop = range_store.add_range(db, professional.id, 2, time(9, 0), time(12, 0), 30)

    range_store.remove_range(db, professional.id, drop.id)

    assert [availability_range.id for availability_range in range_store.list_ranges(db, professional.id)] == [keep.id]


def test_remove_range_by_unknown_id_raises(db, professional) -> None:
    with pytest.raises(NotFoundError):
        range_store.remove_range(db, professional.id, 'missing')


def test_remove_range_at_index(db, professional) -> None:
    first = range_store.add_range(db, professional.id, 1, time(9, 0), time(12, 0), 30)
    second = range_store.add_range(db, professional.id, 2, time(9, 0), time(12, 0), 30)
    third = range_store.add_range(db, professional.id, 3, time(9, 0), time(12, 0), 30)

    removed_id = range_store.remove_range_at(db, professional.id, 1)

    assert removed_id == second.id
    remaining = [availability_range.id for availability_range in range_store.list_ranges(db, professional.id)]
    assert remaining == [first.id, third.id]


@pytest.mark.parametrize('index', [-1, 1, 5])
def test_remove_range_at_out_of_bounds_raises(db, professional, index: int) -> None:
    range_store.add_range(db, professional.id, 1, time(9, 0), time(12, 0), 30)

    with pytest.raises(NotFoundError):
        range_store.remove_range_at(db, professional.id, index)
