from datetime import date, datetime, time

import pytest

from backend.core.exceptions import ValidationError
from backend.services.time_utils import (
    combine_slot,
    iso_day_of_week,
    iterate_day_slots,
    iterate_window_days,
    matches_day_of_week,
    parse_slot_key,
    slot_key,
)


def test_slot_key_uses_iso_local_datetime_with_seconds() -> None:
    assert slot_key(datetime(2024, 1, 15, 9, 0)) == '2024-01-15T09:00:00'
    assert slot_key(datetime(2024, 1, 15, 9, 0, 0, 123456)) == '2024-01-15T09:00:00'


def test_parse_slot_key_accepts_minutes_only_form() -> None:
    assert parse_slot_key(' 2024-01-15T09:00 ') == datetime(2024, 1, 15, 9, 0)


@pytest.mark.parametrize('value', ['not-a-date', '', '2024-13-01T09:00:00'])
def test_parse_slot_key_rejects_malformed_values(value: str) -> None:
    with pytest.raises(ValidationError):
        parse_slot_key(value)


def test_parse_slot_key_rejects_offsets() -> None:
    with pytest.raises(ValidationError) as exception_info:
        parse_slot_key('2024-01-15T09:00:00+02:00')

    assert 'local datetimes' in exception_info.value.message


def test_day_of_week_is_iso_monday_one() -> None:
    assert iso_day_of_week(date(2024, 6, 3)) == 1
    assert iso_day_of_week(date(2024, 6, 9)) == 7
    assert matches_day_of_week(date(2024, 6, 5), 3)
    assert not matches_day_of_week(date(2024, 6, 5), 2)


def test_iterate_window_days_includes_both_ends() -> None:
    days = list(iterate_window_days(date(2024, 6, 3), 28))

    assert len(days) == 29
    assert days[0] == date(2024, 6, 3)
    assert days[-1] == date(2024, 7, 1)


def test_iterate_window_days_zero_length_window_is_single_day() -> None:
    assert list(iterate_window_days(date(2024, 6, 3), 0)) == [date(2024, 6, 3)]


def test_iterate_day_slots_excludes_end_time() -> None:
    slots = iterate_day_slots(date(2024, 6, 3), time(9, 0), time(10, 0), 30)

    assert slots == [datetime(2024, 6, 3, 9, 0), datetime(2024, 6, 3, 9, 30)]


def test_iterate_day_slots_drops_partial_trailing_interval() -> None:
    slots = iterate_day_slots(date(2024, 6, 3), time(9, 0), time(10, 0), 25)

    assert slots == [
        datetime(2024, 6, 3, 9, 0),
        datetime(2024, 6, 3, 9, 25),
        datetime(2024, 6, 3, 9, 50),
    ]


def test_iterate_day_slots_stops_before_midnight() -> None:
    slots = iterate_day_slots(date(2024, 6, 3), time(23, 0), time(23, 59), 30)

    assert slots == [datetime(2024, 6, 3, 23, 0), datetime(2024, 6, 3, 23, 30)]


def test_iterate_day_slots_rejects_non_positive_interval() -> None:
    with pytest.raises(ValidationError):
        iterate_day_slots(date(2024, 6, 3), time(9, 0), time(10, 0), 0)


def test_combine_slot_drops_microseconds() -> None:
    assert combine_slot(date(2024, 6, 3), time(9, 0, 0, 5)) == datetime(2024, 6, 3, 9, 0)
