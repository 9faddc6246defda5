from datetime import date, datetime, time, timedelta
from collections.abc import Iterator

from backend.core.exceptions import ValidationError

SLOT_KEY_TIMESPEC = 'seconds'


def combine_slot(slot_date: date, slot_time: time) -> datetime:
    return datetime.combine(slot_date, slot_time).replace(microsecond=0)


def slot_key(slot_start: datetime) -> str:
    """ISO-8601 local datetime used as the slot identity, e.g. ``2024-01-15T09:00:00``."""
    return slot_start.replace(microsecond=0).isoformat(timespec=SLOT_KEY_TIMESPEC)


def require_local_datetime(value: datetime) -> datetime:
    if value.tzinfo is not None:
        raise ValidationError('Timestamps must be local datetimes without a UTC offset.')
    return value


def parse_slot_key(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f'Invalid slot timestamp: {value!r}.') from exc

    return require_local_datetime(parsed).replace(microsecond=0)


def iso_day_of_week(day: date) -> int:
    return day.isoweekday()


def matches_day_of_week(day: date, day_of_week: int) -> bool:
    return day.isoweekday() == day_of_week


def iterate_window_days(window_start: date, window_days: int) -> Iterator[date]:
    """Every calendar day from ``window_start`` through ``window_start + window_days``, inclusive."""
    current_day = window_start
    last_day = window_start + timedelta(days=window_days)

    while current_day <= last_day:
        yield current_day
        current_day += timedelta(days=1)


def iterate_day_slots(slot_date: date, start_time: time, end_time: time, interval_minutes: int) -> list[datetime]:
    """Slot starts from ``start_time`` stepping by ``interval_minutes``; ``end_time`` is exclusive."""
    if interval_minutes <= 0:
        raise ValidationError('Interval must be a positive number of minutes.')

    slots: list[datetime] = []
    current = combine_slot(slot_date, start_time)
    end = combine_slot(slot_date, end_time)
    step = timedelta(minutes=interval_minutes)

    while current < end:
        slots.append(current)
        current += step

    return slots
