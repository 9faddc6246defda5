"""Expansion of recurring availability ranges into concrete slot timestamps."""

import logging
from datetime import date, datetime
from collections.abc import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.appointment import LIVE_STATUSES, Appointment
from backend.models.availability import SLOT_SOURCE_RANGE, AvailabilityRange
from backend.services.range_store import list_ranges, require_professional
from backend.services.slot_inventory import SlotInventory
from backend.services.time_utils import iterate_day_slots, iterate_window_days, matches_day_of_week

logger = logging.getLogger(__name__)


def expand_ranges(
    ranges: Iterable[AvailabilityRange],
    window_start: date,
    now: datetime,
    window_days: int = config.SLOT_WINDOW_DAYS,
) -> dict[datetime, str | None]:
    """Map each future slot start in the window to the first range that produced it."""
    ranges = list(ranges)
    expanded: dict[datetime, str | None] = {}

    if not ranges:
        return expanded

    for current_day in iterate_window_days(window_start, window_days):
        for availability_range in ranges:
            if not matches_day_of_week(current_day, availability_range.day_of_week):
                continue

            for slot_start in iterate_day_slots(
                current_day,
                availability_range.start_time,
                availability_range.end_time,
                availability_range.interval_minutes,
            ):
                if slot_start > now:
                    expanded.setdefault(slot_start, getattr(availability_range, 'id', None))

    return expanded


def generate_slots(
    ranges: Iterable[AvailabilityRange],
    window_start: date,
    now: datetime,
    window_days: int = config.SLOT_WINDOW_DAYS,
) -> list[datetime]:
    """Distinct future slot starts for ``ranges`` over the window, in ascending order."""
    return sorted(expand_ranges(ranges, window_start, now, window_days))


def get_live_slot_starts(db: Session, professional_id: int) -> set[datetime]:
    rows = db.query(Appointment.appointment_datetime).filter(
        Appointment.professional_id == professional_id,
        Appointment.status.in_(LIVE_STATUSES),
    ).all()
    return {appointment_datetime for (appointment_datetime,) in rows}


def regenerate_slots(
    db: Session,
    professional_id: int,
    now: datetime,
    window_days: int = config.SLOT_WINDOW_DAYS,
    replace: bool = False,
) -> list[datetime]:
    """Materialize range-derived slots into the inventory and return the newly added starts.

    Additive by default: timestamps already on record (free or booked) and those held by
    a live appointment are skipped, and expired free slots are purged. With ``replace``,
    every free slot is cleared first, manual ones included. Booked slots are never touched.
    """
    require_professional(db, professional_id)
    inventory = SlotInventory(db, professional_id)

    try:
        ranges = list_ranges(db, professional_id)
        expanded = expand_ranges(ranges, now.date(), now, window_days)

        purged = inventory.purge_expired(now)
        cleared = inventory.clear() if replace else 0

        taken = inventory.known_starts() | get_live_slot_starts(db, professional_id)

        added: list[datetime] = []
        for slot_start in sorted(expanded):
            if slot_start in taken:
                continue
            inventory.add_slot(slot_start, range_id=expanded[slot_start], source=SLOT_SOURCE_RANGE)
            added.append(slot_start)

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Slot regeneration failed for professional %s.', professional_id)
        raise

    logger.info(
        'Regenerated slots for professional %s: %d added, %d expired purged, %d cleared.',
        professional_id,
        len(added),
        purged,
        cleared,
    )
    return added
