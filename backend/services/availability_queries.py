"""Read-only projections over the slot inventory."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import distinct
from sqlalchemy.orm import Session

from backend.core import config
from backend.core.exceptions import ValidationError
from backend.models.availability import AvailabilitySlot
from backend.services.range_store import require_professional
from backend.services.slot_inventory import SlotInventory
from backend.services.time_utils import require_local_datetime


@dataclass(frozen=True)
class AvailabilityStats:
    total_slots: int
    future_slots: int
    dates_with_availability: int
    average_slots_per_day: float
    next_available_slot: datetime | None


def _free_slots(db: Session, professional_id: int) -> list[datetime]:
    require_professional(db, professional_id)
    return SlotInventory(db, professional_id).free_slots()


def list_slots(db: Session, professional_id: int) -> list[datetime]:
    return _free_slots(db, professional_id)


def availability_stats(db: Session, professional_id: int, now: datetime) -> AvailabilityStats:
    slots = _free_slots(db, professional_id)
    future = [slot_start for slot_start in slots if slot_start > now]
    future_dates = {slot_start.date() for slot_start in future}

    average = 0.0
    if future_dates:
        # Half-up to one decimal: 5 slots over 4 days reads as 1.3.
        average = float(
            (Decimal(len(future)) / Decimal(len(future_dates))).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)
        )

    return AvailabilityStats(
        total_slots=len(slots),
        future_slots=len(future),
        dates_with_availability=len(future_dates),
        average_slots_per_day=average,
        next_available_slot=min(future) if future else None,
    )


def slots_for_date(db: Session, professional_id: int, slot_date: date) -> list[datetime]:
    """All free slots on ``slot_date``, past ones included."""
    return [slot_start for slot_start in _free_slots(db, professional_id) if slot_start.date() == slot_date]


def slots_for_range(db: Session, professional_id: int, start: datetime, end: datetime) -> list[datetime]:
    require_local_datetime(start)
    require_local_datetime(end)
    if start > end:
        raise ValidationError('Start must not be after end.')

    return [slot_start for slot_start in _free_slots(db, professional_id) if start <= slot_start <= end]


def is_slot_available(db: Session, professional_id: int, slot_start: datetime, now: datetime) -> bool:
    require_professional(db, professional_id)
    return slot_start > now and SlotInventory(db, professional_id).contains(slot_start)


def next_available_slot(
    db: Session,
    professional_id: int,
    now: datetime,
    lookahead_days: int = config.NEXT_SLOT_LOOKAHEAD_DAYS,
) -> datetime | None:
    horizon = now + timedelta(days=lookahead_days)
    upcoming = [slot_start for slot_start in _free_slots(db, professional_id) if now < slot_start <= horizon]
    return upcoming[0] if upcoming else None


def professionals_with_availability(db: Session, now: datetime) -> list[int]:
    rows = db.query(distinct(AvailabilitySlot.professional_id)).filter(
        AvailabilitySlot.is_booked.is_(False),
        AvailabilitySlot.start_time > now,
    ).order_by(AvailabilitySlot.professional_id.asc()).all()
    return [professional_id for (professional_id,) in rows]
