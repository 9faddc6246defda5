"""Free/busy state for one professional.

The inventory is the set of ``availability_slots`` rows whose ``is_booked`` flag
is false. Booked rows stay in the table, pointing at their appointment, so the
slot and its booking are a single record rather than two lists kept in step.

``SlotInventory`` methods never commit; the calling service owns the transaction.
The module-level helpers below are complete operations and do commit.
"""

import logging
from datetime import datetime

from sqlalchemy import delete, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.exceptions import SlotUnavailableError, ValidationError
from backend.models.availability import (
    SLOT_SOURCE_MANUAL,
    SLOT_SOURCE_RELEASED,
    AvailabilitySlot,
)
from backend.services.range_store import require_professional
from backend.services.time_utils import slot_key

logger = logging.getLogger(__name__)


class SlotInventory:
    def __init__(self, db: Session, professional_id: int):
        self.db = db
        self.professional_id = professional_id

    def _slot_filter(self, slot_start: datetime):
        return (
            AvailabilitySlot.professional_id == self.professional_id,
            AvailabilitySlot.start_time == slot_start,
        )

    def contains(self, slot_start: datetime) -> bool:
        row = self.db.query(AvailabilitySlot.id).filter(
            *self._slot_filter(slot_start),
            AvailabilitySlot.is_booked.is_(False),
        ).first()
        return row is not None

    def add_slot(
        self,
        slot_start: datetime,
        range_id: str | None = None,
        source: str = SLOT_SOURCE_MANUAL,
    ) -> bool:
        """Offer ``slot_start``. Returns False when a row (free or booked) already exists."""
        existing = self.db.query(AvailabilitySlot.id).filter(*self._slot_filter(slot_start)).first()
        if existing is not None:
            return False

        self.db.add(
            AvailabilitySlot(
                professional_id=self.professional_id,
                start_time=slot_start,
                is_booked=False,
                range_id=range_id,
                source=source,
            )
        )
        self.db.flush()
        return True

    def remove_slot(self, slot_start: datetime) -> bool:
        """Retract a free slot. Absent or booked slots are left alone."""
        result = self.db.execute(
            delete(AvailabilitySlot)
            .where(*self._slot_filter(slot_start), AvailabilitySlot.is_booked.is_(False))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def clear(self) -> int:
        """Drop every free slot. Booked slots are not part of the inventory and survive."""
        result = self.db.execute(
            delete(AvailabilitySlot)
            .where(
                AvailabilitySlot.professional_id == self.professional_id,
                AvailabilitySlot.is_booked.is_(False),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def purge_expired(self, now: datetime) -> int:
        result = self.db.execute(
            delete(AvailabilitySlot)
            .where(
                AvailabilitySlot.professional_id == self.professional_id,
                AvailabilitySlot.is_booked.is_(False),
                AvailabilitySlot.start_time <= now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def reserve(self, slot_start: datetime, appointment_id: int) -> None:
        """Compare-and-set a free slot to booked; the loser of a race sees zero rows."""
        result = self.db.execute(
            update(AvailabilitySlot)
            .where(*self._slot_filter(slot_start), AvailabilitySlot.is_booked.is_(False))
            .values(is_booked=True, appointment_id=appointment_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info(
                'Slot %s for professional %s was taken before it could be reserved.',
                slot_key(slot_start),
                self.professional_id,
            )
            raise SlotUnavailableError('This slot was just taken. Please pick another time.')

    def release(self, slot_start: datetime) -> None:
        """Return a slot to the free set, re-creating it if it was retracted meanwhile."""
        result = self.db.execute(
            update(AvailabilitySlot)
            .where(*self._slot_filter(slot_start))
            .values(is_booked=False, appointment_id=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.add_slot(slot_start, source=SLOT_SOURCE_RELEASED)

    def free_slots(self) -> list[datetime]:
        rows = self.db.query(AvailabilitySlot.start_time).filter(
            AvailabilitySlot.professional_id == self.professional_id,
            AvailabilitySlot.is_booked.is_(False),
        ).order_by(AvailabilitySlot.start_time.asc()).all()
        return [start_time for (start_time,) in rows]

    def known_starts(self) -> set[datetime]:
        """Every slot start on record, booked or free."""
        rows = self.db.query(AvailabilitySlot.start_time).filter(
            AvailabilitySlot.professional_id == self.professional_id,
        ).all()
        return {start_time for (start_time,) in rows}

    def size(self) -> int:
        return self.db.query(func.count(AvailabilitySlot.id)).filter(
            AvailabilitySlot.professional_id == self.professional_id,
            AvailabilitySlot.is_booked.is_(False),
        ).scalar() or 0


def add_manual_slot(db: Session, professional_id: int, slot_start: datetime, now: datetime) -> bool:
    """Offer one extra slot outside any range. Re-adding an existing slot is a no-op."""
    require_professional(db, professional_id)
    if slot_start <= now:
        raise ValidationError('Slots can only be added in the future.')

    try:
        added = SlotInventory(db, professional_id).add_slot(slot_start)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if added:
        logger.info('Added manual slot %s for professional %s.', slot_key(slot_start), professional_id)
    return added


def remove_manual_slot(db: Session, professional_id: int, slot_start: datetime) -> bool:
    """Retract a free slot. Booked or absent slots are left as they are."""
    require_professional(db, professional_id)

    try:
        removed = SlotInventory(db, professional_id).remove_slot(slot_start)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    return removed
