"""CRUD over a professional's recurring availability ranges."""

import logging
from datetime import time

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.core.exceptions import NotFoundError, ValidationError
from backend.models.availability import AvailabilityRange
from backend.models.professional import Professional

logger = logging.getLogger(__name__)


def require_professional(db: Session, professional_id: int) -> Professional:
    professional = db.query(Professional).filter(Professional.id == professional_id).first()
    if professional is None:
        raise NotFoundError('Professional not found.')
    return professional


def validate_range(day_of_week: int, start_time: time, end_time: time, interval_minutes: int) -> None:
    if not isinstance(day_of_week, int) or not 1 <= day_of_week <= 7:
        raise ValidationError('Day of week must be between 1 (Monday) and 7 (Sunday).')

    if start_time >= end_time:
        raise ValidationError('Start time must be before end time.')

    if (
        isinstance(interval_minutes, bool)
        or not isinstance(interval_minutes, int)
        or not config.MIN_INTERVAL_MINUTES <= interval_minutes <= config.MAX_INTERVAL_MINUTES
    ):
        raise ValidationError(
            f'Interval must be between {config.MIN_INTERVAL_MINUTES} and '
            f'{config.MAX_INTERVAL_MINUTES} minutes.'
        )


def list_ranges(db: Session, professional_id: int) -> list[AvailabilityRange]:
    require_professional(db, professional_id)
    return db.query(AvailabilityRange).filter(
        AvailabilityRange.professional_id == professional_id,
    ).order_by(AvailabilityRange.position.asc(), AvailabilityRange.created_at.asc()).all()


def add_range(
    db: Session,
    professional_id: int,
    day_of_week: int,
    start_time: time,
    end_time: time,
    interval_minutes: int,
) -> AvailabilityRange:
    """Append a range. Identical ranges are accepted; they only produce duplicate (merged) slots."""
    start_time = start_time.replace(second=0, microsecond=0)
    end_time = end_time.replace(second=0, microsecond=0)
    validate_range(day_of_week, start_time, end_time, interval_minutes)
    require_professional(db, professional_id)

    last_position = db.query(func.max(AvailabilityRange.position)).filter(
        AvailabilityRange.professional_id == professional_id,
    ).scalar()

    availability_range = AvailabilityRange(
        professional_id=professional_id,
        position=0 if last_position is None else last_position + 1,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        interval_minutes=interval_minutes,
    )

    try:
        db.add(availability_range)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(availability_range)
    logger.info('Added availability range %s for professional %s.', availability_range.id, professional_id)
    return availability_range


def remove_range(db: Session, professional_id: int, range_id: str) -> None:
    """Delete a range by its stable id. Slots it already produced stay offered."""
    require_professional(db, professional_id)

    availability_range = db.query(AvailabilityRange).filter(
        AvailabilityRange.id == range_id,
        AvailabilityRange.professional_id == professional_id,
    ).first()
    if availability_range is None:
        raise NotFoundError('Availability range not found.')

    _delete_range(db, availability_range)


def remove_range_at(db: Session, professional_id: int, index: int) -> str:
    """Delete the range at ``index`` in list order and return its id."""
    ranges = list_ranges(db, professional_id)
    if index < 0 or index >= len(ranges):
        raise NotFoundError(f'No availability range at index {index}.')

    availability_range = ranges[index]
    range_id = availability_range.id
    _delete_range(db, availability_range)
    return range_id


def _delete_range(db: Session, availability_range: AvailabilityRange) -> None:
    range_id = availability_range.id
    professional_id = availability_range.professional_id

    try:
        db.delete(availability_range)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info('Removed availability range %s for professional %s.', range_id, professional_id)
