"""Appointment lifecycle coordinated with the slot inventory.

Every mutation here changes the appointment and its slot row in one transaction:
either both land or neither does.
"""

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.exceptions import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    SchedulingError,
    SlotAlreadyBookedError,
    SlotUnavailableError,
    ValidationError,
)
from backend.models.appointment import LIVE_STATUSES, Appointment, AppointmentStatus
from backend.models.professional import Professional
from backend.models.user import PATIENT_ROLE, User
from backend.services.range_store import require_professional
from backend.services.slot_inventory import SlotInventory
from backend.services.time_utils import require_local_datetime, slot_key

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = 'This slot was just taken. Please pick another time.'


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFoundError('Appointment not found.')
    return appointment


def _require_patient(db: Session, patient_id: int) -> User:
    patient = db.query(User).filter(User.id == patient_id).first()
    if patient is None:
        raise NotFoundError('Patient not found.')
    if patient.role != PATIENT_ROLE:
        raise AuthorizationError('Only patients can book appointments.')
    return patient


def _find_live_appointment(
    db: Session,
    professional_id: int,
    time_slot: str,
    exclude_id: int | None = None,
) -> Appointment | None:
    query = db.query(Appointment).filter(
        Appointment.professional_id == professional_id,
        Appointment.time_slot == time_slot,
        Appointment.status.in_(LIVE_STATUSES),
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    return query.first()


def _ensure_bookable(
    db: Session,
    inventory: SlotInventory,
    slot_start: datetime,
    now: datetime,
    exclude_id: int | None = None,
) -> None:
    if slot_start <= now:
        raise ValidationError('Appointments must be scheduled in the future.')

    if not inventory.contains(slot_start):
        raise SlotUnavailableError(SLOT_TAKEN_MESSAGE)

    if _find_live_appointment(db, inventory.professional_id, slot_key(slot_start), exclude_id) is not None:
        raise SlotAlreadyBookedError('This slot is already booked.')


def _commit_or_rollback(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise SlotAlreadyBookedError('This slot is already booked.') from exc
    except SQLAlchemyError:
        db.rollback()
        raise


def book_appointment(
    db: Session,
    patient_id: int,
    professional_id: int,
    slot_start: datetime,
    now: datetime,
    reason: str | None = None,
) -> Appointment:
    professional = require_professional(db, professional_id)
    _require_patient(db, patient_id)
    inventory = SlotInventory(db, professional.id)

    try:
        _ensure_bookable(db, inventory, slot_start, now)

        appointment = Appointment(
            patient_id=patient_id,
            professional_id=professional.id,
            appointment_datetime=slot_start,
            time_slot=slot_key(slot_start),
            status=AppointmentStatus.SCHEDULED.value,
            reason=reason,
            consultation_fee=professional.consultation_fee,
        )
        db.add(appointment)
        db.flush()
        inventory.reserve(slot_start, appointment.id)
    except IntegrityError as exc:
        db.rollback()
        raise SlotAlreadyBookedError('This slot is already booked.') from exc
    except (SchedulingError, SQLAlchemyError):
        db.rollback()
        raise

    _commit_or_rollback(db)
    db.refresh(appointment)

    logger.info(
        'Booked appointment %s for patient %s with professional %s at %s.',
        appointment.id,
        patient_id,
        professional.id,
        appointment.time_slot,
    )
    return appointment


def cancel_appointment(db: Session, appointment_id: int, acting_user_id: int) -> Appointment:
    """Cancel on behalf of the booking patient and hand the slot back to the inventory."""
    appointment = get_appointment(db, appointment_id)

    if appointment.patient_id != acting_user_id:
        raise AuthorizationError('Only the patient who booked this appointment can cancel it.')

    if not appointment.is_live:
        raise InvalidStateError(f'Appointment cannot be cancelled while {appointment.status}.')

    try:
        SlotInventory(db, appointment.professional_id).release(appointment.appointment_datetime)
        appointment.status = AppointmentStatus.CANCELLED.value
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Cancelling appointment %s failed; leaving it unchanged.', appointment_id)
        raise

    db.refresh(appointment)
    logger.info('Cancelled appointment %s; slot %s released.', appointment.id, appointment.time_slot)
    return appointment


def update_appointment(
    db: Session,
    appointment_id: int,
    acting_user_id: int,
    now: datetime,
    slot_start: datetime | None = None,
    reason: str | None = None,
) -> Appointment:
    """Change the reason and/or move to another free slot, swapping slots atomically."""
    appointment = get_appointment(db, appointment_id)

    if appointment.patient_id != acting_user_id:
        raise AuthorizationError('Only the patient who booked this appointment can change it.')

    if not appointment.is_live:
        raise InvalidStateError(f'Appointment cannot be modified while {appointment.status}.')

    old_start = appointment.appointment_datetime
    moving = slot_start is not None and slot_start != old_start
    inventory = SlotInventory(db, appointment.professional_id)

    try:
        if moving:
            _ensure_bookable(db, inventory, slot_start, now, exclude_id=appointment.id)
            inventory.reserve(slot_start, appointment.id)
            inventory.release(old_start)
            appointment.appointment_datetime = slot_start
            appointment.time_slot = slot_key(slot_start)

        if reason is not None:
            appointment.reason = reason
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise SlotAlreadyBookedError('This slot is already booked.') from exc
    except (SchedulingError, SQLAlchemyError):
        db.rollback()
        raise

    _commit_or_rollback(db)
    db.refresh(appointment)

    if moving:
        logger.info(
            'Moved appointment %s from %s to %s.',
            appointment.id,
            slot_key(old_start),
            appointment.time_slot,
        )
    return appointment


def _require_professional_actor(db: Session, appointment: Appointment, acting_user_id: int) -> None:
    professional = db.query(Professional).filter(Professional.id == appointment.professional_id).first()
    if professional is None or professional.user_id != acting_user_id:
        raise AuthorizationError('Only the professional for this appointment can change its status.')


def _transition(
    db: Session,
    appointment_id: int,
    acting_user_id: int,
    from_status: AppointmentStatus,
    to_status: AppointmentStatus,
    notes: str | None = None,
) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    _require_professional_actor(db, appointment, acting_user_id)

    if appointment.status != from_status.value:
        raise InvalidStateError(
            f'Only {from_status.value} appointments can become {to_status.value}; '
            f'this one is {appointment.status}.'
        )

    appointment.status = to_status.value
    if notes is not None:
        appointment.notes = notes
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info('Appointment %s is now %s.', appointment.id, appointment.status)
    return appointment


def confirm_appointment(db: Session, appointment_id: int, acting_user_id: int) -> Appointment:
    return _transition(db, appointment_id, acting_user_id, AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)


def complete_appointment(
    db: Session,
    appointment_id: int,
    acting_user_id: int,
    notes: str | None = None,
) -> Appointment:
    """Close a confirmed visit, optionally recording the professional's notes."""
    return _transition(
        db,
        appointment_id,
        acting_user_id,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        notes=notes,
    )


def list_patient_appointments(
    db: Session,
    patient_id: int,
    status: AppointmentStatus | None = None,
) -> list[Appointment]:
    query = db.query(Appointment).filter(Appointment.patient_id == patient_id)
    if status is not None:
        query = query.filter(Appointment.status == status.value)
    return query.order_by(Appointment.appointment_datetime.asc()).all()


def list_professional_appointments(
    db: Session,
    professional_id: int,
    status: AppointmentStatus | None = None,
) -> list[Appointment]:
    require_professional(db, professional_id)
    query = db.query(Appointment).filter(Appointment.professional_id == professional_id)
    if status is not None:
        query = query.filter(Appointment.status == status.value)
    return query.order_by(Appointment.appointment_datetime.asc()).all()


def upcoming_patient_appointments(db: Session, patient_id: int, now: datetime) -> list[Appointment]:
    return db.query(Appointment).filter(
        Appointment.patient_id == patient_id,
        Appointment.status.in_(LIVE_STATUSES),
        Appointment.appointment_datetime >= now,
    ).order_by(Appointment.appointment_datetime.asc()).all()


def upcoming_professional_appointments(db: Session, professional_id: int, now: datetime) -> list[Appointment]:
    require_professional(db, professional_id)
    return db.query(Appointment).filter(
        Appointment.professional_id == professional_id,
        Appointment.status.in_(LIVE_STATUSES),
        Appointment.appointment_datetime >= now,
    ).order_by(Appointment.appointment_datetime.asc()).all()


def appointments_between(
    db: Session,
    professional_id: int,
    start: datetime,
    end: datetime,
) -> list[Appointment]:
    require_local_datetime(start)
    require_local_datetime(end)
    if start > end:
        raise ValidationError('Start must not be after end.')

    require_professional(db, professional_id)
    return db.query(Appointment).filter(
        Appointment.professional_id == professional_id,
        Appointment.appointment_datetime >= start,
        Appointment.appointment_datetime <= end,
    ).order_by(Appointment.appointment_datetime.asc()).all()


def count_by_status(db: Session, professional_id: int) -> dict[str, int]:
    require_professional(db, professional_id)
    rows = db.query(Appointment.status, func.count(Appointment.id)).filter(
        Appointment.professional_id == professional_id,
    ).group_by(Appointment.status).all()

    counts = {status.value: 0 for status in AppointmentStatus}
    counts.update({status: count for status, count in rows})
    return counts
