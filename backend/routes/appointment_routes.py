from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_patient
from backend.core.clock import get_now
from backend.core.exceptions import AuthorizationError, SchedulingError
from backend.database import get_db
from backend.models.appointment import Appointment, AppointmentStatus
from backend.models.professional import Professional
from backend.models.user import User
from backend.routes.common import (
    database_unavailable,
    ensure_database_ready,
    require_professional_owner,
    to_http_exception,
)
from backend.routes.schemas import (
    AppointmentResponse,
    BookAppointmentRequest,
    CompleteAppointmentRequest,
    UpdateAppointmentRequest,
)
from backend.services import booking
from backend.services.time_utils import parse_slot_key

router = APIRouter(tags=['appointments'])


def _require_participant(db: Session, appointment: Appointment, current_user: User) -> None:
    if appointment.patient_id == current_user.id:
        return

    professional = db.query(Professional).filter(Professional.id == appointment.professional_id).first()
    if professional is None or professional.user_id != current_user.id:
        raise AuthorizationError('Only the patient or professional on this appointment can view it.')


def _require_self(patient_id: int, current_user: User) -> None:
    if patient_id != current_user.id:
        raise AuthorizationError('Patients can only view their own appointments.')


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_patient),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        slot_start = parse_slot_key(data.time_slot)
        return booking.book_appointment(
            db,
            patient_id=current_user.id,
            professional_id=data.professional_id,
            slot_start=slot_start,
            now=now,
            reason=data.reason,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/patient/{patient_id}', response_model=list[AppointmentResponse])
def list_patient_appointments(
    patient_id: int,
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        _require_self(patient_id, current_user)
        return booking.list_patient_appointments(db, patient_id, appointment_status)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/patient/{patient_id}/upcoming', response_model=list[AppointmentResponse])
def list_upcoming_patient_appointments(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        _require_self(patient_id, current_user)
        return booking.upcoming_patient_appointments(db, patient_id, now)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/professional/{professional_id}', response_model=list[AppointmentResponse])
def list_professional_appointments(
    professional_id: int,
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        return booking.list_professional_appointments(db, professional_id, appointment_status)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/professional/{professional_id}/upcoming', response_model=list[AppointmentResponse])
def list_upcoming_professional_appointments(
    professional_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        return booking.upcoming_professional_appointments(db, professional_id, now)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/professional/{professional_id}/between', response_model=list[AppointmentResponse])
def list_professional_appointments_between(
    professional_id: int,
    start: datetime = Query(...),
    end: datetime = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        return booking.appointments_between(db, professional_id, start, end)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/professional/{professional_id}/counts', response_model=dict[str, int])
def count_professional_appointments(
    professional_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        require_professional_owner(db, professional_id, current_user)
        return booking.count_by_status(db, professional_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = booking.get_appointment(db, appointment_id)
        _require_participant(db, appointment, current_user)
        return appointment
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    now: datetime = Depends(get_now),
):
    ensure_database_ready()

    try:
        slot_start = parse_slot_key(data.time_slot) if data.time_slot else None
        return booking.update_appointment(
            db,
            appointment_id,
            acting_user_id=current_user.id,
            now=now,
            slot_start=slot_start,
            reason=data.reason,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return booking.cancel_appointment(db, appointment_id, acting_user_id=current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{appointment_id}/confirm', response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return booking.confirm_appointment(db, appointment_id, acting_user_id=current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    data: CompleteAppointmentRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        notes = data.notes if data else None
        return booking.complete_appointment(db, appointment_id, acting_user_id=current_user.id, notes=notes)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
