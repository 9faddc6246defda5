from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
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
from backend.database import ensure_appointment_schema, ensure_availability_schema
from backend.models.professional import Professional
from backend.models.user import User
from backend.services.range_store import require_professional

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
    SlotUnavailableError: status.HTTP_409_CONFLICT,
    SlotAlreadyBookedError: status.HTTP_409_CONFLICT,
}


def to_http_exception(exc: SchedulingError) -> HTTPException:
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    return HTTPException(status_code=status_code, detail={'code': exc.code, 'message': exc.message})


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def require_professional_owner(db: Session, professional_id: int, current_user: User) -> Professional:
    professional = require_professional(db, professional_id)
    if professional.user_id != current_user.id:
        raise AuthorizationError('Only this professional can manage their availability.')
    return professional
