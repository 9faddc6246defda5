import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from backend.auth.dependencies import get_current_user, require_patient
from backend.auth.jwt_handler import create_access_token, decode_access_token
from backend.models.user import PATIENT_ROLE


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_access_token_round_trip() -> None:
    payload = decode_access_token(create_access_token(42, PATIENT_ROLE))

    assert payload['sub'] == '42'
    assert payload['role'] == PATIENT_ROLE


def test_get_current_user_resolves_token_subject(db, patient) -> None:
    token = create_access_token(patient.id, patient.role)

    assert get_current_user(credentials=_bearer(token), db=db).id == patient.id


def test_get_current_user_rejects_garbage_token(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_bearer('not-a-jwt'), db=db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_user_rejects_unknown_user(db) -> None:
    token = create_access_token(999, PATIENT_ROLE)

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_bearer(token), db=db)

    assert exception_info.value.detail == 'User not found'


def test_require_patient_rejects_professionals(db, professional) -> None:
    owner = professional.user

    with pytest.raises(HTTPException) as exception_info:
        require_patient(current_user=owner)

    assert exception_info.value.status_code == 403
