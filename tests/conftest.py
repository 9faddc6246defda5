import os
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.availability import AvailabilityRange, AvailabilitySlot  # noqa: E402
from backend.models.professional import Professional  # noqa: E402
from backend.models.user import PATIENT_ROLE, PROFESSIONAL_ROLE, User  # noqa: E402


TABLES = [
    User.__table__,
    Professional.__table__,
    AvailabilityRange.__table__,
    Appointment.__table__,
    AvailabilitySlot.__table__,
]


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def make_user(db):
    def _make_user(email: str, role: str = PATIENT_ROLE) -> User:
        user = User(email=email, full_name=email.split('@')[0].title(), role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def professional(db, make_user) -> Professional:
    owner = make_user('dr.house@example.com', role=PROFESSIONAL_ROLE)
    record = Professional(
        user_id=owner.id,
        specialization='Diagnostics',
        license_number='LIC-001',
        consultation_fee=Decimal('80.00'),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def patient(make_user) -> User:
    return make_user('alice@example.com')


@pytest.fixture
def other_patient(make_user) -> User:
    return make_user('bob@example.com')
