"""Appointment model definitions."""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String, text
from backend.database import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    # Reserved; nothing transitions into it yet.
    NO_SHOW = "no_show"


LIVE_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)

_LIVE_SLOT_PREDICATE = text("status IN ('scheduled', 'confirmed')")


class Appointment(Base):
    """Represents a booked appointment."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_professional_start", "professional_id", "appointment_datetime"),
        Index(
            "uq_appointments_live_slot",
            "professional_id",
            "time_slot",
            unique=True,
            sqlite_where=_LIVE_SLOT_PREDICATE,
            postgresql_where=_LIVE_SLOT_PREDICATE,
        ),
    )

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    appointment_datetime = Column(DateTime, nullable=False)
    time_slot = Column(String, nullable=False)
    status = Column(String, default=AppointmentStatus.SCHEDULED.value, nullable=False)
    reason = Column(String)
    notes = Column(String)
    consultation_fee = Column(Numeric(10, 2))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES
