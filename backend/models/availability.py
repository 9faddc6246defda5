"""Availability model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Time
from backend.database import Base

SLOT_SOURCE_RANGE = "range"
SLOT_SOURCE_MANUAL = "manual"
SLOT_SOURCE_RELEASED = "released"


class AvailabilityRange(Base):
    """A recurring weekly window (ISO weekday, start, end, step) for one professional."""
    __tablename__ = "availability_ranges"
    __table_args__ = (
        Index("idx_ranges_professional_position", "professional_id", "position"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    day_of_week = Column(Integer, nullable=False)  # 1=Monday .. 7=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    interval_minutes = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.now)


class AvailabilitySlot(Base):
    """One bookable start time. Free while ``is_booked`` is false."""
    __tablename__ = "availability_slots"
    __table_args__ = (
        Index("uq_slots_professional_start", "professional_id", "start_time", unique=True),
        Index("idx_slots_booked_start", "is_booked", "start_time"),
    )

    id = Column(Integer, primary_key=True)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    range_id = Column(String(36), ForeignKey("availability_ranges.id", ondelete="SET NULL"), nullable=True)
    source = Column(String, default=SLOT_SOURCE_MANUAL)
