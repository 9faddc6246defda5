from datetime import datetime, time

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

MAX_REASON_LENGTH = 600
MAX_NOTES_LENGTH = 2000


class WireModel(BaseModel):
    """Request/response body with camelCase keys on the wire; snake_case is accepted too."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def _normalize_text(value: str | None, label: str, max_length: int) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


def _normalize_reason(value: str | None) -> str | None:
    return _normalize_text(value, 'Reason', MAX_REASON_LENGTH)


class CreateRangeRequest(WireModel):
    day_of_week: int
    start_time: time
    end_time: time
    interval_minutes: int


class AvailabilityRangeResponse(WireModel):
    id: str
    position: int
    day_of_week: int
    start_time: time
    end_time: time
    interval_minutes: int


class SlotRequest(WireModel):
    slot: str

    @field_validator('slot')
    @classmethod
    def validate_slot(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Slot timestamp is required.')
        return normalized


class SlotChangeResponse(WireModel):
    slot: str
    changed: bool


class GenerateSlotsRequest(WireModel):
    replace: bool = False
    window_days: int | None = None

    @field_validator('window_days')
    @classmethod
    def validate_window_days(cls, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= 366:
            raise ValueError('Window must be between 0 and 366 days.')
        return value


class GenerateSlotsResponse(WireModel):
    added_count: int
    added_slots: list[str]


class SlotCheckResponse(WireModel):
    slot: str
    available: bool


class NextSlotResponse(WireModel):
    next_available_slot: str | None = None


class AvailabilityStatsResponse(WireModel):
    total_slots: int
    future_slots: int
    dates_with_availability: int
    average_slots_per_day: float
    next_available_slot: str | None = None


class BookAppointmentRequest(WireModel):
    professional_id: int
    time_slot: str
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_reason(value)


class UpdateAppointmentRequest(WireModel):
    time_slot: str | None = None
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_reason(value)


class CompleteAppointmentRequest(WireModel):
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_text(value, 'Notes', MAX_NOTES_LENGTH)


class AppointmentResponse(WireModel):
    id: int
    patient_id: int
    professional_id: int
    appointment_datetime: datetime
    time_slot: str
    status: str
    reason: str | None = None
    notes: str | None = None
    consultation_fee: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
