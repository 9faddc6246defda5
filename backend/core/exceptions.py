"""Scheduling error taxonomy.

Services raise these; the route layer maps them onto HTTP responses.
"""


class SchedulingError(Exception):
    """Base class for all scheduling failures."""

    code = "scheduling_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed range, slot or appointment input."""

    code = "validation_error"


class NotFoundError(SchedulingError):
    """Missing professional, user, appointment or range."""

    code = "not_found"


class AuthorizationError(SchedulingError):
    code = "not_authorized"


class InvalidStateError(SchedulingError):
    """Illegal appointment status transition."""

    code = "invalid_state"


class SlotUnavailableError(SchedulingError):
    """The requested slot is not in the professional's free inventory."""

    code = "slot_unavailable"


class SlotAlreadyBookedError(SchedulingError):
    """A live appointment already holds the slot."""

    code = "slot_already_booked"
