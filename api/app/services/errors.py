"""Booking error taxonomy.

Every failure the engine reports is a BookingError carrying a machine rule
name, a human message and the HTTP status the API answers with. Validation
and policy errors are raised before any transaction is opened.
"""


class BookingError(Exception):
    """Base class for booking failures."""

    status_code = 400

    def __init__(self, rule: str, message: str):
        self.rule = rule
        self.message = message
        super().__init__(message)


class ValidationError(BookingError):
    """Malformed or misaligned input, or a request the court cannot serve."""

    status_code = 422


class PolicyViolation(BookingError):
    """Duration, advance window, notice or cancellation cutoff outside the resolved policy."""

    status_code = 422


class SlotConflict(BookingError):
    """The interval overlaps an active reservation or a block. Retryable after re-reading availability."""

    status_code = 409


class NotFound(BookingError):
    status_code = 404


class Forbidden(BookingError):
    status_code = 403


class InvalidTransition(ValidationError):
    """The reservation's current status does not allow the requested move."""

    status_code = 409
