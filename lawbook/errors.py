"""
Booking error types.

Every failure the reservation core reports is one of these, so callers can
map them to a response without inspecting storage exceptions.
"""


class BookingError(Exception):
    """Base exception for booking operations."""

    pass


class ValidationError(BookingError):
    """Raised when an identifier or required field is malformed or missing."""

    pass


class ConflictError(BookingError):
    """Raised when a slot is already taken or a status transition is illegal."""

    pass


class NotFoundError(BookingError):
    """Raised when an appointment, slot or lawyer does not exist."""

    pass


class UpstreamError(BookingError):
    """Raised when the database or identity service call fails."""

    pass


class SignatureMismatch(BookingError):
    """Raised when a payment notification signature does not verify."""

    pass
