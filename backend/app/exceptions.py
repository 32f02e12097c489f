"""Domain errors raised by the service layer.

Every precondition failure is raised before anything is written, so a caller
that receives one of these can assume no state changed. ``reason`` is a stable
machine-readable code; ``message`` is for humans.
"""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str, reason: str = "error"):
        self.message = message
        self.reason = reason
        super().__init__(message)


class NotFoundError(DomainError):
    """Event, RSVP or member does not exist."""

    status_code = 404


class InvalidStateError(DomainError):
    """Event or RSVP is in a state that forbids the operation (cancelled, deleted, started)."""

    status_code = 400


class ConflictError(DomainError):
    """Operation would create a duplicate (active claim, member email)."""

    status_code = 409


class ValidationError(DomainError):
    """Malformed input fields, date ordering or capacity bounds."""

    status_code = 422
