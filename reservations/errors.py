class BookingError(Exception):
    """Base class for errors raised by the booking services."""


class NotFound(BookingError):
    """A referenced booking, table or restaurant does not exist."""


class InvalidState(BookingError):
    """The operation is not allowed in the current state of a booking or table."""


class SlotConflict(InvalidState):
    """The table is already held by another active booking in the same window."""


class InsufficientData(BookingError):
    """No active restaurant (or tables) is configured."""


class ValidationError(BookingError):
    """Malformed date, time or party size."""
