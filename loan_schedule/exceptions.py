"""Exception hierarchy for the schedule engine."""


class ScheduleError(Exception):
    """Base exception for all schedule engine errors."""


class NotFoundError(ScheduleError):
    """Raised when a referenced entity does not exist."""


class LoanNotFoundError(NotFoundError):
    """Raised when a loan cannot be loaded from the ledger."""


class ProductNotFoundError(NotFoundError):
    """Raised when the product behind a loan cannot be loaded."""


class InvalidStateError(ScheduleError):
    """Raised when loan terms cannot produce a schedule."""
