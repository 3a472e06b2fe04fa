"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class EventStateError(AppError):
    """Raised when an operation is not allowed in the event's current status."""

    def __init__(self, message="Operation not allowed in the current event state."):
        """Initialize the error."""
        super().__init__(message, 409)


class EventFrozenError(EventStateError):
    """Raised on any attempt to mutate a cancelled event."""

    def __init__(self, message="Event is cancelled and can no longer be changed."):
        """Initialize the error."""
        super().__init__(message)


class InvalidPlayerCountError(AppError):
    """Raised when the confirmed roster is outside the schedulable bounds."""

    def __init__(self, message="Invalid number of players."):
        """Initialize the error."""
        super().__init__(message, 400)


class AlreadyGeneratedError(AppError):
    """Raised when a slate already exists and no reset was performed."""

    def __init__(
        self, message="Matches have already been generated. Reset them first."
    ):
        """Initialize the error."""
        super().__init__(message, 409)


class SchedulingExhaustionError(AppError):
    """Raised when the player pool cannot fill a match.

    This always points at a defect in the allocation arithmetic rather than at
    bad user input.
    """

    def __init__(self, message="Player pool exhausted while building matches."):
        """Initialize the error."""
        super().__init__(message, 500)


class DataIntegrityError(AppError):
    """Raised when the vote tally cannot be resolved into a voter set."""

    def __init__(self, message="Vote data is inconsistent."):
        """Initialize the error."""
        super().__init__(message, 500)
