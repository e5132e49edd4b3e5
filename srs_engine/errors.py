"""
Error taxonomy for the scheduling engine.

All errors are recoverable at the call boundary; callers surface them as
user-facing messages.
"""


class SchedulingError(Exception):
    """Base exception for the scheduling engine."""
    pass


class NotFound(SchedulingError):
    """Raised when a referenced card, review log, or content unit is missing."""
    pass


class Forbidden(SchedulingError):
    """Raised when the caller does not own the referenced record."""
    pass


class InvalidArgument(SchedulingError, ValueError):
    """Raised for bad ratings, snapshots and limits."""
    pass


class Conflict(SchedulingError):
    """Raised when a card changed underneath a review or undo."""
    pass
