"""Exception types raised by Typing Stats."""


class TypingStatsError(Exception):
    """Base class for all Typing Stats errors."""


class DayMismatch(TypingStatsError, ValueError):
    """Raised when merging aggregates that belong to different days."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Cannot merge day {actual} into day {expected}")
        self.expected = expected
        self.actual = actual


class LoadError(TypingStatsError):
    """Raised when a stored snapshot cannot be read."""


class PersistenceError(TypingStatsError):
    """Raised when an aggregate cannot be written."""


class PayloadTooLarge(PersistenceError):
    """Raised when a remote payload exceeds the store's size limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Payload of {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit
