"""Exception types raised by the matchup engine.

Only genuine I/O failures are exceptions. An empty candidate pool or an
exhausted replacement cascade are ordinary results (``None`` or
``ReplacementResult.needs_refresh``) and never raise.
"""


class PinRanksError(Exception):
    """Base class for engine errors."""


class DataUnavailable(PinRanksError):
    """Reference data could not be fetched after the retry budget was spent.

    Retryable: callers should offer the user a "try again" affordance.
    """

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Reference data '{key}' is unavailable")


class StoreError(PinRanksError):
    """A rating, vote log or preferences store operation failed."""


class RatingTransactionConflict(StoreError):
    """Concurrent writes kept conflicting until the transaction gave up."""

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Rating transaction for '{key}' conflicted {attempts} times")


class NotAuthenticated(PinRanksError):
    """The operation needs a signed-in user."""
