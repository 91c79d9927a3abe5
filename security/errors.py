import math
from datetime import timedelta


class LimiterError(Exception):
    """Base class for attempt-limiter failures."""


class RateLimited(LimiterError):
    """The key is inside an active block."""

    def __init__(self, remaining: timedelta, scope: str = "login"):
        self.remaining = remaining
        self.scope = scope
        super().__init__(f"{scope} rate limited for {int(remaining.total_seconds())}s")

    @property
    def retry_after_seconds(self) -> int:
        # rounded up, never before the block ends
        return max(math.ceil(self.remaining.total_seconds()), 1)


class NotFound(LimiterError):
    """Unblock requested for a key with no active block."""

    def __init__(self, key, scope: str = "login"):
        self.key = key
        self.scope = scope
        super().__init__(f"{key} is not blocked ({scope})")


class StoreUnavailable(LimiterError):
    """The attempt store could not be read or written."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"attempt store unavailable during {action}")
