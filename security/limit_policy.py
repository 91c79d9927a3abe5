"""
Pure decision logic for attempt limiting.

A record holds a fixed-start window: failures accumulate from the first
failure of the window until `window` has elapsed, then the next failure
starts a new window. Reaching `max_attempts` inside a window blocks the key
for `block_duration` from that failure. Nothing in here touches the database.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class LimitPolicy:
    max_attempts: int
    window: timedelta
    block_duration: timedelta

    def window_expired(self, first_attempt_at: datetime, now: datetime) -> bool:
        return now - first_attempt_at > self.window

    def window_cutoff(self, now: datetime) -> datetime:
        """Records whose window started before this instant are expired."""
        return now - self.window


@dataclass(frozen=True)
class Decision:
    allowed: bool
    remaining: timedelta = timedelta(0)
    attempts_left: int = 0

    @property
    def retry_after_seconds(self) -> int:
        if self.allowed:
            return 0
        return max(math.ceil(self.remaining.total_seconds()), 1)


def evaluate(policy: LimitPolicy, record, now: datetime) -> Decision:
    """
    Decide whether one more attempt is permitted.

    `record` is anything with attempt_count / first_attempt_at / blocked_until,
    or None for a key never seen before.
    """
    if record is None:
        return Decision(allowed=True, attempts_left=policy.max_attempts)

    if record.blocked_until is not None and now < record.blocked_until:
        return Decision(allowed=False, remaining=record.blocked_until - now)

    if record.attempt_count == 0 or policy.window_expired(record.first_attempt_at, now):
        return Decision(allowed=True, attempts_left=policy.max_attempts)

    return Decision(
        allowed=True,
        attempts_left=max(0, policy.max_attempts - record.attempt_count),
    )


def format_remaining_time(seconds) -> str:
    """'2 hours and 5 minutes', '1 hour and 1 minute', '0 minutes'."""
    if isinstance(seconds, timedelta):
        seconds = seconds.total_seconds()
    seconds = max(int(seconds), 0)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60

    minute_part = f"{minutes} minute{'' if minutes == 1 else 's'}"
    if hours > 0:
        return f"{hours} hour{'' if hours == 1 else 's'} and {minute_part}"
    return minute_part
