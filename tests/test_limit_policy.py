from datetime import datetime, timedelta
from types import SimpleNamespace

from security.limit_policy import LimitPolicy, evaluate, format_remaining_time

DAY = timedelta(hours=24)
POLICY = LimitPolicy(max_attempts=10, window=DAY, block_duration=DAY)
T0 = datetime(2026, 3, 1, 12, 0, 0)


def _record(count, first=T0, blocked_until=None):
    return SimpleNamespace(attempt_count=count, first_attempt_at=first, blocked_until=blocked_until)


class TestEvaluate:
    def test_unknown_key_is_allowed_with_full_budget(self):
        d = evaluate(POLICY, None, T0)
        assert d.allowed is True
        assert d.attempts_left == 10
        assert d.retry_after_seconds == 0

    def test_below_threshold_is_allowed(self):
        for count in range(1, 10):
            d = evaluate(POLICY, _record(count), T0 + timedelta(hours=1))
            assert d.allowed is True
            assert d.attempts_left == 10 - count

    def test_active_block_rejects_with_remaining_time(self):
        until = T0 + DAY
        d = evaluate(POLICY, _record(10, blocked_until=until), T0 + timedelta(hours=2))
        assert d.allowed is False
        assert d.remaining == timedelta(hours=22)
        assert d.retry_after_seconds == 22 * 3600

    def test_expired_block_is_ignored(self):
        until = T0 + DAY
        d = evaluate(POLICY, _record(10, blocked_until=until), until + timedelta(seconds=1))
        assert d.allowed is True
        assert d.attempts_left == 10

    def test_block_ends_exactly_at_blocked_until(self):
        until = T0 + DAY
        assert evaluate(POLICY, _record(10, blocked_until=until), until).allowed is True

    def test_expired_window_restores_budget(self):
        d = evaluate(POLICY, _record(7), T0 + DAY + timedelta(seconds=1))
        assert d.allowed is True
        assert d.attempts_left == 10

    def test_window_boundary_is_inclusive(self):
        # exactly 24h after the first failure still belongs to the window
        d = evaluate(POLICY, _record(7), T0 + DAY)
        assert d.attempts_left == 3

    def test_zero_count_has_full_budget(self):
        assert evaluate(POLICY, _record(0), T0).attempts_left == 10

    def test_retry_after_rounds_up(self):
        d = evaluate(POLICY, _record(10, blocked_until=T0 + timedelta(milliseconds=300)), T0)
        assert d.retry_after_seconds == 1


class TestFormatRemainingTime:
    def test_minutes_only(self):
        assert format_remaining_time(0) == "0 minutes"
        assert format_remaining_time(60) == "1 minute"
        assert format_remaining_time(59 * 60 + 59) == "59 minutes"

    def test_hours_and_minutes(self):
        assert format_remaining_time(3600) == "1 hour and 0 minutes"
        assert format_remaining_time(3600 + 60) == "1 hour and 1 minute"
        assert format_remaining_time(2 * 3600 + 5 * 60) == "2 hours and 5 minutes"

    def test_accepts_timedelta(self):
        assert format_remaining_time(timedelta(hours=23, minutes=59)) == "23 hours and 59 minutes"
