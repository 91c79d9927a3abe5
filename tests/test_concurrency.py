"""Concurrent failures for one IP must never lose increments."""
import threading
from datetime import timedelta

from security.bruteforce import login_limiter
from security.errors import StoreUnavailable

IP = "203.0.113.7"


def _hammer(app, n, now):
    barrier = threading.Barrier(n)
    errors = []

    def worker():
        with app.app_context():
            barrier.wait()
            try:
                login_limiter.record_failure(IP, now=now, username="bot")
            except StoreUnavailable as exc:
                errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return errors


def test_twenty_concurrent_failures_are_all_counted(app, t0):
    app.config["LOGIN_MAX_ATTEMPTS"] = 100

    errors = _hammer(app, 20, t0)

    assert errors == []
    with app.app_context():
        row = login_limiter.get(IP)
        assert row.attempt_count == 20
        assert row.blocked_until is None


def test_concurrent_failures_block_at_threshold(app, t0):
    errors = _hammer(app, 20, t0)

    assert errors == []
    with app.app_context():
        row = login_limiter.get(IP)
        assert row.attempt_count == 20
        assert row.blocked_until == t0 + timedelta(hours=24)
        assert login_limiter.check_allowed(IP, t0 + timedelta(minutes=1)).allowed is False
