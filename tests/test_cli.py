from datetime import datetime, timedelta

from conftest import make_user
from models.user import User
from security.bruteforce import login_limiter


def _block(ip, now):
    for _ in range(10):
        login_limiter.record_failure(ip, now=now, username="eve")


def test_make_admin(app):
    with app.app_context():
        make_user("alice")

    result = app.test_cli_runner().invoke(args=["make-admin", "alice"])
    assert "alice promoted to ADMIN" in result.output

    with app.app_context():
        assert "ADMIN" in User.query.filter_by(username="alice").one().role_names


def test_make_admin_unknown_user(app):
    result = app.test_cli_runner().invoke(args=["make-admin", "nobody"])
    assert "User not found" in result.output


def test_blocked_ips_listing(app):
    runner = app.test_cli_runner()
    assert "No blocked IPs" in runner.invoke(args=["blocked-ips"]).output

    with app.app_context():
        _block("1.2.3.4", datetime.utcnow())

    result = runner.invoke(args=["blocked-ips"])
    assert "1.2.3.4" in result.output
    assert "eve" in result.output


def test_unblock_ip(app):
    with app.app_context():
        _block("1.2.3.4", datetime.utcnow())

    runner = app.test_cli_runner()
    result = runner.invoke(args=["unblock-ip", "1.2.3.4"])
    assert result.exit_code == 0
    assert "1.2.3.4 unblocked" in result.output

    result = runner.invoke(args=["unblock-ip", "1.2.3.4"])
    assert result.exit_code != 0
    assert "not blocked" in result.output


def test_unblock_all(app):
    with app.app_context():
        now = datetime.utcnow()
        _block("1.1.1.1", now)
        _block("2.2.2.2", now - timedelta(minutes=5))

    result = app.test_cli_runner().invoke(args=["unblock-ip", "--all"])
    assert "Unblocked 2 IP(s)" in result.output


def test_unblock_requires_target(app):
    result = app.test_cli_runner().invoke(args=["unblock-ip"])
    assert result.exit_code != 0
