from datetime import datetime, timedelta

from conftest import make_user, login, csrf_headers
from models import db
from models.audit_log import AuditLog
from models.login_attempt import LoginAttempt
from models.user import User
from security.bruteforce import login_limiter

IP = "1.2.3.4"


class TestLogin:
    def test_login_success_sets_session(self, app, client):
        with app.app_context():
            make_user("alice")

        resp = login(client, "alice", ip=IP)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["username"] == "alice"
        assert client.get_cookie("coursehub_session") is not None
        assert client.get_cookie("csrf_token") is not None

        me = client.get("/auth/me")
        assert me.status_code == 200
        assert me.get_json()["roles"] == ["STUDENT"]

    def test_wrong_password_reports_remaining_attempts(self, app, client):
        with app.app_context():
            make_user("alice")

        resp = login(client, "alice", password="nope", ip=IP)
        assert resp.status_code == 401
        assert resp.get_json()["remaining_attempts"] == 9

        resp = login(client, "ghost", password="nope", ip=IP)
        assert resp.status_code == 401
        assert resp.get_json()["remaining_attempts"] == 8

        with app.app_context():
            assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == 2

    def test_tenth_failure_blocks_ip(self, app, client):
        with app.app_context():
            make_user("alice")

        for _ in range(9):
            assert login(client, "alice", password="nope", ip=IP).status_code == 401

        resp = login(client, "alice", password="nope", ip=IP)
        assert resp.status_code == 429
        body = resp.get_json()
        assert body["blocked"] is True
        assert body["retry_after_seconds"] > 23 * 3600
        assert "Too many attempts" in body["error"]
        assert int(resp.headers["Retry-After"]) > 23 * 3600

        # correct password is refused while blocked
        resp = login(client, "alice", ip=IP)
        assert resp.status_code == 429

        # another IP can still log in
        assert login(client, "alice", ip="5.6.7.8").status_code == 200

        with app.app_context():
            assert AuditLog.query.filter_by(action="LOGIN_BLOCKED").count() == 1
            assert AuditLog.query.filter_by(action="LOGIN_RATE_LIMITED").count() == 1

    def test_success_forgives_previous_failures(self, app, client):
        with app.app_context():
            make_user("alice")

        for _ in range(5):
            login(client, "alice", password="nope", ip=IP)
        assert login(client, "alice", ip=IP).status_code == 200

        with app.app_context():
            assert login_limiter.get(IP) is None

        resp = login(client, "alice", password="nope", ip=IP)
        assert resp.get_json()["remaining_attempts"] == 9

    def test_block_expires_on_its_own(self, app, client):
        with app.app_context():
            make_user("alice")
            past = datetime.utcnow() - timedelta(hours=24, minutes=1)
            for _ in range(10):
                login_limiter.record_failure(IP, now=past)

        assert login(client, "alice", ip=IP).status_code == 200

    def test_store_failure_fails_closed(self, app, client):
        with app.app_context():
            make_user("alice")
            LoginAttempt.__table__.drop(db.engine)

        resp = login(client, "alice", ip=IP)
        assert resp.status_code == 503
        assert client.get_cookie("coursehub_session") is None


class TestRegister:
    def test_register_creates_student(self, app, client):
        resp = client.post(
            "/auth/register",
            json={"username": "newbie", "password": "long-enough", "email": "n@example.com"},
            headers={"X-Forwarded-For": IP},
        )
        assert resp.status_code == 201
        assert resp.get_json()["user"]["roles"] == ["STUDENT"]

    def test_duplicate_username_counts_as_failure(self, app, client):
        with app.app_context():
            make_user("taken")

        resp = client.post(
            "/auth/register",
            json={"username": "taken", "password": "long-enough"},
            headers={"X-Forwarded-For": IP},
        )
        assert resp.status_code == 409
        assert resp.get_json()["remaining_attempts"] == 9

    def test_blocked_ip_cannot_register(self, app, client):
        with app.app_context():
            for _ in range(10):
                login_limiter.record_failure(IP)

        resp = client.post(
            "/auth/register",
            json={"username": "fresh", "password": "long-enough"},
            headers={"X-Forwarded-For": IP},
        )
        assert resp.status_code == 429

    def test_short_password_rejected(self, client):
        resp = client.post("/auth/register", json={"username": "x", "password": "short"})
        assert resp.status_code == 400


class TestLogout:
    def test_logout_revokes_session(self, app, client):
        with app.app_context():
            make_user("alice")
        login(client, "alice", ip=IP)

        resp = client.post("/auth/logout", headers=csrf_headers(client, IP))
        assert resp.status_code == 200
        assert client.get("/auth/me").status_code == 401

    def test_logout_requires_csrf(self, app, client):
        with app.app_context():
            make_user("alice")
        login(client, "alice", ip=IP)

        assert client.post("/auth/logout").status_code == 403


def test_login_upgrades_password_hash_cost(app, client):
    with app.app_context():
        make_user("alice")
    app.config["BCRYPT_ROUNDS"] = 5

    assert login(client, "alice").status_code == 200
    with app.app_context():
        assert User.query.filter_by(username="alice").one().password_hash.startswith("$2b$05$")
