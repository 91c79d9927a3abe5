"""Shared pytest fixtures.

Each test gets its own SQLite database file under tmp_path so that the
concurrency tests can open several connections to the same store.
"""
from datetime import datetime

import pytest

from app import create_app
from config import Config
from models import db
from models.user import User, Role
from security.password import hash_password


@pytest.fixture()
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db")
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}
        AUTO_CREATE_TABLES = True
        BCRYPT_ROUNDS = 4
        LOG_LEVEL = "DEBUG"

    app = create_app(TestConfig)
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def t0():
    return datetime(2026, 3, 1, 12, 0, 0)


def make_user(username: str, password: str = "correct-horse", roles=("STUDENT",)) -> User:
    user = User(username=username, email=f"{username}@example.com", password_hash=hash_password(password))
    user.roles = Role.query.filter(Role.name.in_(roles)).all()
    db.session.add(user)
    db.session.commit()
    return user


def login(client, username: str, password: str = "correct-horse", ip: str = "10.0.0.1"):
    return client.post(
        "/auth/login",
        json={"username": username, "password": password},
        headers={"X-Forwarded-For": ip},
    )


def csrf_headers(client, ip: str = "10.0.0.1") -> dict:
    return {
        "X-CSRF-Token": client.get_cookie("csrf_token").value,
        "X-Forwarded-For": ip,
    }


@pytest.fixture()
def admin_client(app):
    with app.app_context():
        make_user("root", roles=("ADMIN",))
    c = app.test_client()
    resp = login(c, "root", ip="192.168.0.10")
    assert resp.status_code == 200
    return c
