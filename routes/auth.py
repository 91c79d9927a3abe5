from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password, needs_rehash
from security.session import create_session, revoke_session, revoke_all_sessions
from security.bruteforce import client_ip, login_limiter
from security.errors import RateLimited
from security.limit_policy import format_remaining_time
from security.csrf import issue_csrf_token
from utils.audit import log_event
from utils.auth_context import login_required


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

MIN_PASSWORD_LENGTH = 8


def _user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
        "roles": user.role_names,
        "is_admin": "ADMIN" in user.role_names,
        "created_at": user.created_at.isoformat(),
    }


def _reject_if_blocked(ip: str, username: str, event: str):
    decision = login_limiter.check_allowed(ip)
    if decision.allowed:
        return
    current_app.logger.warning(
        "Blocked %s attempt from IP %s - %s remaining",
        event, ip, format_remaining_time(decision.remaining),
    )
    log_event(
        "LOGIN_RATE_LIMITED",
        metadata={"username": username, "event": event, "retry_after": decision.retry_after_seconds},
    )
    raise RateLimited(decision.remaining)


def _count_failure(ip: str, username: str, event: str):
    """Records a failed attempt; raises RateLimited when it triggers the block."""
    decision = login_limiter.record_failure(ip, username=username or None)
    log_event(
        event,
        metadata={"username": username, "remaining_attempts": decision.attempts_left, "blocked": not decision.allowed},
    )
    if not decision.allowed:
        current_app.logger.warning("IP %s blocked after failed %s", ip, event.lower())
        log_event("LOGIN_BLOCKED", entity="ip", entity_id=ip, metadata={"username": username})
        raise RateLimited(decision.remaining)
    return decision


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    email = (data.get("email") or "").strip().lower() or None
    ip = client_ip()

    _reject_if_blocked(ip, username, "registration")

    if not username or len(username) > 64:
        return jsonify(error="Invalid username"), 400
    if len(password) < MIN_PASSWORD_LENGTH:
        return jsonify(error=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"), 400
    if email is not None and ("@" not in email or len(email) > 255):
        return jsonify(error="Invalid email"), 400

    if User.query.filter_by(username=username).first():
        decision = _count_failure(ip, username, "REGISTER_FAIL_USERNAME_EXISTS")
        return jsonify(error="Username already exists", remaining_attempts=decision.attempts_left), 409

    if email and User.query.filter_by(email=email).first():
        return jsonify(error="Email already registered"), 409

    user = User(username=username, email=email, password_hash=hash_password(password))
    db.session.add(user)
    db.session.flush()

    student_role = Role.query.filter_by(name="STUDENT").first()
    if student_role:
        user.roles.append(student_role)

    db.session.commit()
    login_limiter.record_success(ip)
    log_event("REGISTER_SUCCESS", user_id=user.id)

    return jsonify(message="Registered successfully", user=_user_payload(user)), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    ip = client_ip()

    # Checked before credentials are looked at; store errors surface as 503.
    _reject_if_blocked(ip, username, "login")

    user = User.query.filter_by(username=username).first() if username else None
    if not user or not verify_password(password, user.password_hash):
        decision = _count_failure(ip, username, "LOGIN_FAIL")
        return jsonify(error="Invalid credentials", remaining_attempts=decision.attempts_left), 401

    login_limiter.record_success(ip)

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        db.session.commit()

    # Rotate: revoke any existing sessions for this user
    revoked_count = revoke_all_sessions(user.id)

    raw_token = create_session(user.id)
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "coursehub_session")
    max_age = current_app.config.get("SESSION_LIFETIME_SECONDS", 7 * 24 * 60 * 60)

    resp = jsonify(message="Login OK", user=_user_payload(user))
    resp.set_cookie(
        cookie_name,
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=max_age,
        path="/",
    )
    resp = issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_user_payload(g.user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "coursehub_session")
    revoke_session(request.cookies.get(cookie_name))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200
