import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session
from security.bruteforce import client_ip

def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def create_session(user_id: int) -> str:
    """
    Creates a server-side session and returns the RAW token for the cookie.
    Only its hash is stored.
    """
    raw_token = secrets.token_urlsafe(32)

    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 7 * 24 * 60 * 60)
    row = Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    )
    db.session.add(row)
    db.session.commit()
    return raw_token

def get_session_from_request():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "coursehub_session")
    raw_token = request.cookies.get(cookie_name)
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    now = datetime.utcnow()
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 7200)
    if sess is None or not sess.is_live(now, idle_seconds):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess

def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=_hash_token(raw_token), revoked=False).first()
    if not sess:
        return False
    sess.revoke(datetime.utcnow())
    db.session.commit()
    return True

def revoke_all_sessions(user_id: int) -> int:
    """Revokes every live session of the user; returns how many."""
    now = datetime.utcnow()
    sessions = Session.query.filter_by(user_id=user_id, revoked=False).all()
    for s in sessions:
        s.revoke(now)
    db.session.commit()
    return len(sessions)
