from datetime import datetime
from models.db import db


class AttemptCounterMixin:
    """Counter columns shared by every attempt-limited record."""

    # failures (or submissions) inside the current window
    attempt_count = db.Column(db.Integer, default=0, nullable=False)
    first_attempt_at = db.Column(db.DateTime, nullable=False)
    last_attempt_at = db.Column(db.DateTime, nullable=False)
    blocked_until = db.Column(db.DateTime, nullable=True, index=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and now < self.blocked_until


class LoginAttempt(AttemptCounterMixin, db.Model):
    __tablename__ = "login_attempts"
    __table_args__ = (
        db.UniqueConstraint("scope", "ip_address", name="uq_login_attempts_scope_ip"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # "login" for credential checks, "contact" for the public contact form
    scope = db.Column(db.String(32), nullable=False, default="login")
    ip_address = db.Column(db.String(64), nullable=False, index=True)

    # last attempted username, informational only
    username = db.Column(db.String(255), nullable=True)
