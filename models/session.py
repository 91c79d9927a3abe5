from datetime import datetime, timedelta
from models.db import db

class Session(db.Model):
    __tablename__ = "sessions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # only the sha256 of the cookie token is stored
    token_hash = db.Column(db.String(128), unique=True, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)

    revoked = db.Column(db.Boolean, default=False, nullable=False)
    revoked_at = db.Column(db.DateTime, nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    def is_live(self, now: datetime, idle_seconds: int) -> bool:
        """Not revoked, not past absolute expiry, not idle for too long."""
        if self.revoked or self.expires_at <= now:
            return False
        last_seen = self.last_seen_at or self.created_at
        return last_seen + timedelta(seconds=idle_seconds) > now

    def revoke(self, now: datetime) -> None:
        self.revoked = True
        self.revoked_at = now
