from models.db import db
from models.login_attempt import AttemptCounterMixin


class ActionAttempt(AttemptCounterMixin, db.Model):
    __tablename__ = "action_attempts"
    __table_args__ = (
        db.UniqueConstraint("scope", "user_id", name="uq_action_attempts_scope_user"),
    )

    id = db.Column(db.Integer, primary_key=True)
    scope = db.Column(db.String(32), nullable=False)  # comment, review
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
