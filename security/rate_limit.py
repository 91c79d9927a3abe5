from datetime import datetime
from functools import wraps

from flask import g, jsonify, make_response

from models.action_attempt import ActionAttempt
from security.attempt_store import AttemptLimiter


class UserActionLimiter(AttemptLimiter):
    """
    Per-user submission budget. Every accepted submission counts; the
    budget is not refunded when the submission succeeds.
    """

    model = ActionAttempt
    key_attr = "user_id"
    key_field = "userId"

    def record_attempt(self, user_id: int, now: datetime | None = None):
        return self.record_failure(user_id, now=now)


comment_limiter = UserActionLimiter("comment", "COMMENT", max_attempts=10)
review_limiter = UserActionLimiter("review", "REVIEW", max_attempts=5)

USER_LIMITERS = {
    comment_limiter.scope: comment_limiter,
    review_limiter.scope: review_limiter,
}


def user_rate_limit(limiter: UserActionLimiter):
    """
    Usage: @user_rate_limit(comment_limiter)

    Rejects blocked users with 429 (via RateLimited), spends one attempt,
    then runs the view and annotates successful responses with
    X-RateLimit-* headers.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required", action=limiter.scope), 401

            limiter.enforce(user.id)
            decision = limiter.record_attempt(user.id)
            g.rate_limit = {
                "action": limiter.scope,
                "limit": limiter.policy.max_attempts,
                "remaining_attempts": decision.attempts_left,
            }

            resp = make_response(fn(*args, **kwargs))
            if resp.status_code < 400:
                record = limiter.get(user.id)
                resp.headers["X-RateLimit-Limit"] = str(limiter.policy.max_attempts)
                resp.headers["X-RateLimit-Remaining"] = str(decision.attempts_left)
                if record is not None:
                    reset_at = record.first_attempt_at + limiter.policy.window
                    resp.headers["X-RateLimit-Reset"] = reset_at.isoformat() + "Z"
            return resp
        return wrapper
    return decorator
