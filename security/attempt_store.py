"""
Database-backed attempt limiter.

Counters are mutated with single SQL UPDATE statements so that concurrent
failures for the same key never lose an increment; Python never reads a
count, adds one and writes it back. Decisions are always taken from the
database, there is no in-process cache of block state.
"""
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator

from flask import current_app
from sqlalchemy import and_, case, null, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from security.errors import NotFound, RateLimited, StoreUnavailable
from security.limit_policy import Decision, LimitPolicy, evaluate


@dataclass(frozen=True)
class BlockedEntry:
    key: object
    username: str | None
    attempt_count: int
    first_attempt_at: datetime
    last_attempt_at: datetime
    blocked_until: datetime
    remaining: timedelta

    def to_dict(self, key_field: str = "ipAddress") -> dict:
        return {
            key_field: self.key,
            "username": self.username,
            "attemptCount": self.attempt_count,
            "firstAttempt": self.first_attempt_at.isoformat(),
            "lastAttempt": self.last_attempt_at.isoformat(),
            "blockedUntil": self.blocked_until.isoformat(),
            "remainingTime": int(self.remaining.total_seconds() * 1000),
        }


@contextmanager
def store_errors(action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Attempt store failed during %s: %s", action, exc)
        raise StoreUnavailable(action) from exc


class AttemptLimiter:
    """
    Fixed-window attempt counter with temporary blocks, keyed per scope.

    Subclasses set `model` (a model using AttemptCounterMixin) and
    `key_attr` (the column holding the key).
    """

    model = None
    key_attr = None
    # name of the key in admin JSON listings
    key_field = "key"
    # extra model columns record_failure may set (e.g. username)
    detail_attrs = ()

    def __init__(self, scope: str, config_prefix: str, max_attempts: int = 10,
                 window_seconds: int = 24 * 60 * 60, block_seconds: int = 24 * 60 * 60):
        self.scope = scope
        self.config_prefix = config_prefix
        self._defaults = (max_attempts, window_seconds, block_seconds)

    @property
    def policy(self) -> LimitPolicy:
        cfg = current_app.config
        max_attempts, window_seconds, block_seconds = self._defaults
        return LimitPolicy(
            max_attempts=int(cfg.get(f"{self.config_prefix}_MAX_ATTEMPTS", max_attempts)),
            window=timedelta(seconds=cfg.get(f"{self.config_prefix}_WINDOW_SECONDS", window_seconds)),
            block_duration=timedelta(seconds=cfg.get(f"{self.config_prefix}_BLOCK_SECONDS", block_seconds)),
        )

    # ---------- queries ----------

    def _query(self, key):
        return self.model.query.filter_by(scope=self.scope, **{self.key_attr: key})

    def get(self, key):
        with store_errors("get"):
            return self._query(key).first()

    # ---------- decisions ----------

    def check_allowed(self, key, now: datetime | None = None) -> Decision:
        now = now or datetime.utcnow()
        with store_errors("check_allowed"):
            record = self._query(key).first()
        return evaluate(self.policy, record, now)

    def enforce(self, key, now: datetime | None = None) -> Decision:
        """check_allowed, raising RateLimited instead of returning a rejection."""
        decision = self.check_allowed(key, now)
        if not decision.allowed:
            raise RateLimited(decision.remaining, scope=self.scope)
        return decision

    def remaining_attempts(self, key, now: datetime | None = None) -> int:
        return self.check_allowed(key, now).attempts_left

    # ---------- mutations ----------

    def _bump(self, key, now: datetime, policy: LimitPolicy, details: dict) -> int:
        model = self.model
        # A zero count (admin unblock) or an elapsed window starts a new window,
        # but never while a block is live: it holds until blocked_until passes.
        fresh = and_(
            or_(
                model.attempt_count == 0,
                model.first_attempt_at < policy.window_cutoff(now),
            ),
            or_(model.blocked_until.is_(None), model.blocked_until <= now),
        )
        values = {
            model.attempt_count: case((fresh, 1), else_=model.attempt_count + 1),
            model.first_attempt_at: case((fresh, now), else_=model.first_attempt_at),
            model.blocked_until: case((fresh, null()), else_=model.blocked_until),
            model.last_attempt_at: now,
            model.updated_at: now,
        }
        for attr, value in details.items():
            values[getattr(model, attr)] = value
        return self._query(key).update(values, synchronize_session=False)

    def _block_if_exhausted(self, key, now: datetime, policy: LimitPolicy) -> int:
        model = self.model
        # A live block is never extended.
        return (
            self._query(key)
            .filter(
                model.attempt_count >= policy.max_attempts,
                or_(model.blocked_until.is_(None), model.blocked_until <= now),
            )
            .update({model.blocked_until: now + policy.block_duration}, synchronize_session=False)
        )

    def record_failure(self, key, now: datetime | None = None, **details) -> Decision:
        """
        Count one failed attempt for `key` and block it once the window's
        budget is spent. Returns the decision for the next attempt.
        """
        now = now or datetime.utcnow()
        policy = self.policy
        details = {k: v for k, v in details.items() if k in self.detail_attrs}

        with store_errors("record_failure"):
            if not self._bump(key, now, policy, details):
                row = self.model(
                    scope=self.scope,
                    attempt_count=1,
                    first_attempt_at=now,
                    last_attempt_at=now,
                    **{self.key_attr: key},
                    **details,
                )
                db.session.add(row)
                try:
                    db.session.flush()
                except IntegrityError:
                    # another request inserted the row first
                    db.session.rollback()
                    self._bump(key, now, policy, details)

            blocked_now = self._block_if_exhausted(key, now, policy)
            db.session.commit()
            record = self._query(key).first()

        if blocked_now:
            current_app.logger.warning(
                "%s %s blocked after %s attempts until %s",
                self.scope, key, record.attempt_count, record.blocked_until.isoformat(),
            )
        return evaluate(policy, record, now)

    def record_success(self, key) -> None:
        with store_errors("record_success"):
            deleted = self._query(key).delete(synchronize_session=False)
            db.session.commit()
        if deleted:
            current_app.logger.info("%s attempts reset for %s", self.scope, key)

    # ---------- admin ----------

    def list_blocked(self, now: datetime | None = None) -> Iterator[BlockedEntry]:
        now = now or datetime.utcnow()
        model = self.model
        q = (
            model.query
            .filter(model.scope == self.scope, model.blocked_until > now)
            .order_by(model.blocked_until.asc())
        )
        with store_errors("list_blocked"):
            for row in q.yield_per(100):
                yield BlockedEntry(
                    key=getattr(row, self.key_attr),
                    username=getattr(row, "username", None),
                    attempt_count=row.attempt_count,
                    first_attempt_at=row.first_attempt_at,
                    last_attempt_at=row.last_attempt_at,
                    blocked_until=row.blocked_until,
                    remaining=row.blocked_until - now,
                )

    def unblock(self, key, now: datetime | None = None):
        """
        Lift an active block and zero the count so the next failure opens a
        new window. Raises NotFound when `key` is not currently blocked.
        """
        now = now or datetime.utcnow()
        model = self.model
        with store_errors("unblock"):
            cleared = (
                self._query(key)
                .filter(model.blocked_until > now)
                .update(
                    {model.blocked_until: None, model.attempt_count: 0, model.updated_at: now},
                    synchronize_session=False,
                )
            )
            db.session.commit()
            if not cleared:
                raise NotFound(key, scope=self.scope)
            record = self._query(key).first()

        current_app.logger.info("%s block lifted for %s", self.scope, key)
        return record

    def unblock_all(self, now: datetime | None = None) -> int:
        now = now or datetime.utcnow()
        keys = [entry.key for entry in self.list_blocked(now)]
        count = 0
        for key in keys:
            try:
                self.unblock(key, now)
            except NotFound:
                # expired or lifted concurrently
                continue
            count += 1
        return count
