"""
auth/sessions.py -- Server-side session records (SessionRegistry).

One row per issued token. The signed token alone cannot be revoked before its
embedded expiry; the row can. AuthGuard requires both to pass.

Concurrency:
  Every method is one statement in its own scoped connection. Signins for the
  same user insert independent rows. revoke(), is_live() and sweep() rely on
  the database's row-level atomicity, so request handlers and the reaper run
  side by side without application locks. A sweep racing a logout either
  deletes the row or sees it already inactive -- both end in Deleted.

Storage:
  Rows hold HMAC-SHA256(SECRET_KEY, token), never the token itself. Lookups
  digest the presented token and match on the unique digest index.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.engine import Engine

from auth.db import now_iso, sessions, to_iso
from auth.models import Session
from auth.tokens import digest_token

logger = logging.getLogger("sessionauth.sessions")


class SessionRegistry:
    """Repository for Session rows keyed by token digest.

    Usage:
        registry = SessionRegistry(engine, settings.secret_key)
        registry.register(user_id, token.value, token.expires_at)
        registry.is_live(token.value)   # True
        registry.revoke(token.value)
        registry.sweep()                # -> 1
    """

    def __init__(self, engine: Engine, secret_key: str) -> None:
        self.engine = engine
        self._secret_key = secret_key

    def _digest(self, token: str) -> str:
        return digest_token(self._secret_key, token)

    def register(self, user_id: str, token: str, expires_at: datetime) -> str:
        """Insert a live session for token and return its id.

        Raises ValueError if expires_at is not after the creation time.
        """
        now = datetime.now(timezone.utc)
        if expires_at <= now:
            raise ValueError("Session expiry must be in the future.")
        session_id = str(uuid.uuid4())
        with self.engine.begin() as conn:
            conn.execute(
                sessions.insert().values(
                    id=session_id,
                    user_id=user_id,
                    token_digest=self._digest(token),
                    expires_at=to_iso(expires_at),
                    created_at=to_iso(now),
                    is_active=True,
                )
            )
        return session_id

    def is_live(self, token: str) -> bool:
        """True iff an active, unexpired row exists for token."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(sessions.c.id).where(
                    (sessions.c.token_digest == self._digest(token))
                    & (sessions.c.is_active.is_(True))
                    & (sessions.c.expires_at > now_iso())
                )
            ).fetchone()
        return row is not None

    def revoke(self, token: str) -> bool:
        """Mark the session for token inactive.

        Idempotent: revoking an unknown or already revoked token is not an
        error. Returns True if a row matched.
        """
        with self.engine.begin() as conn:
            result = conn.execute(
                sessions.update().where(sessions.c.token_digest == self._digest(token)).values(is_active=False)
            )
        return result.rowcount > 0

    def get(self, token: str) -> Session | None:
        """Return the session row for token regardless of liveness."""
        with self.engine.connect() as conn:
            row = conn.execute(sessions.select().where(sessions.c.token_digest == self._digest(token))).fetchone()
        return _row_to_session(row) if row is not None else None

    def sweep(self) -> int:
        """Delete every expired or revoked row. Returns the number removed."""
        with self.engine.begin() as conn:
            result = conn.execute(
                sessions.delete().where(or_(sessions.c.expires_at < now_iso(), sessions.c.is_active.is_(False)))
            )
        return result.rowcount


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        token_digest=row.token_digest,
        expires_at=row.expires_at,
        created_at=row.created_at,
        is_active=bool(row.is_active),
    )
