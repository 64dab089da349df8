"""
auth/db.py -- Shared SQLAlchemy Core schema and engine factory.

Both CredentialStore (users) and SessionRegistry (sessions) run against one
engine so the sessions.user_id foreign key, with ON DELETE CASCADE, is
enforced by the database itself. The engine is the process-wide service
handle for the store: api/main.py creates it in the lifespan, passes it to the
components and disposes it on shutdown.

Pooling:
  Server databases (PostgreSQL, MySQL) get a bounded QueuePool sized from
  Settings.db_pool_size / db_pool_timeout. SQLite file DBs keep SQLAlchemy's
  default QueuePool; in-memory URLs (":memory:" or mode=memory) are pinned to
  SingletonThreadPool explicitly rather than relying on URL-based selection.

SQLite PRAGMAs:
  foreign_keys=ON and journal_mode=WAL are set per connection because SQLite
  does not inherit PRAGMAs across connections. Without foreign_keys=ON the
  cascade and the referential check silently do nothing.

Timestamps:
  Stored as ISO 8601 UTC strings with fixed microsecond precision. A fixed
  width keeps lexicographic order equal to chronological order, which the
  session liveness and sweep queries rely on.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import SingletonThreadPool

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),  # UUID4
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # normalized
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("last_login", String(32)),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Index("idx_users_created_at", "created_at"),
)

sessions = Table(
    "sessions",
    metadata,
    Column("id", String(36), primary_key=True),  # UUID4
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("token_digest", String(64), nullable=False),  # HMAC-SHA256 hex
    Column("expires_at", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Index("idx_sessions_token_digest", "token_digest", unique=True),
    Index("idx_sessions_user_id", "user_id"),
    Index("idx_sessions_expires_at", "expires_at"),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def _is_memory_url(db_url: str) -> bool:
    url = make_url(db_url)
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


def create_db_engine(db_url: str, pool_size: int = 10, pool_timeout: int = 30) -> Engine:
    """Create the engine, install SQLite hooks when needed, and create tables.

    create_all() is idempotent, so calling this on every startup is safe.
    """
    kwargs: dict = {}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_url(db_url):
            # One connection per thread keeps a shared-cache memory DB alive.
            kwargs["poolclass"] = SingletonThreadPool
    else:
        kwargs.update(pool_size=pool_size, pool_timeout=pool_timeout, pool_pre_ping=True)
    engine = create_engine(db_url, **kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def to_iso(moment: datetime) -> str:
    """Render an aware datetime as fixed-width UTC ISO 8601."""
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))
