"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these classes own the domain shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered account.

    id is a UUID4 string assigned by CredentialStore.create() and never
    changes afterwards. email is stored lower-cased and trimmed; the UNIQUE
    constraint on that normalized form is what rejects duplicate signups.

    hashed_password is the bcrypt credential. The plaintext is never stored.
    is_active is the only soft-delete mechanism -- accounts are never removed.
    """

    id: str
    name: str
    email: str
    hashed_password: str
    created_at: str
    updated_at: str
    last_login: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request after validation."""

    id: str
    name: str
    email: str


@dataclass
class Session:
    """Server-side record of one issued token.

    token_digest is HMAC-SHA256(SECRET_KEY, token). The raw bearer token is
    returned to the client once at signin and never persisted, so a read of
    the sessions table does not hand out live credentials.

    A session is live iff is_active and expires_at is in the future.
    """

    id: str
    user_id: str
    token_digest: str
    expires_at: str
    created_at: str
    is_active: bool = True


@dataclass(frozen=True)
class Token:
    """A freshly issued signed token and its embedded expiry."""

    value: str
    jti: str
    expires_at: datetime


@dataclass(frozen=True)
class Claims:
    """Verified claims decoded from a token."""

    subject: str
    email: str
    name: str
    jti: str
    expires_at: datetime

    def to_principal(self) -> Principal:
        return Principal(id=self.subject, name=self.name, email=self.email)
