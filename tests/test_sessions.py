"""Unit tests for auth/sessions.py -- SessionRegistry.

Covers:
- register() creates a live row keyed by the token digest, never the raw token
- revoke() is idempotent and ends liveness immediately
- Rows past expires_at are not live even while still active
- sweep() deletes expired and revoked rows and leaves live ones
- Deleting a user cascades to their sessions
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from auth.db import sessions, to_iso, users
from auth.models import Principal
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from auth.tokens import TokenIssuer


@pytest.fixture
def alice(store: CredentialStore) -> Principal:
    user = store.create("Alice Doe", "alice@example.com", "Passw0rd1")
    return Principal(id=user.id, name=user.name, email=user.email)


def _register(registry: SessionRegistry, issuer: TokenIssuer, principal: Principal) -> str:
    token = issuer.issue(principal)
    registry.register(principal.id, token.value, token.expires_at)
    return token.value


def _expire(registry: SessionRegistry, token: str) -> None:
    """Backdate a session row so it is past its expiry."""
    past = to_iso(datetime.now(timezone.utc) - timedelta(minutes=1))
    with registry.engine.begin() as conn:
        conn.execute(sessions.update().where(sessions.c.token_digest == registry._digest(token)).values(expires_at=past))


def _row_count(registry: SessionRegistry) -> int:
    with registry.engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(sessions)).scalar_one()


class TestRegister:
    def test_registered_token_is_live(self, registry, issuer, alice) -> None:
        token = _register(registry, issuer, alice)
        assert registry.is_live(token)

    def test_row_stores_digest_not_token(self, registry, issuer, alice) -> None:
        token = _register(registry, issuer, alice)
        session = registry.get(token)
        assert session is not None
        assert session.user_id == alice.id
        assert session.token_digest != token
        assert len(session.token_digest) == 64
        assert session.created_at < session.expires_at

    def test_unknown_token_not_live(self, registry, issuer, alice) -> None:
        assert not registry.is_live(issuer.issue(alice).value)
        assert registry.get("never-registered") is None

    def test_past_expiry_rejected(self, registry, alice) -> None:
        with pytest.raises(ValueError):
            registry.register(alice.id, "token", datetime.now(timezone.utc) - timedelta(seconds=1))

    def test_concurrent_sessions_are_independent(self, registry, issuer, alice) -> None:
        first = _register(registry, issuer, alice)
        second = _register(registry, issuer, alice)
        registry.revoke(first)
        assert not registry.is_live(first)
        assert registry.is_live(second)


class TestRevoke:
    def test_revoked_token_not_live(self, registry, issuer, alice) -> None:
        token = _register(registry, issuer, alice)
        assert registry.revoke(token) is True
        assert not registry.is_live(token)
        assert registry.get(token).is_active is False

    def test_revoke_is_idempotent(self, registry, issuer, alice) -> None:
        token = _register(registry, issuer, alice)
        registry.revoke(token)
        registry.revoke(token)
        assert not registry.is_live(token)

    def test_revoke_unknown_token_is_not_an_error(self, registry) -> None:
        assert registry.revoke("never-registered") is False


class TestExpiryAndSweep:
    def test_expired_row_not_live(self, registry, issuer, alice) -> None:
        token = _register(registry, issuer, alice)
        _expire(registry, token)
        assert not registry.is_live(token)
        assert registry.get(token).is_active is True

    def test_sweep_removes_expired_and_revoked_only(self, registry, issuer, alice) -> None:
        live = _register(registry, issuer, alice)
        revoked = _register(registry, issuer, alice)
        expired = _register(registry, issuer, alice)
        registry.revoke(revoked)
        _expire(registry, expired)

        assert registry.sweep() == 2
        assert registry.sweep() == 0
        assert registry.is_live(live)
        assert registry.get(revoked) is None
        assert registry.get(expired) is None
        assert _row_count(registry) == 1

    def test_sweep_on_empty_table(self, registry) -> None:
        assert registry.sweep() == 0

    def test_user_delete_cascades(self, registry, issuer, alice) -> None:
        _register(registry, issuer, alice)
        _register(registry, issuer, alice)
        with registry.engine.begin() as conn:
            conn.execute(users.delete().where(users.c.id == alice.id))
        assert _row_count(registry) == 0
