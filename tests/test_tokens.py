"""Unit tests for auth/tokens.py -- password hashing, token digests and TokenIssuer.

Covers:
- bcrypt hash/verify round trip and mismatch handling
- HMAC digests are deterministic, key-dependent and never the token itself
- Issued tokens carry sub/email/name/jti/exp and verify back to the Principal
- Expired, tampered, foreign-key and claim-less tokens are rejected
- Short signing keys are refused at construction
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.models import Principal
from auth.tokens import TokenIssuer, digest_token, hash_password, verify_password

_SECRET = "test-secret-key-that-is-long-enough-0123456789"

_ALICE = Principal(id="0b7d8f0e-4a61-4a32-9a57-3f0f2d4c1e11", name="Alice Doe", email="alice@example.com")


class TestPasswords:
    def test_hash_verifies(self) -> None:
        hashed = hash_password("Passw0rd1", rounds=4)
        assert verify_password("Passw0rd1", hashed)

    def test_wrong_password_fails(self) -> None:
        hashed = hash_password("Passw0rd1", rounds=4)
        assert not verify_password("Passw0rd2", hashed)

    def test_same_password_gets_distinct_salts(self) -> None:
        assert hash_password("Passw0rd1", rounds=4) != hash_password("Passw0rd1", rounds=4)

    def test_corrupt_hash_is_a_mismatch(self) -> None:
        assert verify_password("Passw0rd1", "not-a-bcrypt-hash") is False


class TestDigest:
    def test_deterministic(self) -> None:
        assert digest_token(_SECRET, "abc") == digest_token(_SECRET, "abc")

    def test_hex_sha256_length(self) -> None:
        assert len(digest_token(_SECRET, "abc")) == 64

    def test_key_dependent(self) -> None:
        other = "another-secret-key-that-is-long-enough-0123"
        assert digest_token(_SECRET, "abc") != digest_token(other, "abc")


class TestIssue:
    def test_claims_round_trip(self, issuer: TokenIssuer) -> None:
        token = issuer.issue(_ALICE)
        claims = issuer.verify(token.value)
        assert claims.to_principal() == _ALICE
        assert claims.jti == token.jti
        assert claims.expires_at == token.expires_at

    def test_default_lifetime_is_seven_days(self, issuer: TokenIssuer) -> None:
        before = datetime.now(timezone.utc).replace(microsecond=0)
        token = issuer.issue(_ALICE)
        after = datetime.now(timezone.utc)
        assert before + timedelta(days=7) <= token.expires_at <= after + timedelta(days=7)

    def test_custom_ttl(self, issuer: TokenIssuer) -> None:
        token = issuer.issue(_ALICE, ttl=timedelta(minutes=5))
        remaining = token.expires_at - datetime.now(timezone.utc)
        assert timedelta(minutes=4) < remaining <= timedelta(minutes=5)

    def test_two_tokens_for_same_user_differ(self, issuer: TokenIssuer) -> None:
        a = issuer.issue(_ALICE)
        b = issuer.issue(_ALICE)
        assert a.value != b.value
        assert a.jti != b.jti

    def test_payload_contents(self, issuer: TokenIssuer) -> None:
        token = issuer.issue(_ALICE)
        payload = jwt.get_unverified_claims(token.value)
        assert payload["sub"] == _ALICE.id
        assert payload["email"] == _ALICE.email
        assert payload["name"] == _ALICE.name
        assert {"jti", "iat", "exp"} <= payload.keys()

    def test_short_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenIssuer("too-short")


class TestVerify:
    def test_expired_token(self, issuer: TokenIssuer) -> None:
        token = issuer.issue(_ALICE, ttl=timedelta(seconds=-10))
        with pytest.raises(TokenExpired):
            issuer.verify(token.value)

    def test_garbage_token(self, issuer: TokenIssuer) -> None:
        with pytest.raises(TokenInvalid):
            issuer.verify("not.a.token")

    def test_tampered_signature(self, issuer: TokenIssuer) -> None:
        value = issuer.issue(_ALICE).value
        head, body, sig = value.split(".")
        tampered = ".".join([head, body, sig[::-1]])
        with pytest.raises(TokenInvalid):
            issuer.verify(tampered)

    def test_token_from_another_key(self, issuer: TokenIssuer) -> None:
        other = TokenIssuer("another-secret-key-that-is-long-enough-0123")
        with pytest.raises(TokenInvalid):
            issuer.verify(other.issue(_ALICE).value)

    def test_missing_claims(self) -> None:
        issuer = TokenIssuer(_SECRET)
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        value = jwt.encode({"sub": _ALICE.id, "exp": exp}, _SECRET, algorithm="HS256")
        with pytest.raises(TokenInvalid):
            issuer.verify(value)
