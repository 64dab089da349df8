"""
auth/tokens.py -- JWT issuance, password hashing, and token digests.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub (user id), email, name, a random jti and an expiry. The jti makes
       every token unique even when the same user signs in twice within one
       second, which the session table's unique digest index relies on.
       verify() raises TokenExpired or TokenInvalid -- AuthGuard logs which
       one happened and collapses both into Unauthorized for the client.

  Passwords: bcrypt used directly (no passlib wrapper). The cost factor is
       configurable (Settings.bcrypt_rounds) so production pays ~100-250 ms per
       derivation while the test suite runs at the bcrypt minimum.

  Token digests: session rows store HMAC-SHA256(SECRET_KEY, token), never the
       token. The digest is deterministic so lookup stays an indexed equality
       match; keying it with SECRET_KEY means a dump of the sessions table is
       useless without the key as well.

  SECRET_KEY: passed in by the caller (api/main.py reads core.config). The
       TokenIssuer refuses keys shorter than 32 characters.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.models import Claims, Principal, Token
from core.config import MIN_SECRET_KEY_LENGTH

logger = logging.getLogger("sessionauth.auth")

_ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL = timedelta(days=7)

_REQUIRED_CLAIMS = ("sub", "email", "name", "jti", "exp")

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = 12) -> str:
    """Return a bcrypt hash of the given plaintext password.

    The signup policy caps passwords at 72 bytes, so bcrypt never sees input
    it would truncate or reject.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Over-long input or a corrupt stored hash -- treat as a mismatch.
        return False


# ---------------------------------------------------------------------------
# Token digests
# ---------------------------------------------------------------------------


def digest_token(secret_key: str, token: str) -> str:
    """Return HMAC-SHA256(secret_key, token) as a 64-char hex string."""
    return hmac.new(secret_key.encode(), token.encode(), hashlib.sha256).hexdigest()


# ---------------------------------------------------------------------------
# JWT issue / verify
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Creates and verifies signed, self-contained identity tokens.

    Usage:
        issuer = TokenIssuer(settings.secret_key)
        token = issuer.issue(principal)
        claims = issuer.verify(token.value)
    """

    def __init__(self, secret_key: str, default_ttl: timedelta = DEFAULT_TOKEN_TTL) -> None:
        if len(secret_key) < MIN_SECRET_KEY_LENGTH:
            raise ValueError(f"Signing key must be at least {MIN_SECRET_KEY_LENGTH} characters.")
        self._secret_key = secret_key
        self.default_ttl = default_ttl

    def issue(self, principal: Principal, ttl: timedelta | None = None) -> Token:
        """Encode a signed JWT for principal that expires after ttl (default 7 days).

        The exp claim is whole seconds, so expires_at is truncated to match it.
        """
        now = datetime.now(timezone.utc).replace(microsecond=0)
        expires_at = now + (ttl if ttl is not None else self.default_ttl)
        jti = uuid.uuid4().hex
        payload = {
            "sub": principal.id,
            "email": principal.email,
            "name": principal.name,
            "jti": jti,
            "iat": now,
            "exp": expires_at,
        }
        value = jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)
        return Token(value=value, jti=jti, expires_at=expires_at)

    def verify(self, token: str) -> Claims:
        """Decode and verify token.

        Raises:
            TokenExpired: the exp claim has passed.
            TokenInvalid: bad signature, malformed token, or missing claims.
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise TokenInvalid() from exc

        missing = [claim for claim in _REQUIRED_CLAIMS if not payload.get(claim)]
        if missing:
            raise TokenInvalid(f"Token is missing claims: {', '.join(missing)}")

        return Claims(
            subject=str(payload["sub"]),
            email=str(payload["email"]),
            name=str(payload["name"]),
            jti=str(payload["jti"]),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
