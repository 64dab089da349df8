"""
auth/guard.py -- Request authorization (AuthGuard).

A request is authorized only when BOTH layers agree:
  1. TokenIssuer.verify -- signature intact, claims present, exp not passed.
  2. SessionRegistry.is_live -- the server-side row exists, is active and has
     not expired.

The second check is what makes logout effective: a revoked token still has a
valid signature until its embedded expiry, but its session row is inactive.

Failure mapping:
  No/blank/non-Bearer credential  -> TokenMissing
  TokenInvalid / TokenExpired     -> Unauthorized (reason logged, not returned)
  Session not live                -> Unauthorized
"""

from __future__ import annotations

import logging

from auth.errors import TokenExpired, TokenInvalid, TokenMissing, Unauthorized
from auth.models import Principal
from auth.sessions import SessionRegistry
from auth.tokens import TokenIssuer

logger = logging.getLogger("sessionauth.auth")

_BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" value, or None."""
    if not authorization:
        return None
    if authorization[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


class AuthGuard:
    def __init__(self, issuer: TokenIssuer, registry: SessionRegistry) -> None:
        self.issuer = issuer
        self.registry = registry

    def validate(self, authorization: str | None) -> Principal:
        """Authorize a raw Authorization header value and return its Principal."""
        token = extract_bearer_token(authorization)
        if token is None:
            raise TokenMissing()
        return self.validate_token(token)

    def validate_token(self, token: str) -> Principal:
        try:
            claims = self.issuer.verify(token)
        except TokenExpired as exc:
            logger.info("Token rejected: expired")
            raise Unauthorized() from exc
        except TokenInvalid as exc:
            logger.info("Token rejected: %s", exc.message)
            raise Unauthorized() from exc

        if not self.registry.is_live(token):
            logger.info("Token rejected: session for user %s is revoked or expired", claims.subject)
            raise Unauthorized()

        return claims.to_principal()
