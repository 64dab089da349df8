"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Only one auth method exists: the Authorization: Bearer <token> header. The
token is checked by the AuthGuard living on app.state, which verifies the
signature and then the server-side session row.

get_current_principal() raises (TokenMissing / Unauthorized) -- the
AuthError handler in api/main.py turns those into 401 envelopes. On success
the Principal is also stored on request.state.principal for downstream code
such as logging middleware.

Layer rule: may import from fastapi (Depends/Request) because this module is
part of the FastAPI dependency injection system. No imports from api/.
"""

from __future__ import annotations

from fastapi import Request

from auth.guard import AuthGuard, extract_bearer_token
from auth.models import Principal


def get_current_principal(request: Request) -> Principal:
    """Require a live bearer token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    guard: AuthGuard = request.app.state.auth_guard
    principal = guard.validate(request.headers.get("Authorization"))
    request.state.principal = principal
    return principal


def get_bearer_token(request: Request) -> str | None:
    """Return the raw bearer token for routes that act on the session itself.

    Always pair with get_current_principal so the token has been validated.
    """
    return extract_bearer_token(request.headers.get("Authorization"))
