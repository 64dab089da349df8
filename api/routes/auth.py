"""
api/routes/auth.py -- Account and session REST endpoints.

Routes:
  POST /auth/signup    -- register an account (rate limited)
  POST /auth/signin    -- password login; returns a bearer token (rate limited)
  GET  /auth/validate  -- confirm a token is live and return its identity
  POST /auth/logout    -- revoke the presented token's session
  POST /auth/refresh   -- swap the presented token for a fresh one
  GET  /auth/profile   -- account details of the token's owner

Pipeline per request (each stage short-circuits with its error envelope):
  1. Request model parsing        -> 400 validation_error
  2. Rate limit (signup/signin)   -> 429 rate_limited
  3. AuthGuard (protected routes) -> 401 token_missing / unauthorized
  4. Handler

Security:
  Signin failures are one generic 401 whatever the cause (unknown email,
  wrong password, deactivated account). CredentialStore.verify() equalizes
  timing; do NOT inline the lookup + bcrypt here.
  Cache-Control: no-store on responses that carry a token.

Handlers are sync `def` so FastAPI runs them in its thread pool -- bcrypt and
store I/O never block the event loop.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import auth_attempts
from api.models import (
    MessageResponse,
    ProfileResponse,
    RefreshResponse,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    SignupResponse,
    UserProfile,
    UserSummary,
    ValidateResponse,
)
from auth.dependencies import get_bearer_token, get_current_principal
from auth.errors import NotFound, ValidationError
from auth.models import Principal
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from auth.tokens import TokenIssuer
from auth.validation import validate_signin

logger = logging.getLogger("sessionauth.api")

# Auth policy:
# - POST /auth/signup:   public, rate limited
# - POST /auth/signin:   public, rate limited
# - GET  /auth/validate: requires live token (get_current_principal)
# - POST /auth/logout:   requires live token (get_current_principal)
# - POST /auth/refresh:  requires live token (get_current_principal)
# - GET  /auth/profile:  requires live token (get_current_principal)
router = APIRouter(prefix="/auth")


def _issue_session(request: Request, principal: Principal) -> str:
    """Sign a token for principal and register its session row."""
    issuer: TokenIssuer = request.app.state.token_issuer
    registry: SessionRegistry = request.app.state.session_registry
    token = issuer.issue(principal)
    registry.register(principal.id, token.value, token.expires_at)
    return token.value


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=SignupResponse, status_code=201)
@auth_attempts
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Register an account. Name, email and password policy errors -> 400."""
    store: CredentialStore = request.app.state.credential_store
    user = store.create(body.name, body.email, body.password)
    return JSONResponse(
        status_code=201,
        content=SignupResponse(
            message="User registered successfully",
            user=UserSummary(id=user.id, name=user.name, email=user.email),
        ).model_dump(),
    )


@router.post("/signin", response_model=SigninResponse)
@auth_attempts
def signin(request: Request, body: SigninRequest) -> JSONResponse:
    """Authenticate with email and password; return a bearer token."""
    errors = validate_signin(body.email, body.password)
    if errors:
        raise ValidationError(details=errors)

    store: CredentialStore = request.app.state.credential_store
    principal = store.verify(body.email, body.password)
    token = _issue_session(request, principal)
    logger.info("User signed in: %s", principal.id)

    resp = JSONResponse(
        status_code=200,
        content=SigninResponse(
            message="Login successful",
            token=token,
            user=UserSummary.from_principal(principal),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/validate", response_model=ValidateResponse)
def validate(principal: Principal = Depends(get_current_principal)) -> ValidateResponse:
    """Return the identity bound to a live token."""
    return ValidateResponse(message="Token is valid", user=UserSummary.from_principal(principal))


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    token: str | None = Depends(get_bearer_token),
) -> MessageResponse:
    """Revoke the session behind the presented token.

    The token's signature stays valid until its exp, but AuthGuard rejects it
    from now on because its session row is inactive.
    """
    registry: SessionRegistry = request.app.state.session_registry
    registry.revoke(token)
    logger.info("User logged out: %s", principal.id)
    return MessageResponse(message="Logout successful")


@router.post("/refresh", response_model=RefreshResponse)
def refresh(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    token: str | None = Depends(get_bearer_token),
) -> JSONResponse:
    """Rotate the presented token: register a fresh one, then revoke the old.

    The new session is written before the old one is revoked, so a failure in
    between leaves the caller holding a working token.
    """
    registry: SessionRegistry = request.app.state.session_registry
    new_token = _issue_session(request, principal)
    registry.revoke(token)
    logger.info("Token refreshed for user %s", principal.id)

    resp = JSONResponse(
        status_code=200,
        content=RefreshResponse(message="Token refreshed", token=new_token).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/profile", response_model=ProfileResponse)
def profile(request: Request, principal: Principal = Depends(get_current_principal)) -> ProfileResponse:
    """Return stored account details for the token's owner."""
    store: CredentialStore = request.app.state.credential_store
    user = store.get_by_id(principal.id)
    if user is None:
        raise NotFound("User not found.")
    return ProfileResponse(user=UserProfile.from_user(user))
