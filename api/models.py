"""
API request and response models for the session auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only check shape (field present, is a string). Field policy
(name length, email syntax, password strength) lives in auth/validation.py so
the same rules apply to every caller of CredentialStore, not just HTTP.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from auth.models import Principal, User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    name: str
    email: str
    password: str


class SigninRequest(BaseModel):
    """Request body for POST /auth/signin."""

    email: str
    password: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str

    @classmethod
    def from_principal(cls, principal: Principal) -> "UserSummary":
        return cls(id=principal.id, name=principal.name, email=principal.email)


class UserProfile(BaseModel):
    """Profile view of a user -- never includes the credential."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    created_at: str
    last_login: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=user.created_at,
            last_login=user.last_login,
        )


class SignupResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    user: UserSummary


class SigninResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    token: str
    user: UserSummary


class ValidateResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    user: UserSummary


class RefreshResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    token: str


class ProfileResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserProfile


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    details: Optional[list[dict[str, Any]]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "OK"
    timestamp: str
