"""
API request and response models for AuthGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field names are snake_case in Python and camelCase on the wire
(refresh_token <-> refreshToken). populate_by_name lets tests and internal
callers use either spelling.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import AccessClaims, User

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(_CamelModel):
    """Request body for POST /api/v1/auth/register.

    Usernames are case-sensitive and are not stripped. bcrypt's 72-byte input
    limit is enforced by the password hasher, which reports it as a 400.
    """

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)
    nickname: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(_CamelModel):
    """Request body for POST /api/v1/auth/login."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class RefreshRequest(_CamelModel):
    """Request body for POST /api/v1/auth/refresh.

    Optional at the schema level so a missing token is reported as 401
    (missing credential) rather than a 400 validation error.
    """

    refresh_token: Optional[str] = None


class LogoutRequest(_CamelModel):
    refresh_token: Optional[str] = None


class DescriptionUpdate(_CamelModel):
    """Request body for PUT /api/v1/profile/description."""

    description: str = Field(max_length=2000)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class MessageResponse(_CamelModel):
    model_config = ConfigDict(frozen=True)

    message: str


class LoginResponse(_CamelModel):
    """Response for POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    username: str


class RefreshResponse(_CamelModel):
    model_config = ConfigDict(frozen=True)

    access_token: str


class ClaimsResponse(_CamelModel):
    """Identity decoded from the caller's access token."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    iat: int
    exp: int

    @classmethod
    def from_claims(cls, claims: AccessClaims) -> "ClaimsResponse":
        return cls(
            id=claims.user_id,
            username=claims.username,
            iat=claims.issued_at,
            exp=claims.expires_at,
        )


class MeResponse(_CamelModel):
    """Response for GET /api/v1/auth/me."""

    model_config = ConfigDict(frozen=True)

    message: str
    user: ClaimsResponse


class ProfileResponse(_CamelModel):
    """Response for GET /api/v1/profile. Missing text fields render as ""."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    nickname: str
    description: str

    @classmethod
    def from_user(cls, user: User) -> "ProfileResponse":
        return cls(
            id=user.id,
            username=user.username,
            nickname=user.nickname or "",
            description=user.description or "",
        )


class DescriptionResponse(_CamelModel):
    model_config = ConfigDict(frozen=True)

    message: str
    description: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
