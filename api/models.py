"""
API request and response models for the auth service REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Wire names are camelCase (firstName, refreshToken, displayName); Python
attributes are snake_case and mapped with aliases.

Request fields are all optional on purpose: a missing or empty field must
reach AuthService and come back as the "missing_fields" rejection (400), not
as a generic 422 validation error.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import TokenPair, UserProfile

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignUpRequest(BaseModel):
    """Request body for POST /auth/sign-up."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")


class SignInRequest(BaseModel):
    """Request body for POST /auth/sign-in."""

    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    """Request body for POST /auth/refresh-token."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class UserSummary(_CamelModel):
    """The user block inside a sign-in response (no id, never the hash)."""

    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str
    display_name: str = Field(alias="displayName")

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserSummary":
        return cls(
            first_name=profile.first_name,
            last_name=profile.last_name,
            email=profile.email,
            display_name=profile.display_name,
        )


class SignUpResponse(UserSummary):
    """Response body for POST /auth/sign-up (201)."""

    id: int

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "SignUpResponse":
        return cls(
            id=profile.id,
            first_name=profile.first_name,
            last_name=profile.last_name,
            email=profile.email,
            display_name=profile.display_name,
        )


class TokenPairResponse(_CamelModel):
    """Response body for POST /auth/refresh-token."""

    token: str
    refresh_token: str = Field(alias="refreshToken")

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenPairResponse":
        return cls(token=pair.access_token, refresh_token=pair.refresh_token)


class SignInResponse(TokenPairResponse):
    """Response body for POST /auth/sign-in."""

    user: UserSummary


class ProtectedResponse(_CamelModel):
    message: str
    user_id: int = Field(alias="userId")


class ErrorDetail(BaseModel):
    """Structured error payload. code is machine-readable, message is for humans."""

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every exception handler."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
