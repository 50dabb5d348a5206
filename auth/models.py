"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost no logic). Dataclasses own
domain shape; stores and the service do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered identity.

    email is unique across all users and matched exactly (case-sensitive).
    password_hash is the bcrypt digest; the plaintext is never stored and the
    hash never leaves the auth package (see UserProfile).
    """

    email: str
    first_name: str
    last_name: str
    password_hash: str
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class RefreshToken:
    """A persisted session credential.

    refresh_token is the signed token string itself and doubles as the
    store's lookup key. user_id is a reference, not ownership: a user may hold
    any number of concurrent refresh tokens (one per signed-in session).
    expires_in is a human-readable duration label such as "30d".
    """

    user_id: int
    refresh_token: str
    expires_in: str
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class UserProfile:
    """Outward-facing view of a User -- everything except the password hash."""

    id: int | None
    email: str
    first_name: str
    last_name: str

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(id=user.id, email=user.email, first_name=user.first_name, last_name=user.last_name)


@dataclass(frozen=True)
class TokenPair:
    """A freshly issued access/refresh token pair."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class SignInResult:
    """Successful sign-in: the user's profile plus a new token pair."""

    user: UserProfile
    tokens: TokenPair
