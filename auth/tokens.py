"""
auth/tokens.py -- JWT issuing and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide
       SECRET_KEY and carry the user id ("id"), issue time, expiry and a random
       "jti". The jti makes two tokens for the same user issued within the
       same second distinct strings; without it a refresh right after sign-in
       would hand back the very token it just consumed.

  Config is explicit: TokenIssuer takes a TokenConfig at construction instead
       of reading settings at import time, so tests can run issuers with
       distinct keys side by side.

  Verification raises instead of returning None. TokenExpired and
       InvalidToken share the TokenError base so callers that do not care
       about the difference catch one type.

Layer rule: no imports from api/. core/ is imported only by from_settings().
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from jose import ExpiredSignatureError, JWTError, jwt

from auth.exceptions import InvalidToken, TokenExpired

if TYPE_CHECKING:
    from core.config import Settings

_ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenConfig:
    """Signing key and token lifetimes. Loaded once, never rotated while running."""

    secret_key: str
    access_token_expire_seconds: int = 3600
    refresh_token_expire_seconds: int = 30 * 24 * 3600
    algorithm: str = _ALGORITHM

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenConfig":
        return cls(
            secret_key=settings.secret_key,
            access_token_expire_seconds=settings.access_token_expire_seconds,
            refresh_token_expire_seconds=settings.refresh_token_expire_seconds,
        )


def duration_label(seconds: int) -> str:
    """Render a lifetime as the largest whole unit: 2592000 -> "30d", 3600 -> "1h"."""
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


class TokenIssuer:
    """Creates and verifies signed, time-limited bearer tokens."""

    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    @property
    def refresh_expiry_label(self) -> str:
        return duration_label(self._config.refresh_token_expire_seconds)

    def issue_access_token(self, user_id: int) -> str:
        """Short-lived token (default 1 hour) proving identity on protected calls."""
        return self._encode(user_id, self._config.access_token_expire_seconds)

    def issue_refresh_token(self, user_id: int) -> str:
        """Long-lived token (default 30 days) that is also persisted by the service."""
        return self._encode(user_id, self._config.refresh_token_expire_seconds)

    def verify(self, token: str) -> dict[str, Any]:
        """Validate signature and expiry; return the claims.

        Raises TokenExpired when exp has elapsed and InvalidToken for anything
        else (bad signature, garbage input, missing id claim).
        """
        try:
            claims = jwt.decode(token, self._config.secret_key, algorithms=[self._config.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise InvalidToken() from exc
        if "id" not in claims:
            raise InvalidToken("Token carries no user id")
        return claims

    def _encode(self, user_id: int, lifetime_seconds: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "id": user_id,
            "iat": now,
            "exp": now + timedelta(seconds=lifetime_seconds),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._config.secret_key, algorithm=self._config.algorithm)
