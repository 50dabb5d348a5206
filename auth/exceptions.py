"""
auth/exceptions.py -- Exception taxonomy for the auth core.

Four families, checked in this order by every entry point:
  Input rejection     -- missing / malformed fields. No store access.
  Business rejection  -- duplicate email, bad credentials, unknown refresh
                         token. Needs a store round-trip.
  Token rejection     -- bad signature or elapsed expiry, raised by TokenIssuer.
  Infrastructure      -- a store call failed. Logged by the service, surfaced
                         as an opaque StoreFailure, never retried.

The api/ layer maps each family to an HTTP status. Nothing here knows HTTP.
"""

from __future__ import annotations

from enum import Enum


class RejectionReason(str, Enum):
    """Why the service refused a request. Values double as API error codes."""

    MISSING_FIELDS = "missing_fields"
    INVALID_EMAIL_FORMAT = "invalid_email_format"
    INVALID_PASSWORD_LENGTH = "invalid_password_length"
    EMAIL_TAKEN = "email_taken"
    # Covers both "no such user" and "wrong password" -- never split these.
    INVALID_CREDENTIALS = "invalid_credentials"
    MISSING_AUTH_HEADER = "missing_auth_header"
    MISSING_TOKEN = "missing_token"


_MESSAGES = {
    RejectionReason.MISSING_FIELDS: "Missing fields",
    RejectionReason.INVALID_EMAIL_FORMAT: "Invalid email format",
    RejectionReason.INVALID_PASSWORD_LENGTH: "Password must be between 8-20 characters",
    RejectionReason.EMAIL_TAKEN: "Email is already registered",
    RejectionReason.INVALID_CREDENTIALS: "Invalid credentials",
    RejectionReason.MISSING_AUTH_HEADER: "Authorization header missing",
    RejectionReason.MISSING_TOKEN: "Token missing",
}


class AuthError(Exception):
    """Base class for every error the auth core raises on purpose."""

    code = "auth_error"
    message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthRejected(AuthError):
    """Input or business rejection carrying a RejectionReason."""

    def __init__(self, reason: RejectionReason) -> None:
        self.reason = reason
        self.code = reason.value
        super().__init__(_MESSAGES[reason])


class RefreshTokenNotFound(AuthError):
    code = "not_found"
    message = "Refresh token not found"


class TokenError(AuthError):
    """A presented JWT failed cryptographic or time-based verification."""

    code = "invalid_token"
    message = "Invalid token"


class InvalidToken(TokenError):
    pass


class TokenExpired(TokenError):
    code = "token_expired"
    message = "Token expired"


class StoreFailure(AuthError):
    """A Credential Store or Token Store call errored.

    The message is deliberately opaque; the underlying exception is chained
    via __cause__ and logged server-side only.
    """

    code = "internal_error"
    message = "Internal server error"


class DuplicateEmail(Exception):
    """Raised by a CredentialStore when its uniqueness constraint fires.

    Not an AuthError: stores raise it, the service turns it into
    AuthRejected(EMAIL_TAKEN).
    """
