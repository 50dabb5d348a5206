"""
auth/service.py -- Sign-up, sign-in, sign-out and refresh-token rotation.

AuthService holds no per-request state. Each entry point is a stateless
orchestration over the stores it was constructed with, and either returns a
success value or raises one of the auth.exceptions classes:

  sign_up   -> UserProfile         | AuthRejected | StoreFailure
  sign_in   -> SignInResult        | AuthRejected | StoreFailure
  sign_out  -> None                | AuthRejected | TokenError | StoreFailure
  refresh   -> TokenPair           | RefreshTokenNotFound | StoreFailure

Behaviour worth knowing before changing anything here:
  [E1] Unknown email and wrong password both raise INVALID_CREDENTIALS, and
       both run one bcrypt verify, so neither the body nor the timing reveals
       whether an account exists.
  [E2] sign_up's email lookup and insert are two store calls, not one atomic
       operation. The SQL store's UNIQUE constraint catches the race; the
       loser is reported as EMAIL_TAKEN.
  [E3] sign_out revokes every refresh token of the user named by the access
       token ("logout everywhere"), not only the session that presented it.
  [E4] refresh only checks that the presented token is a stored record. It
       does NOT verify its signature or expiry, so an expired token that is
       still stored rotates successfully.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager

from auth.exceptions import (
    AuthRejected,
    DuplicateEmail,
    RefreshTokenNotFound,
    RejectionReason,
    StoreFailure,
)
from auth.hashing import PasswordHasher
from auth.models import RefreshToken, SignInResult, TokenPair, User, UserProfile
from auth.store import CredentialStore, TokenStore
from auth.tokens import TokenIssuer

logger = logging.getLogger("authservice.auth")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 20


@contextmanager
def _store_call(operation: str) -> Iterator[None]:
    """Turn any store exception into an opaque StoreFailure, logging the original."""
    try:
        yield
    except (DuplicateEmail, StoreFailure):
        raise
    except Exception as exc:
        logger.exception("Store failure during %s", operation)
        raise StoreFailure() from exc


def _require(*values: str | None) -> None:
    if not all(values):
        raise AuthRejected(RejectionReason.MISSING_FIELDS)


def _check_email(email: str) -> None:
    if not EMAIL_PATTERN.fullmatch(email):
        raise AuthRejected(RejectionReason.INVALID_EMAIL_FORMAT)


def extract_bearer_token(authorization: str | None) -> str:
    """Return the second whitespace-separated segment of an Authorization header.

    The scheme word itself is not checked: "Bearer abc" and "Token abc" both
    yield "abc".
    """
    if not authorization:
        raise AuthRejected(RejectionReason.MISSING_AUTH_HEADER)
    parts = authorization.split()
    if len(parts) < 2:
        raise AuthRejected(RejectionReason.MISSING_TOKEN)
    return parts[1]


class AuthService:
    """Credential verification and token lifecycle state machine."""

    def __init__(
        self,
        users: CredentialStore,
        tokens: TokenStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._hasher = hasher
        self._issuer = issuer

    def sign_up(
        self,
        email: str | None,
        password: str | None,
        first_name: str | None,
        last_name: str | None,
    ) -> UserProfile:
        """Register a new user and return its profile (never the hash)."""
        _require(email, password, first_name, last_name)
        _check_email(email)
        if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
            raise AuthRejected(RejectionReason.INVALID_PASSWORD_LENGTH)

        # [E2] check-then-insert; not atomic on its own.
        with _store_call("sign-up lookup"):
            existing = self._users.get_user_by_email(email)
        if existing is not None:
            raise AuthRejected(RejectionReason.EMAIL_TAKEN)

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=self._hasher.hash(password),
        )
        try:
            with _store_call("sign-up insert"):
                user.id = self._users.create_user(user)
        except DuplicateEmail as exc:
            raise AuthRejected(RejectionReason.EMAIL_TAKEN) from exc

        logger.info("Registered user %s", user.id)
        return UserProfile.from_user(user)

    def sign_in(self, email: str | None, password: str | None) -> SignInResult:
        """Verify credentials and open a new session (access + refresh token)."""
        _require(email, password)
        _check_email(email)

        with _store_call("sign-in lookup"):
            user = self._users.get_user_by_email(email)
        if user is None:
            # [E1] equalize timing -- do NOT return before running bcrypt.
            self._hasher.burn(password)
            raise AuthRejected(RejectionReason.INVALID_CREDENTIALS)
        if not self._hasher.verify(password, user.password_hash):
            raise AuthRejected(RejectionReason.INVALID_CREDENTIALS)

        tokens = self._open_session(user.id, "sign-in")
        logger.info("User %s signed in", user.id)
        return SignInResult(user=UserProfile.from_user(user), tokens=tokens)

    def sign_out(self, authorization: str | None) -> None:
        """Revoke every session of the user the presented access token names [E3].

        TokenError from verification propagates and fails the whole call.
        """
        token = extract_bearer_token(authorization)
        claims = self._issuer.verify(token)
        user_id = claims["id"]

        with _store_call("sign-out"):
            removed = self._tokens.delete_tokens_by_user_id(user_id)
        logger.info("User %s signed out (%d session(s) revoked)", user_id, removed)

    def refresh(self, presented: str | None) -> TokenPair:
        """Rotate a stored refresh token into a new access/refresh pair [E4]."""
        if not presented:
            raise RefreshTokenNotFound()

        with _store_call("refresh lookup"):
            record = self._tokens.get_token(presented)
        if record is None:
            raise RefreshTokenNotFound()

        access_token = self._issuer.issue_access_token(record.user_id)
        refresh_token = self._issuer.issue_refresh_token(record.user_id)
        with _store_call("refresh rotation"):
            self._tokens.delete_token(presented)
            self._tokens.create_token(self._record(record.user_id, refresh_token))
        logger.info("Rotated refresh token for user %s", record.user_id)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def _open_session(self, user_id: int, operation: str) -> TokenPair:
        access_token = self._issuer.issue_access_token(user_id)
        refresh_token = self._issuer.issue_refresh_token(user_id)
        with _store_call(operation):
            self._tokens.create_token(self._record(user_id, refresh_token))
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def _record(self, user_id: int, refresh_token: str) -> RefreshToken:
        return RefreshToken(
            user_id=user_id,
            refresh_token=refresh_token,
            expires_in=self._issuer.refresh_expiry_label,
        )
