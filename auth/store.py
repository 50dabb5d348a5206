"""
auth/store.py -- Store contracts and SQLAlchemy Core persistence for auth entities.

Pattern: Repository + Data Mapper.
CredentialStore / TokenStore are the capability interfaces AuthService is
written against (typing.Protocol, so in-memory fakes satisfy them without
inheritance). UserStore / RefreshTokenStore are the SQL repositories;
_row_to_user / _row_to_token are the mappers. Service code never touches SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.

  users.email carries a UNIQUE constraint. AuthService checks for an existing
  email before inserting, but that check-then-insert is not atomic; the
  constraint is what stops two concurrent sign-ups for one email. The loser
  gets DuplicateEmail.

Default DB: authservice.db at the repository root (see core.config).

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.exceptions import DuplicateEmail
from auth.models import RefreshToken, User

# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    def create_user(self, user: User) -> int: ...

    def get_user_by_email(self, email: str) -> User | None: ...


class TokenStore(Protocol):
    def create_token(self, token: RefreshToken) -> int: ...

    def get_token(self, refresh_token: str) -> RefreshToken | None: ...

    def delete_token(self, refresh_token: str) -> int: ...

    def delete_tokens_by_user_id(self, user_id: int) -> int: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("first_name", String(255), nullable=False),
    Column("last_name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_tokens = Table(
    "tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("refresh_token", Text, nullable=False, unique=True),
    Column("expires_in", String(16), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync handlers in a threadpool.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    _metadata.create_all(engine)
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class UserStore:
    """SQL CredentialStore.

    Usage:
        store = UserStore("sqlite:///auth.db")
        uid = store.create_user(User(email="a@b.com", first_name="A", last_name="B", password_hash=h))
        user = store.get_user_by_email("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = _make_engine(db_url)

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateEmail if the email already exists (UNIQUE constraint).
        """
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=user.email,
                        first_name=user.first_name,
                        last_name=user.last_name,
                        password_hash=user.password_hash,
                        created_at=user.created_at or now,
                        updated_at=user.updated_at or now,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateEmail(user.email) from exc
        return result.inserted_primary_key[0]

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


class RefreshTokenStore:
    """SQL TokenStore. Rows are keyed by the refresh token string (UNIQUE)."""

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = _make_engine(db_url)

    def create_token(self, token: RefreshToken) -> int:
        """Insert a refresh token record and return its ID."""
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.insert().values(
                    user_id=token.user_id,
                    refresh_token=token.refresh_token,
                    expires_in=token.expires_in,
                    created_at=token.created_at or now,
                    updated_at=token.updated_at or now,
                )
            )
            conn.commit()
        return result.inserted_primary_key[0]

    def get_token(self, refresh_token: str) -> RefreshToken | None:
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.refresh_token == refresh_token)).fetchone()
        return _row_to_token(row) if row is not None else None

    def delete_token(self, refresh_token: str) -> int:
        """Delete one record by token string. Returns the number of rows removed (0 or 1)."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.refresh_token == refresh_token))
            conn.commit()
        return result.rowcount

    def delete_tokens_by_user_id(self, user_id: int) -> int:
        """Delete every record owned by user_id. Zero rows is not an error."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.user_id == user_id))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        password_hash=row.password_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_token(row) -> RefreshToken:
    return RefreshToken(
        id=row.id,
        user_id=row.user_id,
        refresh_token=row.refresh_token,
        expires_in=row.expires_in,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
