"""
auth/store.py -- SQLAlchemy Core persistence layer for users and the refresh token ledger.

Pattern: Repository + Data Mapper. UserStore is the repository;
_row_to_user / _row_to_refresh_token are the mappers. Service and route code
never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Username uniqueness is a UNIQUE constraint, not a read-then-write check in
  code. Two concurrent registrations of the same name race on the INSERT and
  the loser gets IntegrityError, which create_user() turns into
  AlreadyExistsError.

Ledger:
  refresh_tokens.token is UNIQUE. store_refresh_token() upserts on that key
  so a duplicate token value replaces the existing row rather than failing.
  user_id cascades on user delete (SQLite needs PRAGMA foreign_keys=ON per
  connection for that to take effect).

Schema migrations:
  Numbered steps in _MIGRATIONS, each applied once and recorded in
  schema_migrations. Column additions are guarded by introspection, so a
  database created before a column existed is upgraded in place and running
  the migrations again is a no-op.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    inspect,
    select,
    text,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.exceptions import AlreadyExistsError
from auth.models import RefreshToken, User

logger = logging.getLogger("authgate.store")

_DEFAULT_DB_URL = "sqlite:///./authgate.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("nickname", Text),
    Column("description", Text),
    Column("created_at", String(32), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("token", Text, nullable=False, unique=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_schema_migrations = Table(
    "schema_migrations",
    _metadata,
    Column("version", Integer, primary_key=True),
    Column("applied_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journaling and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys=ON is what makes the
    refresh_tokens ON DELETE CASCADE actually fire.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


def _migration_1_base_tables(conn: Connection) -> None:
    _metadata.create_all(conn, tables=[_users, _refresh_tokens])


def _migration_2_profile_columns(conn: Connection) -> None:
    """Add nickname/description to a users table created before they existed."""
    existing_cols = {col["name"] for col in inspect(conn).get_columns("users")}
    for name in ("nickname", "description"):
        if name not in existing_cols:
            conn.execute(text(f"ALTER TABLE users ADD COLUMN {name} TEXT"))  # noqa: S608 -- fixed identifiers


_MIGRATIONS: list[tuple[int, Callable[[Connection], None]]] = [
    (1, _migration_1_base_tables),
    (2, _migration_2_profile_columns),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for users and the refresh token ledger.

    Created once at process start and closed at shutdown. Every method opens
    its own connection and runs a single statement, so no lock is needed
    around it.

    Usage:
        store = UserStore("sqlite:///./authgate.db")
        user_id = store.create_user("alice", hasher.hash("s3cret!"))
        store.store_refresh_token(token, user_id)
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _configure_sqlite)
        self.migrate()

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------

    def migrate(self) -> list[int]:
        """Apply pending migrations and return the versions applied.

        Safe to call from several processes opening the same fresh database.
        The loser of a race on the schema_migrations insert (or on a CREATE
        TABLE) rolls back; if the winner brought the schema fully up to date
        it returns [], otherwise the error propagates.
        """
        applied: list[int] = []
        try:
            with self.engine.begin() as conn:
                _metadata.create_all(conn, tables=[_schema_migrations])
                done = self._applied_versions(conn)
                for version, step in _MIGRATIONS:
                    if version in done:
                        continue
                    step(conn)
                    conn.execute(_schema_migrations.insert().values(version=version, applied_at=_now_iso()))
                    applied.append(version)
        except (IntegrityError, OperationalError):
            if self.schema_version() < _MIGRATIONS[-1][0]:
                raise
            logger.info("Schema migrations were applied by another process")
            return []
        if applied:
            logger.info("Applied schema migrations %s", applied)
        return applied

    def _applied_versions(self, conn: Connection) -> set[int]:
        return set(conn.execute(select(_schema_migrations.c.version)).scalars())

    def schema_version(self) -> int:
        """Return the highest applied migration version (0 for an empty database)."""
        stmt = select(_schema_migrations.c.version).order_by(_schema_migrations.c.version.desc())
        with self.engine.connect() as conn:
            version = conn.execute(stmt).scalar()
        return version or 0

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, username: str, password_hash: str, nickname: str | None = None) -> int:
        """Insert a new user and return its assigned database ID.

        Raises AlreadyExistsError if the username is taken, including when a
        concurrent request won the race between our caller's check and this
        INSERT.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        password_hash=password_hash,
                        nickname=nickname,
                        created_at=_now_iso(),
                    )
                )
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise AlreadyExistsError() from exc

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_description(self, user_id: int, description: str) -> bool:
        """Replace a user's description. Returns False if user_id was not found."""
        with self.engine.begin() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(description=description))
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Delete a user; their ledger rows go with them via ON DELETE CASCADE.

        Not used by the session flow -- exists for administrative cleanup.
        """
        with self.engine.begin() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Refresh token ledger
    # ------------------------------------------------------------------

    def store_refresh_token(self, token: str, user_id: int) -> None:
        """Record token as issued to user_id, replacing any row with the same token."""
        values = {"token": token, "user_id": user_id, "created_at": _now_iso()}
        dialect = self.engine.dialect.name
        with self.engine.begin() as conn:
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
                stmt = insert(_refresh_tokens).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[_refresh_tokens.c.token],
                    set_={"user_id": stmt.excluded.user_id, "created_at": stmt.excluded.created_at},
                )
                conn.execute(stmt)
            else:
                # No portable upsert; delete + insert inside one transaction.
                conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.token == token))
                conn.execute(_refresh_tokens.insert().values(**values))

    def find_refresh_token_owner(self, token: str) -> int | None:
        """Return the user_id the token was issued to, or None if not in the ledger."""
        with self.engine.connect() as conn:
            return conn.execute(select(_refresh_tokens.c.user_id).where(_refresh_tokens.c.token == token)).scalar()

    def find_refresh_token_username(self, token: str) -> str | None:
        """Join the ledger to users and return the owner's username, if any."""
        stmt = (
            select(_users.c.username)
            .select_from(_refresh_tokens.join(_users, _refresh_tokens.c.user_id == _users.c.id))
            .where(_refresh_tokens.c.token == token)
        )
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar()

    def get_refresh_tokens(self, user_id: int) -> list[RefreshToken]:
        """Return all ledger rows for a user, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _refresh_tokens.select()
                .where(_refresh_tokens.c.user_id == user_id)
                .order_by(_refresh_tokens.c.id.desc())
            ).fetchall()
        return [_row_to_refresh_token(r) for r in rows]

    def delete_refresh_token(self, token: str) -> bool:
        """Remove token from the ledger. Idempotent; returns whether a row existed."""
        with self.engine.begin() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.token == token))
        return result.rowcount > 0

    def delete_refresh_tokens_for_user(self, user_id: int) -> int:
        """Revoke every refresh token a user holds. Returns the number removed."""
        with self.engine.begin() as conn:
            result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.user_id == user_id))
        return result.rowcount

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        nickname=row.nickname,
        description=row.description,
        created_at=row.created_at,
    )


def _row_to_refresh_token(row) -> RefreshToken:
    return RefreshToken(
        id=row.id,
        token=row.token,
        user_id=row.user_id,
        created_at=row.created_at,
    )
