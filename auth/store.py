"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper (same as orgs/store.py).
UserStore is the repository; _row_to_user is the mapper. Services and routes
never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is the real guard against duplicate accounts. create_user()
  lets IntegrityError propagate; callers map it to Conflict.

  organization_id has no FOREIGN KEY: organizations live in their own store
  and the reference is weak. OrganizationService.remove() clears it
  explicitly via clear_organization().
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine

from auth.models import Role, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.USER.value),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("organization_id", Integer, index=True),  # weak reference, no FK
    Column("last_login_at", String(32)),
    Column("created_at", String(32), nullable=False),
)

# Columns update_user() accepts. id, email and created_at are immutable.
_MUTABLE_FIELDS = frozenset(
    {"hashed_password", "first_name", "last_name", "role", "is_active", "organization_id", "last_login_at"}
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite settings both stores need."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync routes in a thread pool
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///:memory:")
        uid = store.create_user(User(email="a@example.com", first_name="A", last_name="B",
                                     hashed_password=hasher.hash("secret-pass")))
        user = store.get_by_email("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    hashed_password=user.hashed_password,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    role=Role(user.role).value,
                    is_active=1 if user.is_active else 0,
                    organization_id=user.organization_id,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_by_organization(self, organization_id: int) -> list[User]:
        """Return every user whose organization_id matches, ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _users.select().where(_users.c.organization_id == organization_id).order_by(_users.c.id)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> User | None:
        """Update mutable fields on an existing user and return the fresh record.

        Accepted fields: see _MUTABLE_FIELDS. Unknown fields raise ValueError
        rather than being silently ignored. Returns None if user_id was not
        found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or immutable user fields: {sorted(unknown)!r}")
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        if "role" in fields:
            fields["role"] = Role(fields["role"]).value
        if fields:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
                conn.commit()
            if result.rowcount == 0:
                return None
        return self.get_by_id(user_id)

    def update_last_login(self, user_id: int) -> str:
        """Stamp the current UTC time as last_login_at for the user and return it."""
        stamp = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login_at=stamp))
            conn.commit()
        return stamp

    def clear_organization(self, organization_id: int) -> int:
        """Detach every member of an organization. Returns the number of users updated."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.organization_id == organization_id).values(organization_id=None)
            )
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        first_name=row.first_name,
        last_name=row.last_name,
        role=Role(row.role),
        is_active=bool(row.is_active),
        organization_id=row.organization_id,
        last_login_at=row.last_login_at,
        created_at=row.created_at,
    )
