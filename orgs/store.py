"""
orgs/store.py -- SQLAlchemy-backed persistence layer for organizations.

Uses SQLAlchemy Core (not ORM) so the dataclass in orgs/models.py remains the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. OrganizationStore is the repository;
_row_to_organization is the mapper.

UNIQUE(name) is the invariant guard for duplicate names. create() and save()
let IntegrityError propagate; OrganizationService maps it to Conflict. Any
name pre-check done by the service is only a fast path.

settings is stored as a JSON object serialized to text.

Usage:
    store = OrganizationStore("sqlite:///:memory:")
    org_id = store.create(Organization(name="Acme"))
    org = store.get_by_id(org_id)
    org.description = "Widgets"
    store.save(org)
    store.close()
"""

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from auth.store import make_engine
from orgs.models import Organization

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_organizations = Table(
    "organizations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("description", Text),
    Column("is_active", Integer, nullable=False, server_default="1"),
    Column("settings", Text, nullable=False, server_default="{}"),  # JSON object serialized as text
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrganizationStore:
    """Repository for Organization records."""

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def create(self, org: Organization) -> int:
        """Insert a new organization and return its assigned ID.

        Raises sqlalchemy.exc.IntegrityError if the name is already taken.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _organizations.insert().values(
                    name=org.name,
                    description=org.description,
                    is_active=1 if org.is_active else 0,
                    settings=json.dumps(org.settings or {}),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_id(self, org_id: int) -> Optional[Organization]:
        with self.engine.connect() as conn:
            row = conn.execute(_organizations.select().where(_organizations.c.id == org_id)).fetchone()
        return _row_to_organization(row) if row is not None else None

    def get_by_name(self, name: str) -> Optional[Organization]:
        """Look up an organization by exact name. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_organizations.select().where(_organizations.c.name == name)).fetchone()
        return _row_to_organization(row) if row is not None else None

    def list_all(self) -> list[Organization]:
        """Return every organization ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(_organizations.select().order_by(_organizations.c.name)).fetchall()
        return [_row_to_organization(r) for r in rows]

    def save(self, org: Organization) -> Organization:
        """Write every mutable field of an existing organization and return the stored record.

        Raises sqlalchemy.exc.IntegrityError if a rename collides with another
        organization's name. Raises ValueError for an unsaved record.
        """
        if org.id is None:
            raise ValueError("Cannot save an organization without an id; use create().")
        with self.engine.connect() as conn:
            conn.execute(
                _organizations.update()
                .where(_organizations.c.id == org.id)
                .values(
                    name=org.name,
                    description=org.description,
                    is_active=1 if org.is_active else 0,
                    settings=json.dumps(org.settings or {}),
                    updated_at=_now_iso(),
                )
            )
            conn.commit()
        saved = self.get_by_id(org.id)
        return saved if saved is not None else org

    def delete(self, org: Organization) -> bool:
        """Delete the organization row. Returns True if a row was removed.

        Does not touch users; member detachment is OrganizationService's job.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_organizations.delete().where(_organizations.c.id == org.id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_organization(row) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        description=row.description,
        is_active=bool(row.is_active),
        settings=json.loads(row.settings) if row.settings else {},
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
