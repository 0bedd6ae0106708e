"""
orgs/models.py -- Domain dataclass for organizations.

Pure data container with zero logic. Business rules (name uniqueness, creator
auto-join, member detachment on delete) live in orgs/service.py.

An Organization does not own its users. Membership is derived: every user
whose organization_id equals the organization's id. There is no members field;
UserStore.list_by_organization() is the only way to read it.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class Organization:
    """A named tenant.

    name is unique across the store. settings is an opaque JSON object owned
    by the client; the backend never interprets it.

    id is None before the record is written to the database.
    """

    name: str
    id: Optional[int] = None
    description: Optional[str] = None
    is_active: bool = True
    settings: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set by store on every write
