"""
orgs/service.py -- Organization CRUD and membership operations.

OrganizationService holds the business rules; access control is NOT done
here. Routes run the Authorizer (auth.policy) before calling in, so every
method assumes the caller is already allowed to perform the operation.

Rules:
  Name uniqueness -- create() and update() pre-check the name for a friendly
      Conflict, but the UNIQUE constraint in OrganizationStore is the real
      guard. A concurrent duplicate that slips past the pre-check surfaces
      as IntegrityError and is mapped to the same Conflict.

  Creator auto-join -- the creating user's organization_id is set to the new
      organization (replacing any previous membership).

  Delete cascade -- remove() clears organization_id on every member before
      deleting the row, so no user is left pointing at a missing
      organization.

  find_by_user() returns None (not an error) when the user has no
      organization.

Users are returned as SafeUser projections.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError

from auth.models import SafeUser
from auth.store import UserStore
from core.errors import Conflict, NotFound
from orgs.models import Organization
from orgs.store import OrganizationStore

logger = logging.getLogger("usermgmt.orgs")

# Fields a client may change through update().
_UPDATABLE_FIELDS = ("name", "description", "is_active", "settings")


def _name_taken(name: str) -> Conflict:
    return Conflict("Organization with this name already exists.", detail=name)


class OrganizationService:
    """Usage:
    service = OrganizationService(org_store, user_store)
    org = service.create({"name": "Acme"}, user_id=1)
    """

    def __init__(self, org_store: OrganizationStore, user_store: UserStore) -> None:
        self.org_store = org_store
        self.user_store = user_store

    def create(self, fields: dict[str, Any], user_id: int) -> Organization:
        """Create an organization and make the creating user a member of it.

        Raises NotFound if the creator does not exist; no organization is left
        behind without its creator.
        """
        if self.user_store.get_by_id(user_id) is None:
            raise NotFound(f"User with ID {user_id} not found.")
        name = fields["name"]
        if self.org_store.get_by_name(name) is not None:
            raise _name_taken(name)

        org = Organization(
            name=name,
            description=fields.get("description"),
            is_active=fields.get("is_active", True),
            settings=fields.get("settings") or {},
        )
        try:
            org_id = self.org_store.create(org)
        except IntegrityError as exc:
            raise _name_taken(name) from exc

        if self.user_store.update_user(user_id, organization_id=org_id) is None:
            # Creator deleted between the lookup and the write.
            self.org_store.delete(Organization(name=name, id=org_id))
            raise NotFound(f"User with ID {user_id} not found.")
        logger.info("Organization %s (%r) created by user %s", org_id, name, user_id)
        return self.find_one(org_id)

    def find_all(self) -> list[Organization]:
        return self.org_store.list_all()

    def find_one(self, org_id: int) -> Organization:
        org = self.org_store.get_by_id(org_id)
        if org is None:
            raise NotFound(f"Organization with ID {org_id} not found.")
        return org

    def update(self, org_id: int, fields: dict[str, Any]) -> Organization:
        """Merge the given fields into the organization and save it.

        Keys outside name/description/is_active/settings are ignored; the API
        layer's request model already rejects them.
        """
        org = self.find_one(org_id)
        # description may be cleared with None; the other fields may not
        changes = {
            k: v for k, v in fields.items() if k in _UPDATABLE_FIELDS and (v is not None or k == "description")
        }

        new_name = changes.get("name")
        if new_name is not None and new_name != org.name:
            existing = self.org_store.get_by_name(new_name)
            if existing is not None and existing.id != org.id:
                raise _name_taken(new_name)

        for key, value in changes.items():
            setattr(org, key, value)
        try:
            saved = self.org_store.save(org)
        except IntegrityError as exc:
            raise _name_taken(org.name) from exc
        logger.info("Organization %s updated (%s)", org_id, ", ".join(sorted(changes)) or "no changes")
        return saved

    def remove(self, org_id: int) -> None:
        """Detach all members, then delete the organization."""
        org = self.find_one(org_id)
        detached = self.user_store.clear_organization(org.id)
        self.org_store.delete(org)
        logger.info("Organization %s deleted; %d member(s) detached", org_id, detached)

    def find_by_user(self, user_id: int) -> Organization | None:
        user = self.user_store.get_by_id(user_id)
        if user is None or user.organization_id is None:
            return None
        return self.find_one(user.organization_id)

    def add_user(self, user_id: int, org_id: int) -> SafeUser:
        """Move a user into an organization (replacing any previous membership)."""
        if self.user_store.get_by_id(user_id) is None:
            raise NotFound(f"User with ID {user_id} not found.")
        org = self.find_one(org_id)
        updated = self.user_store.update_user(user_id, organization_id=org.id)
        if updated is None:
            # Deleted between the lookup and the write.
            raise NotFound(f"User with ID {user_id} not found.")
        logger.info("User %s added to organization %s", user_id, org.id)
        return SafeUser.from_user(updated)

    def get_users(self, org_id: int) -> list[SafeUser]:
        org = self.find_one(org_id)
        return [SafeUser.from_user(u) for u in self.user_store.list_by_organization(org.id)]
