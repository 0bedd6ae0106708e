"""
auth/policy.py -- Per-operation access policy and the Authorizer that applies it.

Every protected operation is named in Operation and has exactly one entry in
POLICIES. Routes never declare roles themselves; they ask
Authorizer.authorize_operation() (via auth.dependencies.require) and the table
decides. Three gates, applied in order:

  1. Authentication -- a valid, unexpired, correctly signed bearer token.
     Failure: Unauthenticated (401).
  2. Role -- the token's role must be in the policy's role set. A policy with
     roles=None admits every authenticated user. Failure: Forbidden (403).
  3. Membership -- for policies with membership=True and a target
     organization, the acting user must belong to that organization or hold
     an admin role. Failure: Forbidden (403).

Membership gap:
  get_organization, update_organization and list_organization_users were
  authenticated-only in the original service. They carry membership=True
  here. ENFORCE_ORG_MEMBERSHIP=false turns the gate off for all three at once
  (logged at startup); it is never silently absent.

Token verification is a pure function of the token and the signing key. Only
the membership gate reads the store (the acting user's organization_id is not
in the token, so a membership change takes effect without re-login).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from auth.models import ADMIN_ROLES, AuthClaims, Role
from core.errors import Forbidden, InvalidToken, Unauthenticated

if TYPE_CHECKING:
    from auth.store import UserStore
    from auth.tokens import TokenIssuer

logger = logging.getLogger("usermgmt.auth")


class Operation(str, Enum):
    CREATE_ORGANIZATION = "create_organization"
    LIST_ORGANIZATIONS = "list_organizations"
    GET_MY_ORGANIZATION = "get_my_organization"
    GET_ORGANIZATION = "get_organization"
    UPDATE_ORGANIZATION = "update_organization"
    DELETE_ORGANIZATION = "delete_organization"
    ADD_ORGANIZATION_USER = "add_organization_user"
    LIST_ORGANIZATION_USERS = "list_organization_users"
    CREATE_USER = "create_user"


@dataclass(frozen=True)
class OperationPolicy:
    roles: frozenset[Role] | None = None  # None = any authenticated user
    membership: bool = False


POLICIES: dict[Operation, OperationPolicy] = {
    Operation.CREATE_ORGANIZATION: OperationPolicy(),  # creator auto-joins
    Operation.LIST_ORGANIZATIONS: OperationPolicy(roles=ADMIN_ROLES),
    Operation.GET_MY_ORGANIZATION: OperationPolicy(),  # scoped to the acting user
    Operation.GET_ORGANIZATION: OperationPolicy(membership=True),
    Operation.UPDATE_ORGANIZATION: OperationPolicy(membership=True),
    Operation.DELETE_ORGANIZATION: OperationPolicy(roles=ADMIN_ROLES),
    Operation.ADD_ORGANIZATION_USER: OperationPolicy(roles=ADMIN_ROLES),
    Operation.LIST_ORGANIZATION_USERS: OperationPolicy(membership=True),
    Operation.CREATE_USER: OperationPolicy(roles=ADMIN_ROLES),
}


def membership_gap_operations() -> list[Operation]:
    """Operations whose membership gate ENFORCE_ORG_MEMBERSHIP controls."""
    return [op for op, policy in POLICIES.items() if policy.membership]


class Authorizer:
    """Applies the authentication, role and membership gates.

    Usage:
        authorizer = Authorizer(issuer, user_store)
        claims = authorizer.authorize_operation(token, Operation.GET_ORGANIZATION, organization_id=7)
    """

    def __init__(self, issuer: TokenIssuer, user_store: UserStore, enforce_membership: bool = True) -> None:
        self.issuer = issuer
        self.user_store = user_store
        self.enforce_membership = enforce_membership

    def authorize(self, token: str | None, required_roles: Iterable[Role] | None = None) -> AuthClaims:
        """Authentication gate, then role gate. Returns the verified claims."""
        if not token:
            raise Unauthenticated()
        try:
            claims = self.issuer.verify(token)
        except InvalidToken as exc:
            logger.debug("Rejected bearer token: %s", exc)
            raise Unauthenticated() from None

        if required_roles is not None and claims.role not in frozenset(required_roles):
            logger.info("User %s (%s) denied: role not permitted", claims.subject, claims.role.value)
            raise Forbidden()
        return claims

    def check_membership(self, claims: AuthClaims, organization_id: int) -> None:
        """Raise Forbidden unless the acting user belongs to the organization or is an admin."""
        if not self.enforce_membership:
            logger.debug("Membership gate disabled; admitting user %s to org %s", claims.subject, organization_id)
            return
        if claims.role in ADMIN_ROLES:
            return
        user = self.user_store.get_by_id(claims.subject)
        if user is None or user.organization_id != organization_id:
            logger.info("User %s denied: not a member of org %s", claims.subject, organization_id)
            raise Forbidden("You are not a member of this organization.")

    def authorize_operation(
        self,
        token: str | None,
        operation: Operation,
        organization_id: int | None = None,
    ) -> AuthClaims:
        """Apply every gate POLICIES declares for the operation."""
        policy = POLICIES[operation]
        claims = self.authorize(token, policy.roles)
        if policy.membership and organization_id is not None:
            self.check_membership(claims, organization_id)
        return claims
