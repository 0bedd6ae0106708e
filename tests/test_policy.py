"""Unit tests for auth/policy.py -- the policy table and the Authorizer gates.

Covers:
- every Operation has exactly one policy entry
- authentication gate: missing, garbage, expired tokens -> Unauthenticated
- role gate: plain users are Forbidden on admin operations; admins pass
- membership gate: outsiders Forbidden, members and admins admitted
- ENFORCE_ORG_MEMBERSHIP=false disables the gate for exactly the gap operations
"""

from __future__ import annotations

import pytest

from auth.models import ADMIN_ROLES, AuthClaims, Role
from auth.policy import POLICIES, Authorizer, Operation, membership_gap_operations
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.errors import Forbidden, Unauthenticated

ADMIN_ONLY = [
    Operation.LIST_ORGANIZATIONS,
    Operation.DELETE_ORGANIZATION,
    Operation.ADD_ORGANIZATION_USER,
    Operation.CREATE_USER,
]
MEMBERSHIP_GATED = [
    Operation.GET_ORGANIZATION,
    Operation.UPDATE_ORGANIZATION,
    Operation.LIST_ORGANIZATION_USERS,
]


@pytest.fixture
def authorizer(issuer: TokenIssuer, user_store: UserStore) -> Authorizer:
    return Authorizer(issuer, user_store)


def _token(issuer: TokenIssuer, user) -> str:
    return issuer.issue(AuthClaims(subject=user.id, email=user.email, role=user.role))


# ---------------------------------------------------------------------------
# Policy table
# ---------------------------------------------------------------------------


def test_every_operation_has_a_policy() -> None:
    assert set(POLICIES) == set(Operation)


def test_admin_only_operations_require_admin_roles() -> None:
    for op in ADMIN_ONLY:
        assert POLICIES[op].roles == ADMIN_ROLES, op


def test_gap_operations_are_the_membership_gated_ones() -> None:
    assert set(membership_gap_operations()) == set(MEMBERSHIP_GATED)


# ---------------------------------------------------------------------------
# Authentication gate
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
def test_missing_or_invalid_token_is_unauthenticated(authorizer: Authorizer, token) -> None:
    with pytest.raises(Unauthenticated):
        authorizer.authorize(token)


def test_expired_token_is_unauthenticated(authorizer: Authorizer, issuer: TokenIssuer) -> None:
    token = issuer.issue(AuthClaims(subject=1, email="a@b.co", role=Role.SUPER_ADMIN), expire_seconds=-10)
    with pytest.raises(Unauthenticated):
        authorizer.authorize(token)


def test_authenticated_only_operation_admits_any_role(authorizer: Authorizer, issuer: TokenIssuer, make_user) -> None:
    user = make_user(email="plain@example.com")
    claims = authorizer.authorize_operation(_token(issuer, user), Operation.CREATE_ORGANIZATION)
    assert claims.subject == user.id


def test_authentication_precedes_role_check(authorizer: Authorizer) -> None:
    """A bad token on an admin-only operation is 401, not 403."""
    with pytest.raises(Unauthenticated):
        authorizer.authorize_operation("nope", Operation.DELETE_ORGANIZATION)


# ---------------------------------------------------------------------------
# Role gate
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("operation", ADMIN_ONLY)
def test_plain_user_forbidden_on_admin_operations(
    authorizer: Authorizer, issuer: TokenIssuer, make_user, operation: Operation
) -> None:
    user = make_user(email="plain@example.com")
    with pytest.raises(Forbidden):
        authorizer.authorize_operation(_token(issuer, user), operation, organization_id=1)


@pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPER_ADMIN])
@pytest.mark.parametrize("operation", ADMIN_ONLY)
def test_admin_roles_pass_admin_operations(
    authorizer: Authorizer, issuer: TokenIssuer, make_user, role: Role, operation: Operation
) -> None:
    admin = make_user(email="boss@example.com", role=role)
    claims = authorizer.authorize_operation(_token(issuer, admin), operation, organization_id=1)
    assert claims.role is role


# ---------------------------------------------------------------------------
# Membership gate
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("operation", MEMBERSHIP_GATED)
def test_outsider_forbidden(authorizer: Authorizer, issuer: TokenIssuer, make_user, operation: Operation) -> None:
    outsider = make_user(email="out@example.com", organization_id=2)
    with pytest.raises(Forbidden) as exc_info:
        authorizer.authorize_operation(_token(issuer, outsider), operation, organization_id=1)
    assert "not a member" in exc_info.value.message


@pytest.mark.parametrize("operation", MEMBERSHIP_GATED)
def test_user_without_organization_forbidden(
    authorizer: Authorizer, issuer: TokenIssuer, make_user, operation: Operation
) -> None:
    loner = make_user(email="loner@example.com")
    with pytest.raises(Forbidden):
        authorizer.authorize_operation(_token(issuer, loner), operation, organization_id=1)


@pytest.mark.parametrize("operation", MEMBERSHIP_GATED)
def test_member_admitted(authorizer: Authorizer, issuer: TokenIssuer, make_user, operation: Operation) -> None:
    member = make_user(email="in@example.com", organization_id=1)
    claims = authorizer.authorize_operation(_token(issuer, member), operation, organization_id=1)
    assert claims.subject == member.id


@pytest.mark.parametrize("operation", MEMBERSHIP_GATED)
def test_admin_bypasses_membership(authorizer: Authorizer, issuer: TokenIssuer, make_user, operation: Operation) -> None:
    admin = make_user(email="boss@example.com", role=Role.ADMIN)
    authorizer.authorize_operation(_token(issuer, admin), operation, organization_id=99)


def test_membership_read_from_store_not_token(
    authorizer: Authorizer, issuer: TokenIssuer, make_user, user_store: UserStore
) -> None:
    """Moving a user takes effect on the next request with the same token."""
    user = make_user(email="mover@example.com", organization_id=1)
    token = _token(issuer, user)
    authorizer.authorize_operation(token, Operation.GET_ORGANIZATION, organization_id=1)

    user_store.update_user(user.id, organization_id=2)

    with pytest.raises(Forbidden):
        authorizer.authorize_operation(token, Operation.GET_ORGANIZATION, organization_id=1)


def test_deleted_user_fails_membership(
    authorizer: Authorizer, issuer: TokenIssuer
) -> None:
    ghost = AuthClaims(subject=404, email="ghost@example.com", role=Role.USER)
    with pytest.raises(Forbidden):
        authorizer.authorize_operation(issuer.issue(ghost), Operation.GET_ORGANIZATION, organization_id=1)


@pytest.mark.parametrize("operation", MEMBERSHIP_GATED)
def test_disabled_gate_admits_outsiders(
    issuer: TokenIssuer, user_store: UserStore, make_user, operation: Operation
) -> None:
    outsider = make_user(email="out@example.com", organization_id=2)
    relaxed = Authorizer(issuer, user_store, enforce_membership=False)
    claims = relaxed.authorize_operation(_token(issuer, outsider), operation, organization_id=1)
    assert claims.subject == outsider.id


def test_disabled_gate_keeps_role_checks(issuer: TokenIssuer, user_store: UserStore, make_user) -> None:
    user = make_user(email="plain@example.com")
    relaxed = Authorizer(issuer, user_store, enforce_membership=False)
    with pytest.raises(Forbidden):
        relaxed.authorize_operation(_token(issuer, user), Operation.DELETE_ORGANIZATION, organization_id=1)
