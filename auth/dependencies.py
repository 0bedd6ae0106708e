"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The bearer token is read from the Authorization header only; no other
transport is accepted. The helpers here only extract the token and the target
organization id from the request -- every decision is made by the Authorizer
on app.state, driven by auth.policy.POLICIES.

Failures raise core.errors domain exceptions; api/main.py renders them in the
standard error envelope.

get_current_claims() requires any authenticated user.
require(operation) builds a dependency that applies that operation's gates.

Layer rule: no imports from api/ or orgs/. This module may import from
fastapi because it is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.models import AuthClaims
from auth.policy import Authorizer, Operation

_BEARER_PREFIX = "Bearer "


def bearer_token(request: Request) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, or None."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith(_BEARER_PREFIX):
        return auth_header[len(_BEARER_PREFIX) :].strip() or None
    return None


def _organization_id(request: Request) -> int | None:
    # Path params are still raw strings here. A non-numeric id fails
    # FastAPI's own validation with a 422, so it is skipped.
    raw = request.path_params.get("org_id")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def get_current_claims(request: Request) -> AuthClaims:
    """Require authentication. Attaches the claims to request.state.claims.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: AuthClaims = Depends(get_current_claims)): ...
    """
    authorizer: Authorizer = request.app.state.authorizer
    claims = authorizer.authorize(bearer_token(request))
    request.state.claims = claims
    return claims


def require(operation: Operation) -> Callable[[Request], AuthClaims]:
    """Build a dependency that applies the policy table entry for `operation`.

    Use as a FastAPI dependency:
        @router.delete("/organizations/{org_id}")
        def route(claims: AuthClaims = Depends(require(Operation.DELETE_ORGANIZATION))): ...
    """

    def dependency(request: Request) -> AuthClaims:
        authorizer: Authorizer = request.app.state.authorizer
        claims = authorizer.authorize_operation(bearer_token(request), operation, _organization_id(request))
        request.state.claims = claims
        return claims

    dependency.__name__ = f"require_{operation.value}"
    return dependency
