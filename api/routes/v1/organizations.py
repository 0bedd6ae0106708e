"""
api/routes/v1/organizations.py -- Organization REST endpoints.

Routes (gates come from auth.policy.POLICIES, never from the route):
  POST   /api/v1/organizations                          -- create; creator joins it
  GET    /api/v1/organizations                          -- list all (admin)
  GET    /api/v1/organizations/my-organization          -- caller's organization or null
  GET    /api/v1/organizations/{org_id}                 -- detail (member or admin)
  PATCH  /api/v1/organizations/{org_id}                 -- partial update (member or admin)
  DELETE /api/v1/organizations/{org_id}                 -- delete, members detached (admin)
  POST   /api/v1/organizations/{org_id}/users/{user_id} -- add user (admin)
  GET    /api/v1/organizations/{org_id}/users           -- members (member or admin)

/my-organization is registered before /{org_id} so the literal path wins.

Handlers are sync `def`: the stores are blocking SQLAlchemy calls and FastAPI
runs sync handlers in its thread pool.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Request, Response

from api.models import MAX_ID, OrganizationCreate, OrganizationResponse, OrganizationUpdate, UserResponse
from auth.dependencies import require
from auth.models import AuthClaims
from auth.policy import Operation
from orgs.service import OrganizationService

# Ids beyond SQLite INTEGER range are rejected here as 422.
EntityId = Annotated[int, Path(ge=1, le=MAX_ID)]

router = APIRouter(prefix="/organizations")


def _service(request: Request) -> OrganizationService:
    return request.app.state.organizations


@router.post("", response_model=OrganizationResponse, status_code=201)
def create_organization(
    request: Request,
    body: OrganizationCreate,
    claims: AuthClaims = Depends(require(Operation.CREATE_ORGANIZATION)),
) -> OrganizationResponse:
    """Create an organization. 409 if the name is taken."""
    org = _service(request).create(body.model_dump(), claims.subject)
    return OrganizationResponse.from_organization(org)


@router.get("", response_model=list[OrganizationResponse])
def list_organizations(
    request: Request,
    claims: AuthClaims = Depends(require(Operation.LIST_ORGANIZATIONS)),
) -> list[OrganizationResponse]:
    return [OrganizationResponse.from_organization(o) for o in _service(request).find_all()]


@router.get("/my-organization", response_model=Optional[OrganizationResponse])
def get_my_organization(
    request: Request,
    claims: AuthClaims = Depends(require(Operation.GET_MY_ORGANIZATION)),
) -> Optional[OrganizationResponse]:
    """Return the caller's organization, or null when they have none."""
    org = _service(request).find_by_user(claims.subject)
    return OrganizationResponse.from_organization(org) if org is not None else None


@router.get("/{org_id}", response_model=OrganizationResponse)
def get_organization(
    request: Request,
    org_id: EntityId,
    claims: AuthClaims = Depends(require(Operation.GET_ORGANIZATION)),
) -> OrganizationResponse:
    return OrganizationResponse.from_organization(_service(request).find_one(org_id))


@router.patch("/{org_id}", response_model=OrganizationResponse)
def update_organization(
    request: Request,
    org_id: EntityId,
    body: OrganizationUpdate,
    claims: AuthClaims = Depends(require(Operation.UPDATE_ORGANIZATION)),
) -> OrganizationResponse:
    """Apply only the fields present in the request body."""
    org = _service(request).update(org_id, body.model_dump(exclude_unset=True))
    return OrganizationResponse.from_organization(org)


@router.delete("/{org_id}", status_code=204)
def delete_organization(
    request: Request,
    org_id: EntityId,
    claims: AuthClaims = Depends(require(Operation.DELETE_ORGANIZATION)),
) -> Response:
    _service(request).remove(org_id)
    return Response(status_code=204)


@router.post("/{org_id}/users/{user_id}", response_model=UserResponse)
def add_organization_user(
    request: Request,
    org_id: EntityId,
    user_id: EntityId,
    claims: AuthClaims = Depends(require(Operation.ADD_ORGANIZATION_USER)),
) -> UserResponse:
    return UserResponse.from_safe_user(_service(request).add_user(user_id, org_id))


@router.get("/{org_id}/users", response_model=list[UserResponse])
def list_organization_users(
    request: Request,
    org_id: EntityId,
    claims: AuthClaims = Depends(require(Operation.LIST_ORGANIZATION_USERS)),
) -> list[UserResponse]:
    return [UserResponse.from_safe_user(u) for u in _service(request).get_users(org_id)]
