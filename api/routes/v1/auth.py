"""
api/routes/v1/auth.py -- Authentication and user provisioning REST endpoints.

Routes:
  POST /api/v1/auth/login   -- email/password login; returns user + bearer token
  GET  /api/v1/auth/me      -- current user (requires auth)
  POST /api/v1/users        -- create user (admin only, Operation.CREATE_USER)

Security:
  POST /login is rate-limited (LOGIN_RATE_LIMIT, default 10/minute per IP).
  Authenticator.authenticate() owns timing equalization -- use it, never
  inline get_by_email() + verify().
  Unknown email and wrong password return the same 401 body.
  Cache-Control: no-store on login responses (success and failure).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter, login_rate_limit
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, UserCreate, UserResponse
from auth.authenticator import Authenticator
from auth.dependencies import get_current_claims, require
from auth.models import AuthClaims, Role, SafeUser, User
from auth.policy import Operation
from auth.store import UserStore
from core.errors import Conflict, Forbidden, NotFound, UserManagementError

# Auth policy:
# - POST /api/v1/auth/login: public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:    requires auth (get_current_claims)
# - POST /api/v1/users:      Operation.CREATE_USER (admin, super_admin)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return the safe user and a bearer token."""
    authenticator: Authenticator = request.app.state.authenticator
    try:
        user = authenticator.authenticate(body.email, body.password)
    except UserManagementError as exc:
        resp = JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail)
            ).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        resp.headers["WWW-Authenticate"] = "Bearer"
        return resp

    result = authenticator.login(user)
    resp = JSONResponse(status_code=200, content=LoginResponse.from_result(result).model_dump(mode="json"))
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
def me(request: Request, claims: AuthClaims = Depends(get_current_claims)) -> UserResponse:
    """Return the stored profile of the authenticated user.

    A token can outlive its user; a deleted account gets 404 rather than a
    profile rebuilt from stale claims.
    """
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(claims.subject)
    if user is None:
        raise NotFound("User not found.")
    return UserResponse.from_safe_user(SafeUser.from_user(user))


# ---------------------------------------------------------------------------
# User provisioning (admin only)
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    claims: AuthClaims = Depends(require(Operation.CREATE_USER)),
) -> UserResponse:
    """Create a user account. Admin only.

    organization_id, when given, must name an existing organization. Only a
    super_admin may create another super_admin.
    """
    if body.role == Role.SUPER_ADMIN and claims.role != Role.SUPER_ADMIN:
        raise Forbidden("Only a super admin can create super admin accounts.")

    user_store: UserStore = request.app.state.user_store
    authenticator: Authenticator = request.app.state.authenticator

    if body.organization_id is not None:
        request.app.state.organizations.find_one(body.organization_id)

    try:
        hashed_pw = authenticator.hasher.hash(body.password)
    except ValueError as exc:
        # 72 characters can still exceed bcrypt's 72-byte limit
        raise HTTPException(
            status_code=422,
            detail={"code": "validation_error", "message": "Password is too long.", "detail": str(exc)},
        ) from exc

    new_user = User(
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        hashed_password=hashed_pw,
        organization_id=body.organization_id,
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise Conflict("A user with that email already exists.") from exc

    created = user_store.get_by_id(user_id)
    if created is None:
        raise NotFound("User not found after write.")
    return UserResponse.from_safe_user(SafeUser.from_user(created))
