"""
API request and response models for the user management REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
orgs/models.py, which own the internal domain representation. Route handlers
map between the two.

There is no response model with a password field. UserResponse is built from
SafeUser only.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import LoginResult, Role, SafeUser
from orgs.models import Organization

# Shape check only. Emails are stored and compared exactly as given.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Largest value a SQLite INTEGER column holds.
MAX_ID = 2**63 - 1


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(min_length=3, max_length=255)
    # Over-long passwords reach the hasher and fail as bad credentials.
    password: str = Field(min_length=1, max_length=1024)


class UserResponse(BaseModel):
    """A user as returned over the wire. Never carries a password or digest."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool
    organization_id: Optional[int] = None
    last_login_at: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_safe_user(cls, user: SafeUser) -> "UserResponse":
        return cls(**user.to_dict())


class LoginResponse(BaseModel):
    """Response body for a successful login."""

    model_config = ConfigDict(frozen=True)

    user: UserResponse
    access_token: str
    token_type: str = "bearer"  # noqa: S105 # nosec B105 -- OAuth token type, not a password
    expires_in: int

    @classmethod
    def from_result(cls, result: LoginResult) -> "LoginResponse":
        return cls(
            user=UserResponse.from_safe_user(result.user),
            access_token=result.access_token,
            token_type=result.token_type,
            expires_in=result.expires_in,
        )


class UserCreate(BaseModel):
    """Request body for POST /api/v1/users (admin only)."""

    # No whitespace stripping: it would silently alter passwords.
    model_config = ConfigDict(extra="forbid")

    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8, max_length=72)
    role: Role = Role.USER
    organization_id: Optional[int] = Field(default=None, ge=1, le=MAX_ID)


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------


class OrganizationCreate(BaseModel):
    """Request body for POST /api/v1/organizations."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    settings: dict[str, Any] = Field(default_factory=dict)


class OrganizationUpdate(BaseModel):
    """Request body for PATCH /api/v1/organizations/{org_id}. Every field optional."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    is_active: Optional[bool] = None
    settings: Optional[dict[str, Any]] = None


class OrganizationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str]
    is_active: bool
    settings: dict[str, Any]
    created_at: str
    updated_at: str

    @classmethod
    def from_organization(cls, org: Organization) -> "OrganizationResponse":
        return cls(
            id=org.id,
            name=org.name,
            description=org.description,
            is_active=org.is_active,
            settings=org.settings,
            created_at=org.created_at,
            updated_at=org.updated_at,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
