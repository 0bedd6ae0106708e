"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond projections).
Stores and services do the work.

User is the stored record and is the only type that carries hashed_password.
SafeUser is the projection handed to anything outside the Authenticator /
PasswordHasher boundary -- it has no password field at all, so no serializer
can leak the digest by accident.

Layer rule: no imports from api/ or orgs/.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


# Roles that pass every role gate the policy table declares, and bypass the
# organization membership gate.
ADMIN_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


@dataclass
class User:
    """A stored account.

    email is unique and compared case-sensitively, exactly as stored.
    organization_id is a weak reference: nothing in the store enforces that
    the organization exists. last_login_at is stamped by the Authenticator on
    every successful login.
    """

    email: str
    first_name: str
    last_name: str
    role: Role = Role.USER
    id: int | None = None
    hashed_password: str | None = None
    is_active: bool = True
    organization_id: int | None = None
    last_login_at: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class SafeUser:
    """User projection with the password digest removed."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool
    organization_id: int | None = None
    last_login_at: str | None = None
    created_at: str | None = None

    @classmethod
    def from_user(cls, user: User) -> SafeUser:
        # Explicit field list: a new User column never flows out by default.
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            is_active=user.is_active,
            organization_id=user.organization_id,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["role"] = self.role.value
        return data


@dataclass(frozen=True)
class AuthClaims:
    """The signed identity carried by a bearer token.

    expires_at is filled in on verification and excluded from equality, so a
    verified token compares equal to the claims it was issued from.
    """

    subject: int
    email: str
    role: Role
    expires_at: datetime | None = field(default=None, compare=False)


@dataclass(frozen=True)
class LoginResult:
    """Output of Authenticator.login(): the safe user plus its access token."""

    user: SafeUser
    access_token: str
    expires_in: int
    token_type: str = "bearer"  # noqa: S105 # nosec B105 -- OAuth token type, not a password
