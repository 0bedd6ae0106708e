"""
core/errors.py -- Domain exception taxonomy.

Every user-visible failure raised by auth/ and orgs/ is a UserManagementError
subclass. Each class carries a stable machine-readable `code` and the HTTP
`status_code` the API layer renders it with, so api/main.py needs exactly one
exception handler for the whole family. None of these are retried -- they are
request-scoped decisions, not transient infrastructure faults.

InvalidToken and MalformedDigestError are internal: they never reach a client.
The Authorizer turns InvalidToken into Unauthenticated and the Authenticator
turns MalformedDigestError into InvalidCredentials.

Layer rule: no imports from api/, auth/, or orgs/.
"""

from __future__ import annotations


class UserManagementError(Exception):
    """Base class for domain failures surfaced to the caller."""

    code: str = "error"
    status_code: int = 500
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InvalidCredentials(UserManagementError):
    """Unknown email or wrong password. Deliberately one error for both."""

    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid email or password."


class AccountInactive(UserManagementError):
    """Correct credentials, but the account is disabled."""

    code = "account_inactive"
    status_code = 401
    default_message = "User account is inactive."


class Unauthenticated(UserManagementError):
    code = "unauthorized"
    status_code = 401
    default_message = "Authentication required."


class Forbidden(UserManagementError):
    code = "forbidden"
    status_code = 403
    default_message = "You do not have access to this resource."


class NotFound(UserManagementError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found."


class Conflict(UserManagementError):
    code = "conflict"
    status_code = 409
    default_message = "Resource already exists."


class InvalidToken(Exception):
    """Token signature, expiry, structure, or claims failed verification."""


class MalformedDigestError(ValueError):
    """A stored password digest is not a valid bcrypt hash."""
