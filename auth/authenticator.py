"""
auth/authenticator.py -- Email/password authentication and login composition.

authenticate() is the only place that reads hashed_password. Its ordering is
the security contract:

  1. Unknown email and wrong password raise the same InvalidCredentials (same
     class, code, and message) and both pay the full bcrypt cost -- an unknown
     email is verified against _DUMMY_DIGEST so response time does not reveal
     whether the address is registered.
  2. AccountInactive is raised only after the password has been confirmed, so
     inactivity is never disclosed to someone who does not hold the
     credentials.
  3. The last_login_at write is best-effort. A failing store write is logged
     and absorbed; the user still gets logged in.
  4. Only a SafeUser leaves this module.

login() is pure composition: claims from the SafeUser, a token from the
issuer. It has no side effects of its own.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.models import AuthClaims, LoginResult, SafeUser
from core.errors import AccountInactive, InvalidCredentials, MalformedDigestError

if TYPE_CHECKING:
    from auth.passwords import PasswordHasher
    from auth.store import UserStore
    from auth.tokens import TokenIssuer

logger = logging.getLogger("usermgmt.auth")


class Authenticator:
    """Verifies credentials and mints login results.

    Collaborators are passed in explicitly; the app lifespan builds one
    instance and stores it on app.state.authenticator.
    """

    def __init__(self, user_store: UserStore, hasher: PasswordHasher, issuer: TokenIssuer) -> None:
        self.user_store = user_store
        self.hasher = hasher
        self.issuer = issuer
        # Hashed once per instance with the configured work factor, so the
        # dummy verify costs exactly what a real one does.
        self._dummy_digest = hasher.hash("usermgmt_timing_dummy")

    def authenticate(self, email: str, password: str) -> SafeUser:
        """Return the SafeUser for valid credentials.

        Raises InvalidCredentials (unknown email, wrong password, unusable
        stored digest) or AccountInactive (correct credentials, disabled
        account).
        """
        user = self.user_store.get_by_email(email)
        if user is None or user.hashed_password is None:
            # Equalize timing -- do NOT return before running bcrypt
            self.hasher.verify(password, self._dummy_digest)
            logger.info("Login failed: bad credentials")
            raise InvalidCredentials()

        try:
            matched = self.hasher.verify(password, user.hashed_password)
        except MalformedDigestError:
            logger.error("Stored password digest for user %s is malformed", user.id)
            raise InvalidCredentials() from None
        if not matched:
            logger.info("Login failed: bad credentials")
            raise InvalidCredentials()

        if not user.is_active:
            logger.info("Login refused for inactive user %s", user.id)
            raise AccountInactive()

        try:
            user.last_login_at = self.user_store.update_last_login(user.id)
        except Exception:
            # Best-effort audit write; the login proceeds without it.
            logger.exception("Failed to record last login for user %s", user.id)

        return SafeUser.from_user(user)

    def login(self, user: SafeUser) -> LoginResult:
        claims = AuthClaims(subject=user.id, email=user.email, role=user.role)
        return LoginResult(
            user=user,
            access_token=self.issuer.issue(claims),
            expires_in=self.issuer.expire_seconds,
        )
