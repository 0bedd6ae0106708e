"""
auth/tokens.py -- JWT issue and verification.

Security design decisions:
  python-jose with HS256. Tokens carry sub (user id), email, role, iat, and
  exp. The signing key is Settings.secret_key, loaded once at startup and
  handed to TokenIssuer by the app lifespan; there is no module-level key.

  verify() raises InvalidToken on every failure (bad signature, expired,
  malformed, missing or unparseable claims). It never distinguishes between
  them to the caller -- the Authorizer turns all of them into a 401.

  jose requires `sub` to be a string, so the numeric user id is stringified
  on issue and parsed back on verify.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import AuthClaims, Role
from core.errors import InvalidToken

logger = logging.getLogger("usermgmt.auth")

_ALGORITHM = "HS256"


class TokenIssuer:
    """Signs AuthClaims into bearer tokens and verifies them back.

    Usage:
        issuer = TokenIssuer(settings.secret_key, settings.token_expire_seconds)
        token = issuer.issue(AuthClaims(subject=1, email="a@b.c", role=Role.USER))
        claims = issuer.verify(token)
    """

    def __init__(self, secret_key: str, expire_seconds: int = 3600, algorithm: str = _ALGORITHM) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds
        self.algorithm = algorithm

    def issue(self, claims: AuthClaims, expire_seconds: int = 0) -> str:
        """Encode a signed JWT for the claims.

        Args:
            claims:         Identity to sign. expires_at on the input is ignored.
            expire_seconds: Token lifetime. If 0 (default), the issuer's
                            configured lifetime is used.
        """
        duration = expire_seconds if expire_seconds != 0 else self.expire_seconds
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(claims.subject),
            "email": claims.email,
            "role": claims.role.value,
            "iat": now,
            "exp": now + timedelta(seconds=duration),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> AuthClaims:
        """Decode and verify a JWT. Raises InvalidToken on any failure."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc

        try:
            return AuthClaims(
                subject=int(payload["sub"]),
                email=payload["email"],
                role=Role(payload["role"]),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as exc:
            # Correctly signed but not one of ours (or from an older schema).
            logger.warning("Rejected signed token with invalid claims: %s", exc)
            raise InvalidToken("Token claims are missing or invalid.") from exc
