"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects.

bcrypt.checkpw() compares digests in constant time, so verify() does not leak
the position of the first differing byte. The work factor is the `rounds`
argument to gensalt(); it is stored inside every digest, so raising
BCRYPT_ROUNDS only affects newly hashed passwords.

bcrypt reads at most 72 bytes of input. hash() rejects longer passwords
instead of truncating them, so a stored digest can never match a long
password through its 72-byte prefix.
"""

from __future__ import annotations

import bcrypt

from core.errors import MalformedDigestError

_MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted, work-factor-tunable one-way password hashing."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        """Return a bcrypt digest of the plaintext password."""
        encoded = plain.encode("utf-8")
        if len(encoded) > _MAX_PASSWORD_BYTES:
            raise ValueError(f"Password exceeds bcrypt's {_MAX_PASSWORD_BYTES}-byte limit.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if the plaintext matches the digest.

        Raises MalformedDigestError if the digest is not a bcrypt hash; that
        is the only error path. Over-long passwords still run the full bcrypt
        cost (on their 72-byte prefix) before returning False.
        """
        encoded = plain.encode("utf-8")
        try:
            matched = bcrypt.checkpw(encoded[:_MAX_PASSWORD_BYTES], digest.encode("utf-8"))
        except ValueError as exc:
            raise MalformedDigestError(str(exc)) from exc
        return matched and len(encoded) <= _MAX_PASSWORD_BYTES
