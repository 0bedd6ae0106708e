"""Unit tests for auth/tokens.py -- JWT issue and verification.

Covers:
- verify(issue(claims)) == claims for every role
- expiry: expired tokens fail; expires_at reflects the configured lifetime
- tamper: changing any character of a token makes verification fail
- wrong key, wrong algorithm, garbage input, and foreign claim shapes fail
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.models import AuthClaims, Role
from auth.tokens import TokenIssuer
from core.errors import InvalidToken

# Same key as the conftest issuer fixture.
TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
_B64URL = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


@pytest.mark.parametrize("role", list(Role))
def test_round_trip(issuer: TokenIssuer, role: Role) -> None:
    claims = AuthClaims(subject=42, email="ada@example.com", role=role)
    verified = issuer.verify(issuer.issue(claims))
    assert verified == claims
    assert verified.subject == 42
    assert verified.role is role


def test_expires_at_matches_lifetime(issuer: TokenIssuer) -> None:
    before = datetime.now(timezone.utc)
    verified = issuer.verify(issuer.issue(AuthClaims(subject=1, email="a@b.co", role=Role.USER)))
    assert verified.expires_at is not None
    delta = verified.expires_at - before
    # exp is truncated to whole seconds by the JWT encoding
    assert timedelta(seconds=3598) <= delta <= timedelta(seconds=3601)


def test_per_call_lifetime_overrides_default(issuer: TokenIssuer) -> None:
    verified = issuer.verify(issuer.issue(AuthClaims(subject=1, email="a@b.co", role=Role.USER), expire_seconds=60))
    remaining = verified.expires_at - datetime.now(timezone.utc)
    assert remaining <= timedelta(seconds=61)


def test_expired_token_fails(issuer: TokenIssuer) -> None:
    token = issuer.issue(AuthClaims(subject=1, email="a@b.co", role=Role.USER), expire_seconds=-30)
    with pytest.raises(InvalidToken):
        issuer.verify(token)


def test_issuer_with_negative_lifetime_issues_dead_tokens() -> None:
    expired_issuer = TokenIssuer(TEST_SECRET, expire_seconds=-1)
    token = expired_issuer.issue(AuthClaims(subject=1, email="a@b.co", role=Role.ADMIN))
    with pytest.raises(InvalidToken):
        expired_issuer.verify(token)


def _flip(char: str) -> str:
    """Return a base64url character whose top bit differs from char.

    Flipping the most significant of the six bits guarantees the decoded bytes
    change even in a segment's final character, where low bits are padding.
    """
    return _B64URL[_B64URL.index(char) ^ 32]


def test_any_changed_character_fails_verification(issuer: TokenIssuer) -> None:
    token = issuer.issue(AuthClaims(subject=7, email="tamper@example.com", role=Role.USER))
    for i, char in enumerate(token):
        replacement = "A" if char == "." else _flip(char)
        tampered = token[:i] + replacement + token[i + 1 :]
        with pytest.raises(InvalidToken):
            issuer.verify(tampered)


def test_token_signed_with_other_key_fails(issuer: TokenIssuer) -> None:
    other = TokenIssuer("another-secret-key-of-at-least-32-chars!")
    token = other.issue(AuthClaims(subject=1, email="a@b.co", role=Role.SUPER_ADMIN))
    with pytest.raises(InvalidToken):
        issuer.verify(token)


def test_disallowed_algorithm_fails(issuer: TokenIssuer) -> None:
    payload = {"sub": "1", "email": "a@b.co", "role": "admin", "exp": datetime.now(timezone.utc) + timedelta(hours=1)}
    token = jwt.encode(payload, TEST_SECRET, algorithm="HS512")
    with pytest.raises(InvalidToken):
        issuer.verify(token)


@pytest.mark.parametrize("token", ["", "not.a.jwt", "abc", "a.b"])
def test_garbage_fails(issuer: TokenIssuer, token: str) -> None:
    with pytest.raises(InvalidToken):
        issuer.verify(token)


@pytest.mark.parametrize(
    "payload",
    [
        {"sub": "1", "email": "a@b.co"},  # no role
        {"sub": "1", "role": "admin"},  # no email
        {"sub": "not-a-number", "email": "a@b.co", "role": "admin"},
        {"sub": "1", "email": "a@b.co", "role": "owner"},  # unknown role
    ],
)
def test_correctly_signed_foreign_claims_fail(issuer: TokenIssuer, payload: dict) -> None:
    payload = {**payload, "exp": datetime.now(timezone.utc) + timedelta(hours=1)}
    token = jwt.encode(payload, TEST_SECRET, algorithm="HS256")
    with pytest.raises(InvalidToken):
        issuer.verify(token)


def test_token_without_expiry_is_rejected(issuer: TokenIssuer) -> None:
    token = jwt.encode({"sub": "1", "email": "a@b.co", "role": "user"}, TEST_SECRET, algorithm="HS256")
    with pytest.raises(InvalidToken):
        issuer.verify(token)
