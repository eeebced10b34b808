"""Token and hashing helpers shared by the identity layer and the CLI."""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime, timedelta

from litestar.exceptions import ImproperlyConfiguredException, NotAuthorizedException
from litestar.security.jwt import Token

__all__ = (
    "decode_subject",
    "encode_token",
    "extract_bearer_token",
    "sha256",
)


def sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def extract_bearer_token(authorization_header: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header, if any."""
    if not authorization_header:
        return None
    parts = authorization_header.split(" ")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    scheme, token = parts[0], parts[1]
    if scheme.lower() != "bearer":
        return None
    return token


def encode_token(subject: str, secret: str, *, algorithm: str = "HS256", ttl: timedelta = timedelta(days=7)) -> str:
    token = Token(sub=subject, exp=datetime.now(UTC) + ttl)
    return token.encode(secret=secret, algorithm=algorithm)


def decode_subject(encoded_token: str, secret: str, *, algorithm: str = "HS256") -> str | None:
    """Verify a bearer token and return its subject claim.

    Signature, expiry and claim errors all collapse to ``None``.
    """
    try:
        token = Token.decode(encoded_token=encoded_token, secret=secret, algorithm=algorithm)
    except (NotAuthorizedException, ImproperlyConfiguredException):
        return None
    return token.sub or None
