"""Bearer token helpers built on python-jose."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt

from bhromonbondhu.core.settings import settings


def create_access_token(user_id: int | str, extra_claims: dict[str, Any] | None = None) -> str:
    """Create a JWT access token whose subject is the user id."""
    to_encode: dict[str, Any] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    now = datetime.now(UTC)
    to_encode["iat"] = now
    to_encode["exp"] = now + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and verify a token.

    Raises:
        jose.JWTError: If the signature, algorithm or expiry is invalid.
    """
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
    )
    return payload
