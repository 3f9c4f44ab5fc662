"""
Token utilities.

The inbox trusts an upstream login flow to mint access tokens; this module
only signs (for tooling and tests) and verifies them.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from core.config import settings


def create_access_token(
    user_id: int,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
    **claims: Any,
) -> str:
    """
    Create a signed access token for a user.

    Args:
        user_id: Subject of the token
        secret_key: Signing key (defaults to settings)
        algorithm: Signing algorithm (defaults to settings)
        expires_delta: Lifetime of the token
        **claims: Extra claims to embed

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    payload: dict[str, Any] = {
        **claims,
        "sub": str(user_id),
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + expires_delta,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(
        payload,
        secret_key or settings.jwt_secret_key,
        algorithm=algorithm or settings.jwt_algorithm,
    )


def verify_jwt_token(
    token: str,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> dict[str, Any]:
    """
    Verify a token and return its payload.

    Raises:
        jwt.ExpiredSignatureError: Token has expired
        jwt.InvalidTokenError: Token is malformed, badly signed or not an access token
    """
    payload = jwt.decode(
        token,
        secret_key or settings.jwt_secret_key,
        algorithms=[algorithm or settings.jwt_algorithm],
        options={"require": ["exp", "sub"]},
    )
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Not an access token")
    return payload
