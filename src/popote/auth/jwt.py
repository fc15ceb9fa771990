"""
RS256 access-token verification.

Tokens are issued by the Popote auth service; this service only holds the
public key and never signs anything.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from popote.config import get_settings

_public_key: str | None = None


def _load_public_key() -> str:
    """Read the PEM public key from disk (cached after first call)."""
    global _public_key  # noqa: PLW0603
    if _public_key is None:
        _public_key = Path(get_settings().jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Forget the cached key (tests swap key files)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Verify and decode a JWT.

    Args:
        token: The encoded JWT string.
        expected_type: Required value of the ``type`` claim.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or of the wrong type.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _load_public_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
