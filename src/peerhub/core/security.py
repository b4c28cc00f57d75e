"""Access token helpers built on python-jose."""
from __future__ import annotations

from datetime import timedelta

from jose import jwt

from peerhub.core.settings import settings
from peerhub.db.time import utcnow


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token whose subject is the account id."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    to_encode["exp"] = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, object]:
    """Decode and verify a JWT access token.

    Raises:
        jose.JWTError: If the signature or expiry check fails.
    """
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
