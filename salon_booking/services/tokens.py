"""Minting and verification of signed session tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from salon_booking.config import settings
from salon_booking.domain.errors import TokenError


def generate_token(
    claims: dict,
    expires_minutes: int | None = None,
    now: datetime | None = None,
) -> str:
    """Sign *claims* into a JWT carrying ``iat`` and ``exp``."""
    issued_at = now or datetime.now(timezone.utc)
    if expires_minutes is None:
        expires_minutes = settings.jwt_expires_minutes
    lifetime = timedelta(minutes=expires_minutes)
    payload = {
        **claims,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + lifetime).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str | None) -> dict:
    """Return the decoded claims of a valid token.

    Raises ``TokenError`` for empty, malformed, tampered or expired tokens.
    """
    if not token:
        raise TokenError("Invalid token")
    try:
        return jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as exc:
        raise TokenError("Invalid token") from exc


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
