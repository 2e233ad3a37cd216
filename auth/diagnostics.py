"""
auth/diagnostics.py -- Read a token's claims WITHOUT verifying it.

Anything returned from here may be forged. The result type is
UnverifiedClaims, not TokenPayload, so it cannot be handed to
AuthMiddleware.require_admin() or any route dependency by accident.
Authorization decisions go through TokenService.verify() only.

Current caller: POST /api/v1/auth/token/inspect (admin only), which support
staff use to see why a customer's token stopped working.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from jose import JWTError, jwt


@dataclass(frozen=True)
class UnverifiedClaims:
    """Claims read from a token whose signature and expiry were NOT checked."""

    user_id: str | None
    username: str | None
    role: str | None
    issued_at: datetime | None
    expires_at: datetime | None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= datetime.now(timezone.utc)


def _as_str(value) -> str | None:
    return value if isinstance(value, str) else None


def _as_datetime(value) -> datetime | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def decode_unverified(token: str) -> UnverifiedClaims | None:
    """Return the token's claims without any verification, or None if malformed."""
    if not isinstance(token, str) or not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except (JWTError, ValueError, TypeError):
        return None
    if not isinstance(claims, dict):
        return None
    return UnverifiedClaims(
        user_id=_as_str(claims.get("userId")),
        username=_as_str(claims.get("username")),
        role=_as_str(claims.get("role")),
        issued_at=_as_datetime(claims.get("iat")),
        expires_at=_as_datetime(claims.get("exp")),
    )
