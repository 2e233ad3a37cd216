"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Services in
auth/tokens.py, auth/two_factor.py and auth/dependencies.py do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Roles allowed through AuthMiddleware.require_admin(). Compared with exact,
# case-sensitive string equality.
ADMIN_ROLES: frozenset[str] = frozenset({"admin", "moderator"})


@dataclass(frozen=True)
class TokenPayload:
    """A verified principal, as carried inside a signed bearer token.

    Only TokenService.verify() produces instances from a token. role is a
    free-form string ("user", "admin", "moderator", ...); it is not checked
    against a closed set at issue time.
    """

    user_id: str
    username: str
    role: str


@dataclass(frozen=True)
class AuthOutcome:
    """Per-request authentication result. Never persisted."""

    authenticated: bool
    user: TokenPayload | None = None
    error: str | None = None


@dataclass(frozen=True)
class TOTPSecret:
    """A freshly generated second-factor secret.

    base32_secret is the durable credential the caller persists.
    otpauth_uri is disposable and only used to render the enrollment QR code.
    """

    base32_secret: str
    otpauth_uri: str


class TwoFactorState(str, Enum):
    """Lifecycle of a user's 2FA secret."""

    generated = "generated"
    pending_enrollment = "pending_enrollment"
    confirmed = "confirmed"
    active = "active"

    @property
    def enabled(self) -> bool:
        return self in (TwoFactorState.confirmed, TwoFactorState.active)


@dataclass
class TwoFactorRecord:
    """A persisted 2FA secret and its lifecycle state (see auth/store.py)."""

    user_id: str
    secret: str
    state: TwoFactorState
    updated_at: str | None = None
