"""
API request and response models for the auth service REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.diagnostics import UnverifiedClaims
from auth.models import TokenPayload

# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class MeResponse(BaseModel):
    """Response for GET /api/v1/auth/me."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    username: str
    role: str
    is_admin: bool

    @classmethod
    def from_principal(cls, user: TokenPayload, is_admin: bool) -> "MeResponse":
        return cls(user_id=user.user_id, username=user.username, role=user.role, is_admin=is_admin)


# ---------------------------------------------------------------------------
# Two-factor authentication
# ---------------------------------------------------------------------------


class TwoFactorCodeRequest(BaseModel):
    """Request body carrying a code from the user's authenticator app."""

    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(min_length=1, max_length=16)


class TwoFactorEnrollResponse(BaseModel):
    """Response for POST /api/v1/auth/2fa/enable.

    secret is returned for manual entry in apps that cannot scan qr_code.
    """

    model_config = ConfigDict(frozen=True)

    secret: str
    otpauth_url: str
    qr_code: str
    state: str


class TwoFactorStatusResponse(BaseModel):
    """Response for the 2FA status, verify, challenge and disable routes."""

    model_config = ConfigDict(frozen=True)

    enabled: bool
    state: Optional[str] = None


# ---------------------------------------------------------------------------
# Token diagnostics
# ---------------------------------------------------------------------------


class TokenInspectRequest(BaseModel):
    token: str = Field(min_length=1, max_length=4096)


class TokenInspectResponse(BaseModel):
    """Response for POST /api/v1/auth/token/inspect.

    All claim fields come from an UNVERIFIED decode; signature_valid says
    whether the token would pass TokenService.verify() right now.
    """

    model_config = ConfigDict(frozen=True)

    signature_valid: bool
    expired: bool
    user_id: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_claims(cls, claims: UnverifiedClaims, signature_valid: bool) -> "TokenInspectResponse":
        return cls(
            signature_valid=signature_valid,
            expired=claims.is_expired,
            user_id=claims.user_id,
            username=claims.username,
            role=claims.role,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )
