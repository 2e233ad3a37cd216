"""
api/routes/v1/auth.py -- Identity, two-factor and token diagnostic endpoints.

Routes:
  GET  /api/v1/auth/me               -- current principal (requires auth)
  GET  /api/v1/auth/2fa/status       -- 2FA lifecycle state (requires auth)
  POST /api/v1/auth/2fa/enable       -- new secret + QR code (requires auth)
  POST /api/v1/auth/2fa/verify       -- confirm enrollment with a code (requires auth)
  POST /api/v1/auth/2fa/challenge    -- login-time second factor (requires auth)
  POST /api/v1/auth/2fa/disable      -- remove 2FA, code required (requires auth)
  POST /api/v1/auth/token/inspect    -- unverified token claims (admin/moderator)

Security:
  [H1] Code-accepting routes are rate-limited to 10 requests/minute per IP.
       A 6-digit code with a +-2 step window has 5 valid values out of 10^6;
       unthrottled guessing would eventually succeed. @limiter.limit sits
       beneath @router.post so the registered endpoint is the limited wrapper.
  [H2] Wrong codes answer a generic "invalid_code" 400 -- no hint about whether
       the code was stale, early or simply wrong.
  [H3] Cache-Control: no-store on responses carrying the TOTP secret.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    MeResponse,
    TokenInspectRequest,
    TokenInspectResponse,
    TwoFactorCodeRequest,
    TwoFactorEnrollResponse,
    TwoFactorStatusResponse,
)
from auth.dependencies import AuthMiddleware, get_current_principal, require_admin_principal
from auth.diagnostics import decode_unverified
from auth.models import TokenPayload, TwoFactorState
from auth.store import TwoFactorStore
from auth.tokens import TokenService
from auth.two_factor import TwoFactorService

logger = logging.getLogger("smsgate.api.auth")

# Auth policy:
# - GET  /api/v1/auth/me:             requires auth (get_current_principal)
# - GET  /api/v1/auth/2fa/status:     requires auth (get_current_principal)
# - POST /api/v1/auth/2fa/enable:     requires auth (get_current_principal)
# - POST /api/v1/auth/2fa/verify:     requires auth + rate limit [H1]
# - POST /api/v1/auth/2fa/challenge:  requires auth + rate limit [H1]
# - POST /api/v1/auth/2fa/disable:    requires auth + rate limit [H1]
# - POST /api/v1/auth/token/inspect:  requires admin (require_admin_principal)
router = APIRouter()


def _invalid_code() -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"code": "invalid_code", "message": "Invalid 2FA code."},
    )


def _not_enabled() -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"code": "two_factor_not_enabled", "message": "2FA is not enabled."},
    )


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
async def me(current_user: TokenPayload = Depends(get_current_principal)) -> MeResponse:
    """Return identity information for the currently authenticated principal."""
    return MeResponse.from_principal(current_user, is_admin=AuthMiddleware.require_admin(current_user))


# ---------------------------------------------------------------------------
# Two-factor authentication
# ---------------------------------------------------------------------------


@router.get("/auth/2fa/status", response_model=TwoFactorStatusResponse)
async def two_factor_status(
    request: Request,
    current_user: TokenPayload = Depends(get_current_principal),
) -> TwoFactorStatusResponse:
    """Report whether 2FA is enabled and where the secret is in its lifecycle."""
    store: TwoFactorStore = request.app.state.two_factor_store
    record = store.get(current_user.user_id)
    if record is None:
        return TwoFactorStatusResponse(enabled=False)
    return TwoFactorStatusResponse(enabled=record.state.enabled, state=record.state.value)


@router.post("/auth/2fa/enable", response_model=TwoFactorEnrollResponse)
async def enable_two_factor(
    request: Request,
    current_user: TokenPayload = Depends(get_current_principal),
) -> JSONResponse:
    """Start enrollment: generate a secret and return it with its QR code.

    The secret is stored once its QR code has rendered, but 2FA is not
    enabled until the user proves possession with POST /2fa/verify. Calling
    this again before verifying replaces the pending secret.

    EncodingError from the QR renderer is not caught here; the app-level
    handler reports it as a 500 and any earlier pending secret stays as it was.
    """
    store: TwoFactorStore = request.app.state.two_factor_store
    two_factor: TwoFactorService = request.app.state.two_factor

    existing = store.get(current_user.user_id)
    if existing is not None and existing.state.enabled:
        raise HTTPException(
            status_code=400,
            detail={"code": "two_factor_already_enabled", "message": "2FA is already enabled."},
        )

    totp = two_factor.generate_secret(current_user.username)
    qr_code = await two_factor.render_enrollment_image(totp.otpauth_uri)
    store.save_generated(current_user.user_id, totp.base32_secret)
    record = store.advance(current_user.user_id, TwoFactorState.pending_enrollment)
    logger.info("2FA enrollment started for user_id=%s", current_user.user_id)

    resp = JSONResponse(
        content=TwoFactorEnrollResponse(
            secret=totp.base32_secret,
            otpauth_url=totp.otpauth_uri,
            qr_code=qr_code,
            state=record.state.value,
        ).model_dump()
    )
    resp.headers["Cache-Control"] = "no-store"  # [H3]
    return resp


@router.post("/auth/2fa/verify", response_model=TwoFactorStatusResponse)
@limiter.limit("10/minute")  # [H1]
def verify_two_factor(
    request: Request,
    body: TwoFactorCodeRequest,
    current_user: TokenPayload = Depends(get_current_principal),
) -> TwoFactorStatusResponse:
    """Confirm enrollment with the first code from the authenticator app."""
    store: TwoFactorStore = request.app.state.two_factor_store
    two_factor: TwoFactorService = request.app.state.two_factor

    record = store.get(current_user.user_id)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "two_factor_secret_not_found", "message": "No 2FA secret to verify."},
        )
    if not two_factor.verify_code(record.secret, body.code):
        raise _invalid_code()  # [H2]
    if record.state == TwoFactorState.pending_enrollment:
        record = store.advance(current_user.user_id, TwoFactorState.confirmed)
        logger.info("2FA enabled for user_id=%s", current_user.user_id)
    elif not record.state.enabled:
        # Secret stored but never shown to the user; enrollment must be restarted.
        raise _not_enabled()
    return TwoFactorStatusResponse(enabled=True, state=record.state.value)


@router.post("/auth/2fa/challenge", response_model=TwoFactorStatusResponse)
@limiter.limit("10/minute")  # [H1]
def challenge_two_factor(
    request: Request,
    body: TwoFactorCodeRequest,
    current_user: TokenPayload = Depends(get_current_principal),
) -> TwoFactorStatusResponse:
    """Check a login-time second factor. The first success marks the secret active."""
    store: TwoFactorStore = request.app.state.two_factor_store
    two_factor: TwoFactorService = request.app.state.two_factor

    record = store.get(current_user.user_id)
    if record is None or not record.state.enabled:
        raise _not_enabled()
    if not two_factor.verify_code(record.secret, body.code):
        raise _invalid_code()  # [H2]
    if record.state == TwoFactorState.confirmed:
        record = store.advance(current_user.user_id, TwoFactorState.active)
    return TwoFactorStatusResponse(enabled=True, state=record.state.value)


@router.post("/auth/2fa/disable", response_model=TwoFactorStatusResponse)
@limiter.limit("10/minute")  # [H1]
def disable_two_factor(
    request: Request,
    body: TwoFactorCodeRequest,
    current_user: TokenPayload = Depends(get_current_principal),
) -> TwoFactorStatusResponse:
    """Turn 2FA off. A valid current code is required so a stolen token alone cannot do it."""
    store: TwoFactorStore = request.app.state.two_factor_store
    two_factor: TwoFactorService = request.app.state.two_factor

    record = store.get(current_user.user_id)
    if record is None or not record.state.enabled:
        raise _not_enabled()
    if not two_factor.verify_code(record.secret, body.code):
        raise _invalid_code()  # [H2]
    store.delete(current_user.user_id)
    logger.info("2FA disabled for user_id=%s", current_user.user_id)
    return TwoFactorStatusResponse(enabled=False)


# ---------------------------------------------------------------------------
# Token diagnostics (admin only)
# ---------------------------------------------------------------------------


@router.post("/auth/token/inspect", response_model=TokenInspectResponse)
async def inspect_token(
    request: Request,
    body: TokenInspectRequest,
    admin: TokenPayload = Depends(require_admin_principal),
) -> TokenInspectResponse:
    """Show what a token claims and whether it currently verifies.

    Claims are decoded WITHOUT verification for display only; nothing here
    grants access based on them.
    """
    claims = decode_unverified(body.token)
    if claims is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "malformed_token", "message": "Token could not be decoded."},
        )
    tokens: TokenService = request.app.state.token_service
    return TokenInspectResponse.from_claims(claims, signature_valid=tokens.verify(body.token) is not None)
