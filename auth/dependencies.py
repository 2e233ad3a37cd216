"""
auth/dependencies.py -- Bearer authentication and FastAPI Depends() helpers.

AuthMiddleware is framework-agnostic: it only needs an object with a
case-insensitive `headers` mapping (Starlette's Request qualifies).

  extract_bearer_token() -- "Authorization: Bearer <token>", exact prefix.
  authenticate()         -- extraction + TokenService.verify(); every failure
                            collapses into one "Unauthorized" outcome.
  require_admin()        -- role is exactly "admin" or "moderator".

The FastAPI helpers at the bottom turn those decisions into HTTP errors:
  get_current_principal()   raises HTTP 401 if unauthenticated.
  require_admin_principal() raises HTTP 401 if unauthenticated, 403 if not admin.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from auth.models import ADMIN_ROLES, AuthOutcome, TokenPayload
from auth.tokens import TokenService

logger = logging.getLogger("smsgate.auth")

BEARER_PREFIX = "Bearer "
UNAUTHORIZED_MESSAGE = "Unauthorized - Token required"


class AuthMiddleware:
    """Authenticates requests carrying a bearer token and answers role checks."""

    def __init__(self, token_service: TokenService) -> None:
        self._tokens = token_service

    @staticmethod
    def extract_bearer_token(request) -> str | None:
        """Return the token after "Bearer ", or None for any other header form."""
        header = request.headers.get("Authorization")
        if not isinstance(header, str) or not header.startswith(BEARER_PREFIX):
            return None
        token = header[len(BEARER_PREFIX) :]
        return token or None

    def authenticate(self, request) -> AuthOutcome:
        """Authenticate the request. Never raises."""
        token = self.extract_bearer_token(request)
        user = self._tokens.verify(token) if token else None
        if user is None:
            return AuthOutcome(authenticated=False, error=UNAUTHORIZED_MESSAGE)
        return AuthOutcome(authenticated=True, user=user)

    @staticmethod
    def require_admin(user: TokenPayload | None) -> bool:
        """True iff user is a verified principal whose role is admin or moderator."""
        if not isinstance(user, TokenPayload):
            return False
        return user.role in ADMIN_ROLES


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


def get_auth_middleware(request: Request) -> AuthMiddleware:
    """Return the AuthMiddleware built by the app lifespan."""
    return request.app.state.auth_middleware


def get_current_principal(request: Request) -> TokenPayload:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: TokenPayload = Depends(get_current_principal)): ...
    """
    outcome = get_auth_middleware(request).authenticate(request)
    if not outcome.authenticated:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": outcome.error},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return outcome.user


def require_admin_principal(request: Request) -> TokenPayload:
    """Require admin or moderator role. Raises HTTP 401 if unauthenticated, HTTP 403 otherwise.

    Use as a FastAPI dependency:
        @router.post("/admin-only")
        async def route(user: TokenPayload = Depends(require_admin_principal)): ...
    """
    user = get_current_principal(request)
    if not AuthMiddleware.require_admin(user):
        logger.info("Admin access denied for user_id=%s role=%s", user.user_id, user.role)
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Admin access required."},
        )
    return user
