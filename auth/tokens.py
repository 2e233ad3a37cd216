"""
auth/tokens.py -- Bearer token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with Settings.jwt_secret and
       carry userId, username, role, iat and exp. The claim names match the
       tokens already in circulation so they keep verifying after deploys.

  verify() returns None on any failure -- malformed encoding, bad signature,
       wrong secret, expired or missing exp, missing identity claims. Expiry
       is judged by the service clock, the same one issue() stamps with. The
       route layer turns that into a single 401; callers never learn which
       part of the token was wrong.

  Canonical signatures: base64url decoding ignores the unused low bits of the
       last character, so two different strings can decode to the same
       signature bytes. verify() rejects any signature segment that is not the
       canonical encoding of its bytes, so altering any character of a token
       invalidates it.

  Unverified decoding lives in auth/diagnostics.py and returns a different
       type. Nothing in this module hands out claims it has not verified.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode

from auth.models import TokenPayload
from core.config import Settings

logger = logging.getLogger("smsgate.auth")

ALGORITHM = "HS256"

_IDENTITY_CLAIMS = ("userId", "username", "role")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _has_canonical_signature(token: str) -> bool:
    """Return True if the signature segment re-encodes to exactly itself."""
    segment = token.rsplit(".", 1)[-1].encode("ascii")
    return base64url_encode(base64url_decode(segment)) == segment


class TokenService:
    """Signs and verifies bearer tokens with the configured secret.

    Usage:
        tokens = TokenService(settings)
        token = tokens.issue(TokenPayload(user_id="42", username="alice", role="user"))
        principal = tokens.verify(token)   # TokenPayload or None
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = _utcnow) -> None:
        self._secret = settings.jwt_secret
        self._default_ttl = settings.token_ttl_seconds
        self._clock = clock

    def issue(self, principal: TokenPayload, ttl_seconds: int | None = None) -> str:
        """Encode a signed token for principal that expires after ttl_seconds.

        Args:
            principal:   Identity to embed. role is not validated.
            ttl_seconds: Lifetime in seconds. None uses Settings.jwt_expire.
        """
        duration = ttl_seconds if ttl_seconds is not None else self._default_ttl
        now = self._clock()
        expire = now + timedelta(seconds=duration)
        claims = {
            "userId": principal.user_id,
            "username": principal.username,
            "role": principal.role,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenPayload | None:
        """Verify signature and expiry. Returns the principal or None on any failure."""
        if not isinstance(token, str) or not token:
            return None
        try:
            if not _has_canonical_signature(token):
                logger.debug("Token rejected: non-canonical signature encoding")
                return None
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "require_exp": True},
            )
        except (JWTError, ValueError, TypeError) as exc:
            logger.debug("Token rejected: %s", type(exc).__name__)
            return None

        # Expiry follows the service clock, not the wall clock.
        expires_at = claims["exp"]
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            logger.debug("Token rejected: non-numeric exp")
            return None
        if expires_at < int(self._clock().timestamp()):
            logger.debug("Token rejected: expired")
            return None

        values = [claims.get(name) for name in _IDENTITY_CLAIMS]
        if not all(isinstance(v, str) for v in values):
            logger.debug("Token rejected: missing identity claims")
            return None
        user_id, username, role = values
        return TokenPayload(user_id=user_id, username=username, role=role)
