"""Unit tests for auth/diagnostics.py -- unverified claim decoding."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from auth.dependencies import AuthMiddleware
from auth.diagnostics import UnverifiedClaims, decode_unverified
from auth.models import TokenPayload
from auth.tokens import ALGORITHM, TokenService

PRINCIPAL = TokenPayload(user_id="u-9", username="carol", role="user")


def test_reads_claims_of_valid_token(token_service: TokenService) -> None:
    claims = decode_unverified(token_service.issue(PRINCIPAL, ttl_seconds=600))
    assert claims.user_id == "u-9"
    assert claims.username == "carol"
    assert claims.role == "user"
    assert claims.expires_at - claims.issued_at == timedelta(seconds=600)
    assert not claims.is_expired


def test_reads_forged_token_without_complaint() -> None:
    forged = jwt.encode(
        {"userId": "u-1", "username": "mallory", "role": "admin"},
        "not-the-real-secret-" + "x" * 32,
        algorithm=ALGORITHM,
    )
    claims = decode_unverified(forged)
    assert claims.role == "admin"
    assert claims.expires_at is None


def test_result_is_not_a_principal(token_service: TokenService) -> None:
    """Unverified claims must never satisfy an authorization check."""
    admin_token = token_service.issue(TokenPayload("u-2", "root", "admin"))
    claims = decode_unverified(admin_token)
    assert isinstance(claims, UnverifiedClaims)
    assert not isinstance(claims, TokenPayload)
    assert AuthMiddleware.require_admin(claims) is False


def test_reports_expired_token(settings) -> None:
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    token = TokenService(settings, clock=lambda: past).issue(PRINCIPAL, ttl_seconds=60)
    claims = decode_unverified(token)
    assert claims.is_expired
    assert TokenService(settings).verify(token) is None


def test_non_string_claims_become_none() -> None:
    token = jwt.encode({"userId": 5, "username": ["x"], "exp": "soon"}, "k" * 32, algorithm=ALGORITHM)
    claims = decode_unverified(token)
    assert claims.user_id is None
    assert claims.username is None
    assert claims.role is None
    assert claims.expires_at is None


def test_malformed_tokens_return_none() -> None:
    for token in ("", "garbage", "a.b.c", None, 42):
        assert decode_unverified(token) is None
