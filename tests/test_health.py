"""
tests/test_health.py -- Integration tests for GET /api/v1/health.

Covers:
  - 200 response with status and version fields
  - No authentication required
  - app.state carries the built services and nothing else from Settings
"""

from __future__ import annotations


def test_health_returns_200(api_client):
    """Health endpoint returns 200 with status and version."""
    client, _ = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data


def test_health_no_auth_required(api_client):
    """Health endpoint is accessible without any authentication headers."""
    client, _ = api_client
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_app_state_holds_built_services_only(api_client):
    """The lifespan attaches services; routes never reach back for raw Settings."""
    client, _ = api_client
    state = client.app.state
    for name in ("token_service", "auth_middleware", "two_factor", "two_factor_store"):
        assert hasattr(state, name), name
    assert not hasattr(state, "settings")
