"""
tests/test_rate_limit.py -- Integration tests for the auth attempt limiter.

signup and signin share one fixed-window counter per client address. The
TestClient always presents the same address ("testclient"), and the autouse
reset_rate_limits fixture empties the counter before every test.
"""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from core.config import get_settings


def _bad_signin(client: TestClient):
    return client.post("/auth/signin", json={"email": "nobody@example.com", "password": "Wr0ngPassword"})


class TestAuthRateLimit:
    def test_sixth_attempt_is_throttled(self, api_client: TestClient) -> None:
        for _ in range(5):
            assert _bad_signin(api_client).status_code == 401

        resp = _bad_signin(api_client)
        assert resp.status_code == 429
        assert resp.json()["error"] == {
            "code": "rate_limited",
            "message": "Too many authentication attempts, please try again later.",
            "details": None,
        }
        assert resp.headers["retry-after"] == str(15 * 60)

    def test_signup_and_signin_share_one_counter(self, api_client: TestClient) -> None:
        for i in range(5):
            resp = api_client.post(
                "/auth/signup",
                json={"name": "Rate Tester", "email": f"rate{i}@example.com", "password": "Passw0rd1"},
            )
            assert resp.status_code == 201

        assert _bad_signin(api_client).status_code == 429

    def test_throttled_request_does_not_reach_handler(self, api_client: TestClient) -> None:
        for _ in range(5):
            _bad_signin(api_client)

        resp = api_client.post(
            "/auth/signup",
            json={"name": "Too Late", "email": "toolate@example.com", "password": "Passw0rd1"},
        )
        assert resp.status_code == 429
        assert api_client.app.state.credential_store.get_by_email("toolate@example.com") is None

    def test_protected_routes_are_not_limited(self, api_client: TestClient) -> None:
        for _ in range(5):
            _bad_signin(api_client)
        assert api_client.get("/auth/validate").json()["error"]["code"] == "token_missing"
        assert api_client.get("/health").status_code == 200

    def test_window_resets(self, api_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(get_settings(), "auth_rate_limit", "5/2 seconds")

        for _ in range(5):
            _bad_signin(api_client)
        assert _bad_signin(api_client).status_code == 429

        time.sleep(2.5)
        assert _bad_signin(api_client).status_code == 401

    def test_rejected_body_shape_is_not_counted(self, api_client: TestClient) -> None:
        """Bodies failing model parsing are rejected before the limit check."""
        for _ in range(6):
            resp = api_client.post("/auth/signin", json={"email": "nobody@example.com"})
            assert resp.status_code == 400

        assert _bad_signin(api_client).status_code == 401
