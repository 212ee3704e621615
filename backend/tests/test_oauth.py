"""
OAuth sign-in tests (providers mocked with httpx.MockTransport).

Verifies:
- Unconfigured providers answer 501
- A first sign-in creates a pending-onboarding customer without a password
- A repeat sign-in reuses the principal
- State mismatches and provider errors land on the frontend error page
- Unverified provider emails never sign anyone in
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from jose import jwt

from conftest import bearer, make_app
from storefront.extensions import db
from storefront.models import AuditEvent, User


GOOGLE_PROFILE = {
    "sub": "google-sub-1",
    "email": "Grace@Example.com",
    "given_name": "Grace",
    "family_name": "Hopper",
    "email_verified": True,
}

APPLE_CLAIMS = {
    "sub": "apple-sub-1",
    "email": "tim@example.com",
    "email_verified": "true",
    "aud": "apple-client",
}


def provider_transport(request: httpx.Request) -> httpx.Response:
    if request.url.host == "oauth2.googleapis.com":
        if b"code=bad" in request.content:
            return httpx.Response(400, json={"error": "invalid_grant"})
        return httpx.Response(200, json={"access_token": "google-access"})
    if request.url.host == "openidconnect.googleapis.com":
        assert request.headers["Authorization"] == "Bearer google-access"
        return httpx.Response(200, json=GOOGLE_PROFILE)
    if request.url.host == "appleid.apple.com":
        id_token = jwt.encode(
            APPLE_CLAIMS,
            "apple-signing-key",
            algorithm="HS256",
        )
        return httpx.Response(200, json={"id_token": id_token})
    return httpx.Response(404)


@pytest.fixture
def app_overrides():
    return {
        "GOOGLE_CLIENT_ID": "google-client",
        "GOOGLE_CLIENT_SECRET": "google-secret",
        "GOOGLE_REDIRECT_URI": "http://api.test/api/auth/google/callback",
        "APPLE_CLIENT_ID": "apple-client",
        "APPLE_CLIENT_SECRET": "apple-secret",
        "APPLE_REDIRECT_URI": "http://api.test/api/auth/apple/callback",
        "OAUTH_HTTP_CLIENT": httpx.Client(transport=httpx.MockTransport(provider_transport)),
    }


def _start(client, provider):
    resp = client.get(f"/api/auth/{provider}")
    assert resp.status_code == 302
    query = parse_qs(urlparse(resp.headers["Location"]).query)
    return query


def _redirect_params(resp):
    assert resp.status_code == 302
    location = urlparse(resp.headers["Location"])
    return location.path, {k: v[0] for k, v in parse_qs(location.query).items()}


class TestGoogle:
    def test_authorization_redirect(self, client):
        query = _start(client, "google")
        assert query["client_id"] == ["google-client"]
        assert query["response_type"] == ["code"]
        assert query["state"][0]

    def test_first_sign_in_creates_pending_customer(self, client):
        state = _start(client, "google")["state"][0]
        resp = client.get("/api/auth/google/callback", query_string={"code": "good", "state": state})

        path, params = _redirect_params(resp)
        assert path == "/auth/success"
        assert params["type"] == "customer"
        assert params["onboarding"] == "pending"

        user = User.query.one()
        assert user.email == "grace@example.com"
        assert user.origin == "google"
        assert user.oauth_subject == "google-sub-1"
        assert user.password_hash is None
        assert user.is_fully_registered is False
        assert AuditEvent.query.filter_by(event_type="USER_REGISTERED").count() == 1

        me = client.get("/api/auth/me", headers=bearer(params["token"])).get_json()
        assert me["type"] == "google"
        assert me["isFullyRegistered"] is False

    def test_repeat_sign_in_reuses_principal(self, client):
        for _ in range(2):
            state = _start(client, "google")["state"][0]
            resp = client.get("/api/auth/google/callback", query_string={"code": "good", "state": state})
            assert _redirect_params(resp)[0] == "/auth/success"
        assert User.query.count() == 1

    def test_existing_local_account_signs_in(self, client):
        client.post("/api/auth/customer/register", json={
            "email": "grace@example.com", "password": "Password123", "firstName": "G", "lastName": "H",
        })
        state = _start(client, "google")["state"][0]
        resp = client.get("/api/auth/google/callback", query_string={"code": "good", "state": state})
        path, params = _redirect_params(resp)
        assert path == "/auth/success"
        assert params["onboarding"] == "complete"
        assert User.query.one().origin == "local"

    def test_state_mismatch(self, client):
        _start(client, "google")
        resp = client.get("/api/auth/google/callback", query_string={"code": "good", "state": "forged"})
        path, params = _redirect_params(resp)
        assert path == "/auth/error"
        assert params["message"] == "OAuth failed"
        assert User.query.count() == 0

    def test_callback_without_start(self, client):
        resp = client.get("/api/auth/google/callback", query_string={"code": "good", "state": "x"})
        assert _redirect_params(resp)[0] == "/auth/error"

    def test_provider_rejects_code(self, client):
        state = _start(client, "google")["state"][0]
        resp = client.get("/api/auth/google/callback", query_string={"code": "bad", "state": state})
        assert _redirect_params(resp)[0] == "/auth/error"

    def test_unverified_email_cannot_claim_local_account(self, client, monkeypatch):
        client.post("/api/auth/customer/register", json={
            "email": "ada@example.com", "password": "Password123", "firstName": "Ada", "lastName": "L",
        })
        monkeypatch.setitem(GOOGLE_PROFILE, "email", "ada@example.com")
        monkeypatch.setitem(GOOGLE_PROFILE, "email_verified", False)

        state = _start(client, "google")["state"][0]
        resp = client.get("/api/auth/google/callback", query_string={"code": "good", "state": state})

        path, params = _redirect_params(resp)
        assert path == "/auth/error"
        assert "token" not in params
        assert AuditEvent.query.filter_by(event_type="LOGIN_SUCCEEDED").count() == 0

    def test_missing_email_verified_claim(self, client, monkeypatch):
        monkeypatch.delitem(GOOGLE_PROFILE, "email_verified")
        state = _start(client, "google")["state"][0]
        resp = client.get("/api/auth/google/callback", query_string={"code": "good", "state": state})
        assert _redirect_params(resp)[0] == "/auth/error"
        assert User.query.count() == 0

    def test_deactivated_principal_is_refused(self, client):
        db.session.add(User(email="grace@example.com", origin="google", role="customer", is_active=False))
        db.session.commit()
        state = _start(client, "google")["state"][0]
        resp = client.get("/api/auth/google/callback", query_string={"code": "good", "state": state})
        assert _redirect_params(resp)[0] == "/auth/error"


class TestApple:
    def test_form_post_callback(self, client):
        query = _start(client, "apple")
        assert query["response_mode"] == ["form_post"]

        resp = client.post("/api/auth/apple/callback", data={
            "code": "good",
            "state": query["state"][0],
            "user": '{"name": {"firstName": "Tim", "lastName": "Berners-Lee"}}',
        })
        path, params = _redirect_params(resp)
        assert path == "/auth/success"
        assert params["onboarding"] == "pending"

        user = User.query.one()
        assert user.origin == "apple"
        assert user.first_name == "Tim"
        assert user.last_name == "Berners-Lee"

    def test_unverified_email_is_refused(self, client, monkeypatch):
        monkeypatch.setitem(APPLE_CLAIMS, "email_verified", "false")
        state = _start(client, "apple")["state"][0]
        resp = client.post("/api/auth/apple/callback", data={"code": "good", "state": state})

        path, params = _redirect_params(resp)
        assert path == "/auth/error"
        assert "token" not in params
        assert User.query.count() == 0


class TestNotConfigured:
    def test_entry_points_answer_501(self):
        app = make_app()
        with app.app_context():
            client = app.test_client()
            for provider in ("google", "apple"):
                resp = client.get(f"/api/auth/{provider}")
                assert resp.status_code == 501
                assert resp.get_json()["code"] == "OAuthNotConfigured"
