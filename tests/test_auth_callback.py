import json

import httpx
import pytest
from fastapi.testclient import TestClient

from carebridge.core.config import settings
from carebridge.main import app
from carebridge.routers.auth import get_auth_api
from carebridge.services.api_client import ApiClient
from carebridge.services.auth_service import AuthApi


class Backend:
    """Scripted backend behind ``httpx.MockTransport``."""

    def __init__(self, metadata=None, profile=None, exchange_status=200):
        self.metadata = metadata or {}
        self.profile = profile
        self.exchange_status = exchange_status
        self.requests = []

    def user(self):
        return {"id": "u1", "email": "pat@example.com", "user_metadata": self.metadata}

    def __call__(self, request):
        self.requests.append((request.method, request.url.path))
        path = request.url.path
        if path == "/api/auth/oauth/exchange":
            if self.exchange_status != 200:
                return httpx.Response(self.exchange_status, json={
                    "success": False, "error": {"message": "Invalid code", "statusCode": self.exchange_status},
                })
            return httpx.Response(200, json={"success": True, "data": {"session": {
                "access_token": "tok", "refresh_token": "ref", "user": self.user(),
            }}})
        if path == "/api/auth/profile":
            self.metadata = json.loads(request.content)["metadata"]
            return httpx.Response(200, json={"success": True, "data": {"user": self.user()}})
        if path == "/api/auth/profiles/u1":
            if self.profile is None:
                return httpx.Response(404, json={"success": False, "error": "Profile not found"})
            return httpx.Response(200, json={"success": True, "data": {"profile": self.profile}})
        return httpx.Response(404)


@pytest.fixture
def backend():
    return Backend()


@pytest.fixture
def client(backend):
    def auth_api():
        return AuthApi(ApiClient(
            base_url="http://backend.test",
            api_key="anon-key",
            transport=httpx.MockTransport(backend),
        ))

    app.dependency_overrides[get_auth_api] = auth_api
    yield TestClient(app)
    app.dependency_overrides.clear()


def get(client, url, **kwargs):
    return client.get(url, follow_redirects=False, **kwargs)


def test_provider_error_redirects_to_error_page(client):
    response = get(client, "/auth/callback?error=access_denied&error_description=User%20cancelled")

    assert response.status_code == 307
    assert response.headers["location"] == "http://testserver/auth/auth-code-error?error=User%20cancelled"


def test_unconfigured_backend_redirects_to_loading_page(client):
    app.dependency_overrides[get_auth_api] = lambda: AuthApi(ApiClient(base_url="", api_key=""))

    response = get(client, "/auth/callback?code=abc")

    assert response.headers["location"].startswith(f"http://testserver{settings.oauth_loading_path}?error=OAuth%20is%20not%20configured")


def test_missing_code_returns_fragment_fallback_page(client):
    response = get(client, "/auth/callback")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert settings.oauth_storage_key in response.text


def test_completed_user_goes_to_next(client, backend):
    backend.metadata = {"role": "patient", "onboarding_completed": True}

    response = get(client, "/auth/callback?code=abc&next=/dashboard")

    assert response.headers["location"] == "http://testserver/dashboard"
    assert ("GET", "/api/auth/profiles/u1") not in backend.requests


def test_unsafe_next_falls_back_to_root(client, backend):
    backend.metadata = {"role": "patient", "onboarding_completed": True}

    response = get(client, "/auth/callback?code=abc&next=https://evil.example")

    assert response.headers["location"] == "http://testserver/"


def test_new_user_gets_role_and_onboarding(client, backend):
    response = get(client, "/auth/callback?code=abc&role=counselor")

    assert backend.metadata["role"] == "counselor"
    assert ("PUT", "/api/auth/profile") in backend.requests
    assert response.headers["location"] == "http://testserver/onboarding/counselor"


def test_existing_role_is_not_overwritten(client, backend):
    backend.metadata = {"role": "patient"}

    response = get(client, "/auth/callback?code=abc&role=counselor")

    assert ("PUT", "/api/auth/profile") not in backend.requests
    assert response.headers["location"] == "http://testserver/onboarding/patient"


def test_profile_completes_patient_onboarding(client, backend):
    backend.metadata = {"role": "patient", "contact_phone": "555-0100"}
    backend.profile = {"id": "u1", "treatment_stage": "recovery"}

    response = get(client, "/auth/callback?code=abc&next=/dashboard/patient")

    assert response.headers["location"] == "http://testserver/dashboard/patient"


def test_failed_exchange_redirects_with_message(client, backend):
    backend.exchange_status = 400

    response = get(client, "/auth/callback?code=bad")

    assert response.headers["location"] == "http://testserver/auth/auth-code-error?error=Invalid%20code"


def test_forwarded_host_used_in_production(client, backend, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    backend.metadata = {"role": "patient", "onboarding_completed": True}

    response = get(client, "/auth/callback?code=abc&next=/home", headers={"x-forwarded-host": "care.example.com"})

    assert response.headers["location"] == "https://care.example.com/home"


def test_fragment_session_parses_tokens(client):
    response = client.post("/auth/callback/session", json={"fragment": "#access_token=abc&expires_in=3600"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["data"]["access_token"] == "abc"
    assert body["data"]["expires_in"] == 3600


def test_fragment_without_token_is_rejected(client):
    response = client.post("/auth/callback/session", json={"fragment": "#token_type=bearer"})

    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_fragment_with_error_is_rejected(client):
    response = client.post(
        "/auth/callback/session",
        json={"fragment": "error=access_denied&error_description=Denied+by+user"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Denied by user"


def test_validation_errors_use_error_envelope(client):
    response = client.post("/auth/callback/session", json={})

    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "error"
    assert body["code"] == "VALIDATION_ERROR"


def test_health_reports_disconnected_transport(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["components"]["redis"]["redis"] == "disconnected"
    assert body["components"]["realtime"] == {"subscriptions": 0}
    assert body["status"] == "unhealthy"


def test_site_url_overrides_request_origin(client, backend, monkeypatch):
    monkeypatch.setattr(settings, "site_url", "https://care.example.org")
    backend.metadata = {"role": "patient", "onboarding_completed": True}

    response = get(client, "/auth/callback?code=abc&next=/home")

    assert response.headers["location"] == "https://care.example.org/home"
