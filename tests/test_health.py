import pytest
from starlette.testclient import TestClient

import server


def _build_app_client(monkeypatch) -> TestClient:
    monkeypatch.setattr(server, "load_env", lambda: None)
    monkeypatch.setattr(server, "setup_logging", lambda: False)
    monkeypatch.setenv("AUTH_COOKIE_SECRET", "a-long-enough-cookie-secret")
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "google-client")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "google-secret")
    monkeypatch.setenv("AUTH_PROTO", "http")
    monkeypatch.setenv("AUTH_HOST", "localhost")
    monkeypatch.setenv("AUTH_PORT", "8080")
    return TestClient(server.create_app())


def test_health_response_format(monkeypatch) -> None:
    client = _build_app_client(monkeypatch)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": "0.1.0"}


def test_home_is_public(monkeypatch) -> None:
    client = _build_app_client(monkeypatch)

    assert client.get("/").status_code == 200


def test_profile_requires_login(monkeypatch) -> None:
    client = _build_app_client(monkeypatch)

    response = client.get("/profile")

    assert response.status_code == 403
    assert response.text == "Forbidden"


def test_login_redirects_to_google(monkeypatch) -> None:
    client = _build_app_client(monkeypatch)

    response = client.get("/slogin", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"].startswith("https://accounts.google.com/o/oauth2/auth?")
    assert "redirect_uri=http%3A%2F%2Flocalhost%3A8080%2Fcallback" in response.headers["location"]


def test_create_app_fails_without_credentials(monkeypatch) -> None:
    monkeypatch.setattr(server, "load_env", lambda: None)
    monkeypatch.setattr(server, "setup_logging", lambda: False)
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "google-secret")
    monkeypatch.setenv("AUTH_COOKIE_SECRET", "a-long-enough-cookie-secret")

    with pytest.raises(RuntimeError, match="GOOGLE_CLIENT_ID"):
        server.create_app()
