import logging
import time

from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from auth.gate import AuthorizationGate
from auth.models import Session
from auth.session_store import SessionStore
from tests.flow_helpers import COOKIE_SECRET


def _build_gated_app(store: SessionStore):
    calls = []
    gate = AuthorizationGate(store)

    async def secret_page(request):
        calls.append(request.url.path)
        return PlainTextResponse("secret")

    def sync_page(request):
        calls.append(request.url.path)
        return PlainTextResponse("sync secret")

    app = Starlette(
        routes=[
            Route("/secret", gate.protect(secret_page)),
            Route("/sync", gate.protect(sync_page)),
        ]
    )
    return TestClient(app), calls


def _authenticated_cookie(store: SessionStore) -> str:
    session = Session(authenticated=True, id="42", email="a@b.com", fullname="A B")
    store.set_expiry(session, 3600)
    return store.encode(session)


def test_gate_allows_authenticated_session() -> None:
    store = SessionStore(COOKIE_SECRET)
    test_client, calls = _build_gated_app(store)
    test_client.cookies.set(store.cookie_name, _authenticated_cookie(store))

    response = test_client.get("/secret")

    assert response.status_code == 200
    assert response.text == "secret"
    assert calls == ["/secret"]


def test_gate_runs_sync_endpoints() -> None:
    store = SessionStore(COOKIE_SECRET)
    test_client, calls = _build_gated_app(store)
    test_client.cookies.set(store.cookie_name, _authenticated_cookie(store))

    response = test_client.get("/sync")

    assert response.status_code == 200
    assert calls == ["/sync"]


def test_gate_rejects_missing_cookie() -> None:
    store = SessionStore(COOKIE_SECRET)
    test_client, calls = _build_gated_app(store)

    response = test_client.get("/secret")

    assert response.status_code == 403
    assert calls == []


def test_gate_rejects_malformed_cookie() -> None:
    store = SessionStore(COOKIE_SECRET)
    test_client, calls = _build_gated_app(store)
    test_client.cookies.set(store.cookie_name, "not-a-signed-value")

    response = test_client.get("/secret")

    assert response.status_code == 403
    assert calls == []


def test_gate_rejects_cookie_signed_with_other_secret() -> None:
    store = SessionStore(COOKIE_SECRET)
    forger = SessionStore("someone-elses-secret-value")
    test_client, calls = _build_gated_app(store)
    test_client.cookies.set(store.cookie_name, _authenticated_cookie(forger))

    response = test_client.get("/secret")

    assert response.status_code == 403
    assert calls == []


def test_gate_rejects_non_boolean_authenticated() -> None:
    store = SessionStore(COOKIE_SECRET)
    test_client, calls = _build_gated_app(store)
    test_client.cookies.set(
        store.cookie_name,
        store.serializer.dumps({"authenticated": "true", "id": "42", "email": "a@b.com"}),
    )

    response = test_client.get("/secret")

    assert response.status_code == 403
    assert calls == []


def test_gate_rejects_expired_session() -> None:
    store = SessionStore(COOKIE_SECRET)
    test_client, calls = _build_gated_app(store)
    session = Session(authenticated=True, id="42", email="a@b.com")
    session.expires_at = time.time() - 1
    test_client.cookies.set(store.cookie_name, store.encode(session))

    response = test_client.get("/secret")

    assert response.status_code == 403
    assert calls == []


def test_gate_rejection_sets_no_cookie() -> None:
    store = SessionStore(COOKIE_SECRET)
    test_client, _ = _build_gated_app(store)

    response = test_client.get("/secret")

    assert "set-cookie" not in response.headers


def test_gate_logs_accepted_identity(caplog) -> None:
    store = SessionStore(COOKIE_SECRET)
    test_client, _ = _build_gated_app(store)
    test_client.cookies.set(store.cookie_name, _authenticated_cookie(store))
    caplog.set_level(logging.INFO, logger="authsession")

    test_client.get("/secret")

    assert "a@b.com" in caplog.text
