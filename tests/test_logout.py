from tests.flow_helpers import _build_flow, _session_from_client, _start_login


def _login(test_client) -> None:
    state = _start_login(test_client)
    test_client.get("/callback", params={"state": state, "code": "abc"}, follow_redirects=False)


def test_logout_revokes_authentication() -> None:
    _, test_client, _, store = _build_flow()
    _login(test_client)

    response = test_client.get("/slogout", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/"
    session = _session_from_client(test_client, store)
    assert session.authenticated is False


def test_logout_keeps_identity_fields() -> None:
    _, test_client, _, store = _build_flow()
    _login(test_client)

    test_client.get("/slogout", follow_redirects=False)

    session = _session_from_client(test_client, store)
    assert session.id == "42"
    assert session.email == "a@b.com"
    assert session.fullname == "A B"


def test_logout_twice_is_idempotent() -> None:
    _, test_client, _, store = _build_flow()
    _login(test_client)

    first = test_client.get("/slogout", follow_redirects=False)
    assert _session_from_client(test_client, store).authenticated is False

    second = test_client.get("/slogout", follow_redirects=False)
    assert _session_from_client(test_client, store).authenticated is False

    assert first.status_code == 307
    assert second.status_code == 307


def test_logout_without_session() -> None:
    _, test_client, _, store = _build_flow()

    response = test_client.get("/slogout", follow_redirects=False)

    assert response.status_code == 307
    assert _session_from_client(test_client, store).authenticated is False


def test_protected_route_rejected_after_logout() -> None:
    _, test_client, _, _ = _build_flow()
    _login(test_client)
    assert test_client.get("/profile").status_code == 200

    test_client.get("/slogout", follow_redirects=False)

    assert test_client.get("/profile").status_code == 403


def test_logout_save_failure_does_not_redirect() -> None:
    _, test_client, _, store = _build_flow(fail_save=True)

    response = test_client.get("/slogout", follow_redirects=False)

    assert response.status_code == 500
    assert "location" not in response.headers
    assert store.save_calls == 1
