from types import SimpleNamespace

from bson import ObjectId
from fastapi.testclient import TestClient

from newsletter_ai import pipeline, server
from newsletter_ai.models import InvalidRequest, UserType
from newsletter_ai.server import create_app


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_cors_wildcard_disables_credentials(services):
    app = create_app(services=services, init_indexes=False)
    cors = next(
        m for m in app.user_middleware if m.cls.__name__ == "CORSMiddleware"
    )
    assert cors.kwargs["allow_origins"] == ["*"]
    assert cors.kwargs["allow_credentials"] is False


def test_missing_token_is_rejected(client):
    resp = client.get("/users/me")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Missing token"


def test_unknown_token_is_rejected(client):
    resp = client.get("/users/me", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


def test_expired_session_is_rejected(client, make_user):
    _, headers = make_user(expired=True)
    resp = client.get("/users/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Session expired"


def test_inactive_user_is_forbidden(client, make_user):
    _, headers = make_user(status="Inactive")
    resp = client.get("/users/me", headers=headers)
    assert resp.status_code == 403


def test_regular_user_cannot_reach_admin_routes(client, make_user):
    _, headers = make_user(UserType.USER)
    assert client.get("/articles", headers=headers).status_code == 403
    assert client.get("/newsletters", headers=headers).status_code == 403


def test_admin_cannot_reach_superadmin_routes(client, make_user):
    _, headers = make_user(UserType.ADMIN)
    resp = client.get("/admins", headers=headers)
    assert resp.status_code == 403
    assert "Superadmin" in resp.json()["detail"]


def test_request_validation_errors_are_400(client, make_user):
    _, headers = make_user()
    resp = client.post("/newsletters/abc/send", json={}, headers=headers)
    assert resp.status_code == 400
    assert isinstance(resp.json()["detail"], list)


def test_malformed_object_id_is_400(client, make_user):
    _, headers = make_user()
    resp = client.delete("/newsletters/not-an-id", headers=headers)
    assert resp.status_code == 400
    assert "Invalid newsletter id" in resp.json()["detail"]


def _send_raises(monkeypatch, exc):
    def boom(*args, **kwargs):
        raise exc

    monkeypatch.setattr(pipeline, "send_newsletter", boom)


def test_domain_validation_is_400(client, make_user, monkeypatch):
    _, headers = make_user()
    _send_raises(monkeypatch, InvalidRequest("No recipients selected."))

    resp = client.post(
        f"/newsletters/{ObjectId()}/send", json={"user_ids": [str(ObjectId())]}, headers=headers
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "No recipients selected."


def test_library_value_errors_are_generic_500(client, make_user, monkeypatch, caplog):
    _, headers = make_user()
    _send_raises(
        monkeypatch, UnicodeEncodeError("ascii", "josé@example.com", 3, 4, "ordinal not in range")
    )

    resp = client.post(
        f"/newsletters/{ObjectId()}/send", json={"user_ids": [str(ObjectId())]}, headers=headers
    )

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Server error while sending the newsletter."
    assert "ascii" not in resp.text
    assert "Error while sending the newsletter" in caplog.text


class _ClientSpy:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def _services_with_spy(services):
    spy = _ClientSpy()
    services.db = SimpleNamespace(client=spy, name="spy")
    return spy


def test_owned_mongo_client_closes_on_shutdown(services, monkeypatch):
    spy = _services_with_spy(services)
    monkeypatch.setattr(server, "build_services", lambda settings: services)

    with TestClient(server.create_app(services.settings, init_indexes=False)) as client:
        assert client.get("/health").status_code == 200
        assert spy.closed is False

    assert spy.closed is True


def test_injected_services_are_left_open(services):
    spy = _services_with_spy(services)

    with TestClient(create_app(services=services, init_indexes=False)):
        pass

    assert spy.closed is False
