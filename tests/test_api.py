"""
HTTP-level tests for the auth and todo routes.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from auth.jwt import TokenIssuer
from main import create_app


def _register(client, username="alice", email="alice@x.com", password="pw123456"):
    return client.post(
        "/auth/register",
        json={"username": username, "email": email, "password": password},
    )


def _login(client, username="alice", password="pw123456") -> dict:
    resp = client.post("/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


class TestEndToEnd:
    def test_alice_scenario(self, client):
        resp = _register(client)
        assert resp.status_code == 201
        body = resp.json()
        assert body["username"] == "alice"
        assert body["email"] == "alice@x.com"
        assert "password_hash" not in body
        assert "password" not in body

        resp = client.post("/auth/login", json={"username": "alice", "password": "pw123456"})
        assert resp.status_code == 200
        token = resp.json()["token"]
        assert token
        headers = {"Authorization": f"Bearer {token}"}

        resp = client.post("/todos", json={"text": "Buy milk", "priority": "high"}, headers=headers)
        assert resp.status_code == 201
        todo = resp.json()
        assert todo["text"] == "Buy milk"
        assert todo["priority"] == "high"
        assert todo["completed"] is False
        assert todo["tags"] == []

        resp = client.get("/todos", headers=headers)
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()] == [todo["id"]]

        resp = client.post(f"/toggle/{todo['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["completed"] is True

        resp = client.get("/categories", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == []


class TestAuthRoutes:
    def test_duplicate_username_409(self, client):
        assert _register(client).status_code == 201
        resp = _register(client, email="other@x.com")
        assert resp.status_code == 409
        assert resp.json() == {"error": "Username already registered"}

    def test_duplicate_email_409(self, client):
        assert _register(client).status_code == 201
        resp = _register(client, username="bob")
        assert resp.status_code == 409
        assert "error" in resp.json()

    def test_missing_field_400(self, client):
        resp = client.post("/auth/register", json={"username": "alice", "password": "pw123456"})
        assert resp.status_code == 400
        assert "email" in resp.json()["error"]

    def test_malformed_email_400(self, client):
        resp = _register(client, email="not-an-email")
        assert resp.status_code == 400

    def test_invalid_json_400(self, client):
        resp = client.post(
            "/auth/register",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_bad_credentials_401(self, client):
        _register(client)
        resp = client.post("/auth/login", json={"username": "alice", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid username or password"}

    def test_login_missing_password_400(self, client):
        resp = client.post("/auth/login", json={"username": "alice"})
        assert resp.status_code == 400

    def test_me(self, client):
        user_id = _register(client).json()["id"]
        resp = client.get("/auth/me", headers=_login(client))
        assert resp.status_code == 200
        assert resp.json()["id"] == user_id


class TestAuthGuard:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/todos"),
            ("post", "/todos"),
            ("post", "/toggle/abc"),
            ("get", "/categories"),
            ("put", "/todos/abc"),
            ("delete", "/todos/abc"),
            ("get", "/auth/me"),
        ],
    )
    def test_missing_token_401(self, client, method, path):
        resp = client.request(method.upper(), path, json={"text": "x"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Missing Bearer token"}

    def test_wrong_scheme_401(self, client):
        resp = client.get("/todos", headers={"Authorization": "Basic YWxpY2U6cHc="})
        assert resp.status_code == 401

    def test_garbage_token_401(self, client):
        resp = client.get("/todos", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid or expired token"}

    def test_expired_token_401(self, client):
        user_id = _register(client).json()["id"]
        stale = TokenIssuer("test-secret", expiry_seconds=60, clock=lambda: 0).issue(user_id)
        resp = client.get("/todos", headers={"Authorization": f"Bearer {stale}"})
        assert resp.status_code == 401

    def test_token_from_other_secret_401(self, client):
        user_id = _register(client).json()["id"]
        forged = TokenIssuer("not-the-server-secret").issue(user_id)
        resp = client.get("/todos", headers={"Authorization": f"Bearer {forged}"})
        assert resp.status_code == 401

    def test_token_for_unknown_account(self, client):
        ghost = TokenIssuer("test-secret").issue("ghost-user-id")
        headers = {"Authorization": f"Bearer {ghost}"}

        resp = client.post("/todos", json={"text": "x"}, headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Account no longer exists"}

        assert client.get("/todos", headers=headers).json() == []
        assert client.get("/auth/me", headers=headers).status_code == 404


class TestTodoRoutes:
    @pytest.fixture
    def alice(self, client):
        _register(client)
        return _login(client)

    @pytest.fixture
    def bob(self, client):
        _register(client, "bob", "bob@x.com")
        return _login(client, "bob")

    def test_urgent_priority_400(self, client, alice):
        resp = client.post("/todos", json={"text": "x", "priority": "urgent"}, headers=alice)
        assert resp.status_code == 400
        assert "priority" in resp.json()["error"]

    def test_empty_text_400(self, client, alice):
        resp = client.post("/todos", json={"text": "  "}, headers=alice)
        assert resp.status_code == 400

    def test_tags_must_be_list_400(self, client, alice):
        resp = client.post("/todos", json={"text": "x", "tags": "a,b"}, headers=alice)
        assert resp.status_code == 400

    def test_full_metadata(self, client, alice):
        resp = client.post(
            "/todos",
            json={
                "text": "Report",
                "category": "work",
                "tags": ["q3", "finance"],
                "priority": "medium",
                "due_date": "2030-01-02T09:30:00+02:00",
            },
            headers=alice,
        )
        assert resp.status_code == 201
        todo = resp.json()
        assert todo["tags"] == ["q3", "finance"]
        assert todo["due_date"].startswith("2030-01-02T07:30:00")

        listed = client.get("/todos", headers=alice).json()
        assert listed[0]["tags"] == ["q3", "finance"]
        assert listed[0]["due_date"].startswith("2030-01-02T07:30:00")
        assert client.get("/categories", headers=alice).json() == ["work"]

    def test_users_do_not_see_each_other(self, client, alice, bob):
        client.post("/todos", json={"text": "alice's"}, headers=alice)
        client.post("/todos", json={"text": "bob's"}, headers=bob)
        assert [t["text"] for t in client.get("/todos", headers=alice).json()] == ["alice's"]
        assert [t["text"] for t in client.get("/todos", headers=bob).json()] == ["bob's"]

    def test_toggle_other_users_todo_404(self, client, alice, bob):
        todo_id = client.post("/todos", json={"text": "alice's"}, headers=alice).json()["id"]
        resp = client.post(f"/toggle/{todo_id}", headers=bob)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Todo not found"}
        assert client.get("/todos", headers=alice).json()[0]["completed"] is False

    def test_toggle_missing_404(self, client, alice):
        resp = client.post("/toggle/does-not-exist", headers=alice)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Todo not found"}

    def test_update_and_delete(self, client, alice, bob):
        todo_id = client.post("/todos", json={"text": "draft"}, headers=alice).json()["id"]

        resp = client.put(f"/todos/{todo_id}", json={"text": "final", "tags": ["x"]}, headers=alice)
        assert resp.status_code == 200
        assert resp.json()["text"] == "final"
        assert resp.json()["tags"] == ["x"]

        assert client.put(f"/todos/{todo_id}", json={"text": "hijack"}, headers=bob).status_code == 404
        assert client.delete(f"/todos/{todo_id}", headers=bob).status_code == 404

        resp = client.delete(f"/todos/{todo_id}", headers=alice)
        assert resp.status_code == 204
        assert client.get("/todos", headers=alice).json() == []


class TestPublicRoutes:
    def test_index_page(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers["content-type"]

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"
        assert "X-Process-Time" in resp.headers


class _FailingTodos:
    """Stands in for the todo repository; every read blows up."""

    def __init__(self, exc):
        self._exc = exc

    async def list(self, owner_id):
        raise self._exc


class TestServerErrors:
    def test_storage_error_is_opaque_500(self, client):
        _register(client)
        headers = _login(client)
        client.app.state.todos = _FailingTodos(SQLAlchemyError("engine detail secret"))

        resp = client.get("/todos", headers=headers)
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}
        assert "secret" not in resp.text

    def test_unexpected_error_is_opaque_500(self, settings):
        with TestClient(create_app(settings), raise_server_exceptions=False) as c:
            _register(c)
            headers = _login(c)
            c.app.state.todos = _FailingTodos(RuntimeError("boom at /var/db"))

            resp = c.get("/todos", headers=headers)
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}
        assert "boom" not in resp.text

    def test_error_schema_in_openapi(self, client):
        spec = client.get("/openapi.json").json()
        assert "ErrorResponse" in spec["components"]["schemas"]
        toggle = spec["paths"]["/toggle/{todo_id}"]["post"]["responses"]
        assert {"401", "404", "500"} <= set(toggle)
        assert "401" not in spec["paths"]["/health"]["get"]["responses"]
