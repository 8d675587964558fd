from shelfmark.extensions import db
from shelfmark.models import Bookmark, User


def _create_user(username: str, password: str):
    user = User(username=username, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def _token(client, username: str, password: str):
    response = client.post(
        "/api/auth/token",
        json={"username": username, "password": password, "token_name": "pytest"},
    )
    assert response.status_code == 200
    return response.get_json()["token"]


def _auth(client, app, username="member", password="secret"):
    with app.app_context():
        _create_user(username, password)
    return {"Authorization": f"Bearer {_token(client, username, password)}"}


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_bootstrap_only_creates_first_user(client):
    response = client.post(
        "/api/auth/bootstrap", json={"username": "first", "password": "secret"}
    )
    assert response.status_code == 201

    response = client.post(
        "/api/auth/bootstrap", json={"username": "second", "password": "secret"}
    )
    assert response.status_code == 409


def test_token_rejects_bad_credentials(client, app):
    with app.app_context():
        _create_user("alice", "secret")
    response = client.post(
        "/api/auth/token", json={"username": "alice", "password": "wrong"}
    )
    assert response.status_code == 401


def test_bookmark_endpoints_require_authentication(client):
    assert client.get("/api/bookmarks").status_code == 401

    response = client.post(
        "/api/bookmarks", json={"url": "https://example.com", "title": "Example"}
    )
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}

    response = client.delete("/api/bookmarks?id=abc")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}

    response = client.get(
        "/api/bookmarks", headers={"Authorization": "Bearer sm_not-a-real-token"}
    )
    assert response.status_code == 401


def test_create_bookmark_flow(client, app):
    auth = _auth(client, app)

    response = client.post(
        "/api/bookmarks",
        headers=auth,
        json={"url": "  https://Example.com  ", "title": "  My Site  "},
    )
    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["url"] == "https://example.com/"
    assert data["title"] == "My Site"
    assert data["id"]
    assert data["created_at"]
    assert data["updated_at"]


def test_create_bookmark_requires_url_and_title(client, app):
    auth = _auth(client, app)

    for body in [{}, {"url": "https://example.com"}, {"title": "T"}, {"url": "", "title": "T"}]:
        response = client.post("/api/bookmarks", headers=auth, json=body)
        assert response.status_code == 400
        assert response.get_json() == {"error": "URL and title are required"}

    response = client.post(
        "/api/bookmarks", headers=auth, json={"url": 42, "title": "Numbers"}
    )
    assert response.status_code == 400


def test_create_bookmark_validation_errors_are_400(client, app):
    auth = _auth(client, app)

    response = client.post(
        "/api/bookmarks", headers=auth, json={"url": "example.com", "title": "T"}
    )
    assert response.status_code == 400
    assert response.get_json()["error"].startswith("Invalid URL")

    response = client.post(
        "/api/bookmarks",
        headers=auth,
        json={"url": "https://example.com", "title": "x" * 501},
    )
    assert response.status_code == 400
    assert "between 1 and 500" in response.get_json()["error"]

    client.post(
        "/api/bookmarks", headers=auth, json={"url": "https://dup.example", "title": "A"}
    )
    response = client.post(
        "/api/bookmarks", headers=auth, json={"url": "https://dup.example", "title": "B"}
    )
    assert response.status_code == 400
    assert "UNIQUE" in response.get_json()["error"]


def test_delete_bookmark_flow(client, app):
    auth = _auth(client, app)
    created = client.post(
        "/api/bookmarks", headers=auth, json={"url": "https://example.com", "title": "E"}
    ).get_json()["data"]

    response = client.delete("/api/bookmarks", headers=auth)
    assert response.status_code == 400
    assert response.get_json() == {"error": "Bookmark ID is required"}

    response = client.delete(f"/api/bookmarks?id={created['id']}", headers=auth)
    assert response.status_code == 200
    assert response.get_json() == {"success": True}

    response = client.delete(f"/api/bookmarks?id={created['id']}", headers=auth)
    assert response.status_code == 200

    with app.app_context():
        assert Bookmark.query.count() == 0


def test_list_bookmarks_returns_page_and_feed_cursor(client, app):
    auth = _auth(client, app)
    for index in range(3):
        client.post(
            "/api/bookmarks",
            headers=auth,
            json={"url": f"https://example.com/{index}", "title": f"B{index}"},
        )

    response = client.get("/api/bookmarks?page=0", headers=auth)
    assert response.status_code == 200
    payload = response.get_json()
    assert len(payload["data"]) == 3
    assert payload["has_more"] is False
    assert payload["page"] == 0
    assert payload["cursor"] == 3


def test_events_feed_is_scoped_to_caller(client, app):
    alice = _auth(client, app, "alice", "secret")
    bob = _auth(client, app, "bob", "secret")

    head = client.get("/api/bookmarks/events", headers=alice).get_json()
    assert head == {"events": [], "cursor": 0, "has_more": False}

    created = client.post(
        "/api/bookmarks", headers=alice, json={"url": "https://a.example", "title": "A"}
    ).get_json()["data"]
    client.delete(f"/api/bookmarks?id={created['id']}", headers=alice)

    payload = client.get("/api/bookmarks/events?since=0", headers=alice).get_json()
    assert [event["action"] for event in payload["events"]] == ["insert", "delete"]
    assert payload["events"][0]["data"]["title"] == "A"
    assert payload["events"][1]["bookmark_id"] == created["id"]
    assert payload["cursor"] == payload["events"][-1]["cursor"]

    payload = client.get("/api/bookmarks/events?since=0", headers=bob).get_json()
    assert payload["events"] == []

    payload = client.get(
        "/api/bookmarks/events?since=0&limit=1", headers=alice
    ).get_json()
    assert len(payload["events"]) == 1
    assert payload["has_more"] is True


def test_unhandled_errors_become_500(client, app, monkeypatch):
    auth = _auth(client, app)

    def explode(*args, **kwargs):
        raise RuntimeError("database exploded")

    monkeypatch.setattr("shelfmark.api.routes.add_bookmark", explode)
    monkeypatch.setattr("shelfmark.api.routes.remove_bookmark", explode)

    response = client.post(
        "/api/bookmarks", headers=auth, json={"url": "https://example.com", "title": "E"}
    )
    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal server error"}

    response = client.delete("/api/bookmarks?id=abc", headers=auth)
    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal server error"}


def test_web_login_redirects(client, app):
    with app.app_context():
        _create_user("webuser", "secret")

    response = client.get("/dashboard", follow_redirects=False)
    assert response.status_code == 302

    response = client.post(
        "/login",
        data={"username": "webuser", "password": "wrong"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert "error=invalid_credentials" in response.headers["Location"]

    response = client.post(
        "/login",
        data={"username": "webuser", "password": "secret"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/dashboard")

    response = client.get("/dashboard")
    assert response.status_code == 200
    assert b"No bookmarks yet." in response.data

    response = client.post(
        "/api/bookmarks", json={"url": "https://session.example", "title": "Session"}
    )
    assert response.status_code == 201

    response = client.get("/dashboard")
    assert b"Session" in response.data

    response = client.post("/logout", follow_redirects=False)
    assert response.status_code == 302
    assert client.get("/api/bookmarks").status_code == 401
