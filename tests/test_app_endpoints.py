import logging

from bson import ObjectId
from fastapi.testclient import TestClient

from myboard.app import create_app
from myboard.auth.session import InMemorySessionStore, SessionManager


def _signup(client, username="a", password="p"):
    return client.post("/signup", json={"username": username, "password": password})


def _login(client, username="a", password="p"):
    return client.post("/login", json={"username": username, "password": password})


def test_home_greets(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json() == {"message": "Hello, World!"}


# ------------------ Posts ------------------


def test_post_lifecycle(client):
    r = client.post("/content", json={"title": "t", "content": "c"})
    assert r.status_code == 201
    created = r.json()
    assert created["title"] == "t"
    assert created["content"] == "c"
    post_id = created["_id"]
    assert ObjectId.is_valid(post_id)

    r = client.get(f"/content/{post_id}")
    assert r.status_code == 200
    assert r.json() == created

    r = client.delete(f"/content/{post_id}")
    assert r.status_code == 204
    assert r.content == b""

    r = client.get(f"/content/{post_id}")
    assert r.status_code == 404
    assert r.json() == {"error": "Post not found"}


def test_list_returns_all_posts(client):
    assert client.get("/list").json() == []
    client.post("/content", json={"title": "one", "content": "1"})
    client.post("/content", json={"title": "two", "content": "2"})
    r = client.get("/list")
    assert r.status_code == 200
    assert [p["title"] for p in r.json()] == ["one", "two"]


def test_update_replaces_title_and_content(client):
    post_id = client.post("/content", json={"title": "t", "content": "c"}).json()["_id"]
    r = client.put(f"/content/{post_id}", json={"title": "t2", "content": "c2"})
    assert r.status_code == 200
    assert r.json() == {"_id": post_id, "title": "t2", "content": "c2"}
    assert client.get(f"/content/{post_id}").json()["title"] == "t2"


def test_missing_fields_are_rejected(client):
    for body in ({"title": "t"}, {"content": "c"}, {"title": "", "content": "c"}, {}):
        r = client.post("/content", json=body)
        assert r.status_code == 400
        assert r.json() == {"error": "Title and content are required"}

    post_id = client.post("/content", json={"title": "t", "content": "c"}).json()["_id"]
    r = client.put(f"/content/{post_id}", json={"title": "t2"})
    assert r.status_code == 400


def test_malformed_body_is_a_400_not_a_422(client):
    r = client.post("/content", content=b"not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert "error" in r.json()

    r = client.post("/content", json={"title": ["t"], "content": "c"})
    assert r.status_code == 400


def test_absent_and_malformed_ids_are_404(client):
    for post_id in (str(ObjectId()), "not-an-id"):
        assert client.get(f"/content/{post_id}").status_code == 404
        assert client.put(f"/content/{post_id}", json={"title": "t", "content": "c"}).status_code == 404
        assert client.delete(f"/content/{post_id}").status_code == 404


def test_storage_fault_is_500_without_detail(app, client, broken_database):
    app.state.database = broken_database
    for r in (
        client.get("/list"),
        client.get(f"/content/{ObjectId()}"),
        client.post("/content", json={"title": "t", "content": "c"}),
        client.put(f"/content/{ObjectId()}", json={"title": "t", "content": "c"}),
        client.delete(f"/content/{ObjectId()}"),
        client.get("/users"),
        _signup(client),
    ):
        assert r.status_code == 500
        assert r.json() == {"error": "Database query error"}
        assert "connection reset" not in r.text


# ------------------ Accounts ------------------


def test_account_scenario(client):
    assert _signup(client).status_code == 201

    r = _signup(client)
    assert r.status_code == 400
    assert r.json() == {"error": "Username already exists"}

    r = _login(client, password="wrong")
    assert r.status_code == 401

    r = _login(client)
    assert r.status_code == 200
    assert r.json() == {"message": "Login successful", "user": {"username": "a"}}

    r = client.get("/welcome")
    assert r.status_code == 200
    assert "a" in r.json()["message"]

    r = client.get("/logout")
    assert r.status_code == 200
    assert r.json() == {"message": "Logged out"}

    r = client.get("/welcome")
    assert r.status_code == 401
    assert r.json() == {"error": "Login required"}


def test_signup_does_not_log_in(client):
    _signup(client)
    assert client.get("/welcome").status_code == 401


def test_signup_and_login_require_both_fields(client):
    for body in ({"username": "a"}, {"password": "p"}, {"username": "", "password": "p"}):
        r = client.post("/signup", json=body)
        assert r.status_code == 400
        assert r.json() == {"error": "Username and password are required"}
        assert client.post("/login", json=body).status_code == 400


def test_unknown_user_and_wrong_password_differ_only_in_message(client):
    _signup(client)
    unknown = _login(client, username="nobody")
    wrong = _login(client, password="wrong")
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json()["error"] != wrong.json()["error"]


def test_login_never_returns_the_hash(client):
    _signup(client, "alice", "pw")
    r = _login(client, "alice", "pw")
    assert r.status_code == 200
    assert "password" not in r.text
    assert "$argon2" not in r.text


def test_users_listing_hides_hashes(client):
    for name in ("a", "b", "c"):
        _signup(client, name, "p")
    r = client.get("/users")
    assert r.status_code == 200
    assert r.json() == [{"username": "a"}, {"username": "b"}, {"username": "c"}]
    assert "password" not in r.text


def test_welcome_rejects_a_forged_cookie(client):
    assert client.get("/welcome", headers={"cookie": "board_session=forged"}).status_code == 401


def test_logout_without_session_is_ok(client):
    r = client.get("/logout")
    assert r.status_code == 200


class _FailingStore(InMemorySessionStore):
    def destroy(self, sid):
        raise RuntimeError("store unreachable")


def test_logout_failure_is_500(database):
    client = TestClient(create_app(database=database, sessions=SessionManager(_FailingStore())))
    _signup(client)
    assert _login(client).status_code == 200
    r = client.get("/logout")
    assert r.status_code == 500
    assert r.json() == {"error": "Session destroy error"}


def test_corrupt_stored_hash_is_a_generic_500_and_logged(database, client, caplog):
    database["user"].insert_one({"username": "a", "password_hash": "corrupt-hash"})
    with caplog.at_level(logging.ERROR, logger="myboard"):
        r = _login(client)
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
    assert "corrupt-hash" not in r.text
    assert "argon2" not in r.text.lower()
    logged = [rec for rec in caplog.records if rec.name.startswith("myboard")]
    assert any("/login" in rec.getMessage() for rec in logged)


class _UnreadableStore(InMemorySessionStore):
    def get(self, sid):
        raise RuntimeError("store unreachable")


def test_session_load_failure_is_500(database):
    client = TestClient(create_app(database=database, sessions=SessionManager(_UnreadableStore())))
    _signup(client)
    # No cookie yet, so login never reads the store.
    assert _login(client).status_code == 200
    for path in ("/welcome", "/logout"):
        r = client.get(path)
        assert r.status_code == 500
        assert r.json() == {"error": "Session load error"}
        assert "unreachable" not in r.text
