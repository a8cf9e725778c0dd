# tests/test_notes.py
from sqlalchemy import func, select

from textshare.extensions import db
from textshare.notes.models import Note


def _save(client, **body):
    return client.post("/api/notes", json=body)


def _count(app, name):
    with app.app_context():
        return db.session.execute(
            select(func.count()).select_from(Note).filter_by(name=name)
        ).scalar_one()


def test_protected_note_full_scenario(client, clock):
    r = _save(client, name="n1", content="hello", password="secret", expiresIn="24")
    assert r.status_code == 201
    assert r.get_json() == {"message": "Note saved successfully", "name": "n1"}

    r = client.get("/api/notes/n1")
    assert r.status_code == 200
    data = r.get_json()
    assert data["hasPassword"] is True
    assert data["content"] is None
    assert data["name"] == "n1"
    assert data["createdAt"].startswith("2026-01-01T12:00:00")
    assert data["expiresAt"].startswith("2026-01-02T12:00:00")

    r = client.post("/api/notes/n1/access", json={"password": "wrong"})
    assert r.status_code == 401
    assert r.get_json()["error"]["code"] == "invalid_password"
    assert "hello" not in r.get_data(as_text=True)

    r = client.post("/api/notes/n1/access", json={"password": "secret"})
    assert r.status_code == 200
    data = r.get_json()
    assert data["content"] == "hello"
    assert set(data) == {"name", "content", "createdAt", "expiresAt"}


def test_public_note_roundtrip(client, clock):
    content = "ligne 1\nligne 2 — ünïcödé\t!"
    assert _save(client, name="public", content=content).status_code == 201

    r = client.get("/api/notes/public")
    assert r.status_code == 200
    data = r.get_json()
    assert data["content"] == content
    assert data["hasPassword"] is False
    assert data["expiresAt"] is None


def test_save_same_name_updates_in_place(app, client, clock):
    _save(client, name="dup", content="first")
    created_at = client.get("/api/notes/dup").get_json()["createdAt"]

    clock.advance(minutes=5)
    assert _save(client, name="dup", content="second").status_code == 201

    data = client.get("/api/notes/dup").get_json()
    assert data["content"] == "second"
    assert data["createdAt"] == created_at
    assert _count(app, "dup") == 1


def test_update_without_password_keeps_existing_one(client, clock):
    _save(client, name="locked", content="v1", password="pw")
    _save(client, name="locked", content="v2")

    assert client.get("/api/notes/locked").get_json()["hasPassword"] is True
    r = client.post("/api/notes/locked/access", json={"password": "pw"})
    assert r.status_code == 200
    assert r.get_json()["content"] == "v2"


def test_update_with_new_password_replaces_it(client, clock):
    _save(client, name="rotate", content="v1", password="old")
    _save(client, name="rotate", content="v2", password="new")

    assert client.post("/api/notes/rotate/access", json={"password": "old"}).status_code == 401
    assert client.post("/api/notes/rotate/access", json={"password": "new"}).status_code == 200


def test_expired_note_is_gone_on_every_read_path(app, client, clock):
    _save(client, name="ttl", content="bientôt parti", password="pw", expiresIn=1)

    # pile à l'échéance: encore visible
    clock.advance(hours=1)
    assert client.get("/api/notes/ttl").status_code == 200

    clock.advance(seconds=1)
    r = client.get("/api/notes/ttl")
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "not_found"
    assert client.post("/api/notes/ttl/access", json={"password": "pw"}).status_code == 404
    assert _count(app, "ttl") == 0

    clock.advance(days=3)
    assert client.get("/api/notes/ttl").status_code == 404


def test_challenge_path_also_deletes_expired_note(app, client, clock):
    _save(client, name="ttl2", content="x", password="pw", expiresIn=1)
    clock.advance(hours=2)

    assert client.post("/api/notes/ttl2/access", json={"password": "pw"}).status_code == 404
    assert _count(app, "ttl2") == 0


def test_update_without_expiry_keeps_previous_expiry(client, clock):
    _save(client, name="keep", content="v1", expiresIn=1)
    _save(client, name="keep", content="v2")

    assert client.get("/api/notes/keep").get_json()["expiresAt"] is not None
    clock.advance(hours=2)
    assert client.get("/api/notes/keep").status_code == 404


def test_unknown_name_is_always_not_found(client, clock):
    assert client.get("/api/notes/never-saved").status_code == 404
    r = client.post("/api/notes/never-saved/access", json={"password": "x"})
    assert r.status_code == 404
    assert r.get_json()["error"]["code"] == "not_found"


def test_access_on_unprotected_note_is_bad_request(client, clock):
    _save(client, name="open", content="libre")
    r = client.post("/api/notes/open/access", json={"password": "anything"})
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "not_protected"


def test_access_without_password_is_unauthorized(client, clock):
    _save(client, name="guarded", content="c", password="pw")
    assert client.post("/api/notes/guarded/access", json={}).status_code == 401
    assert client.post("/api/notes/guarded/access").status_code == 401


def test_save_requires_name_and_content(client, clock):
    for body in ({"content": "c"}, {"name": "n"}, {"name": "", "content": "c"},
                 {"name": "n", "content": ""}, {"name": "   ", "content": "c"}, {}):
        r = client.post("/api/notes", json=body)
        assert r.status_code == 400, body
        assert r.get_json()["error"]["code"] == "validation_error"


def test_save_rejects_invalid_expiry(client, clock):
    for value in ("abc", -3, 87601):
        r = _save(client, name="bad", content="c", expiresIn=value)
        assert r.status_code == 400, value
        assert "expiresIn" in r.get_json()["error"]["details"]


def test_empty_optional_fields_count_as_not_supplied(client, clock):
    r = _save(client, name="blank", content="c", password="", expiresIn="")
    assert r.status_code == 201

    data = client.get("/api/notes/blank").get_json()
    assert data["hasPassword"] is False
    assert data["expiresAt"] is None
    assert data["content"] == "c"


def test_name_is_trimmed_and_unknown_fields_ignored(client, clock):
    r = _save(client, name="  padded  ", content="c", color="blue")
    assert r.status_code == 201
    assert r.get_json()["name"] == "padded"
    assert client.get("/api/notes/padded").status_code == 200


def test_password_hash_never_leaves_the_server(client, clock):
    _save(client, name="secretive", content="c", password="pw")
    for r in (client.get("/api/notes/secretive"),
              client.post("/api/notes/secretive/access", json={"password": "pw"})):
        body = r.get_data(as_text=True)
        assert "$2" not in body
        assert "password" not in r.get_json()


def test_challenging_unknown_name_is_not_found_whatever_the_body(client, clock):
    for body in ({"password": None}, {"password": 1234}, ["x"], "secret", {"password": ["a"]}):
        r = client.post("/api/notes/never-saved/access", json=body)
        assert r.status_code == 404, body
        assert r.get_json()["error"]["code"] == "not_found"


def test_malformed_password_on_protected_note_is_unauthorized(client, clock):
    _save(client, name="guarded2", content="c", password="pw")
    for body in ({"password": None}, {"password": 1234}, ["pw"], {"password": {"x": 1}}):
        r = client.post("/api/notes/guarded2/access", json=body)
        assert r.status_code == 401, body
        assert "content" not in r.get_json()


def test_malformed_body_on_unprotected_note_is_not_protected(client, clock):
    _save(client, name="open2", content="c")
    r = client.post("/api/notes/open2/access", json={"password": None})
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "not_protected"


def test_password_is_capped_at_bcrypt_limit(client, clock):
    # 37 x "é" = 74 octets UTF-8, malgré 37 caractères seulement
    r = _save(client, name="long", content="c", password="é" * 37)
    assert r.status_code == 400
    assert "password" in r.get_json()["error"]["details"]

    exact = "p" * 72
    assert _save(client, name="long", content="c", password=exact).status_code == 201
    assert client.post("/api/notes/long/access", json={"password": exact}).status_code == 200
    # même préfixe de 72 octets: refusé au lieu d'être tronqué par bcrypt
    r = client.post("/api/notes/long/access", json={"password": exact + "x"})
    assert r.status_code == 401
