"""JSON settings endpoint: persistence, type inference, access control and input checks."""
import pytest
from werkzeug.security import generate_password_hash

from app.ojsadmin import create_app
from app.ojsadmin.db import session_scope
from app.ojsadmin.models import Base, User, UserJournalRole
from app.ojsadmin.modules.journals.models import Journal, JournalSetting
from scripts.init_db import seed_roles

API = "/api/editor/settings"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        roles = seed_roles(s)
        j1 = Journal(path="jpk", title="Journal of Public Knowledge", enabled=True)
        j2 = Journal(path="other", title="Other Journal", enabled=True)
        admin = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        admin.roles.append(roles["admin"])
        editor = User(email="editor@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        reader = User(email="reader@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        s.add_all([j1, j2, admin, editor, reader])
        s.flush()
        s.add_all(
            [
                UserJournalRole(user_id=editor.id, role_id=roles["editor"].id, journal_id=j1.id),
                UserJournalRole(user_id=reader.id, role_id=roles["reader"].id, journal_id=j1.id),
            ]
        )
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email="admin@example.com"):
    client.post("/auth/login", data={"email": email, "password": "pw"}, follow_redirects=True)
    with client.session_transaction() as sess:
        return sess["csrf_token"]


def _post(client, token, section, body):
    return client.post(f"{API}/{section}", json=body, headers={"X-CSRF-Token": token})


def _stored(app, journal_id, section):
    with session_scope(app) as s:
        rows = (
            s.query(JournalSetting)
            .filter(JournalSetting.journal_id == journal_id)
            .filter(JournalSetting.section == section)
            .all()
        )
        return {r.setting_name: (r.setting_value, r.setting_type) for r in rows}


def test_save_persists_exactly_submitted_pairs_with_types(app, client):
    token = _login(client)
    settings = {
        "title": "Hello",
        "count": 3,
        "ratio": 2.5,
        "flag": True,
        "whole": 3.0,
        "tags": ["a", "b"],
        "nested": {"k": 1},
        "missing": None,
    }
    r = _post(client, token, "custom", {"journalId": 1, "settings": settings})
    assert r.status_code == 200
    assert r.json["ok"] is True

    stored = _stored(app, 1, "custom")
    assert set(stored) == set(settings)
    assert stored["title"] == ("Hello", "string")
    assert stored["count"] == ("3", "int")
    assert stored["ratio"][1] == "float"
    assert stored["flag"] == ("1", "bool")
    assert stored["whole"] == ("3", "int")
    assert stored["tags"][1] == "object"
    assert stored["nested"][1] == "object"
    assert stored["missing"][0] is None


def test_reload_returns_saved_values(client):
    token = _login(client)
    settings = {"title": "Hello", "count": 3, "flag": False, "tags": ["x"], "nested": {"k": [1, 2]}}
    _post(client, token, "custom", {"journalId": 1, "settings": settings})

    r = client.get(f"{API}/custom?journalId=1")
    assert r.status_code == 200
    assert r.json == {"ok": True, "settings": settings}


def test_save_leaves_unsubmitted_keys_alone(client):
    token = _login(client)
    _post(client, token, "custom", {"journalId": 1, "settings": {"a": 1, "b": 2}})
    r = _post(client, token, "custom", {"journalId": 1, "settings": {"b": "two"}})
    assert r.json["settings"] == {"a": 1, "b": "two"}


def test_string_journal_id_is_accepted(client):
    token = _login(client)
    r = _post(client, token, "custom", {"journalId": "1", "settings": {"a": 1}})
    assert r.status_code == 200


def test_get_seeds_section_defaults(app, client):
    _login(client)
    r = client.get(f"{API}/appearance?journalId=1")
    assert r.status_code == 200
    settings = r.json["settings"]
    assert settings["theme"] == "default"
    assert settings["header_color"] == "#006798"
    assert settings["show_summary"] is False
    assert "theme" in _stored(app, 1, "appearance")


def test_get_falls_back_to_users_journal(client):
    token = _login(client, "editor@example.com")
    _post(client, token, "custom", {"journalId": 1, "settings": {"a": 1}})
    r = client.get(f"{API}/custom")
    assert r.status_code == 200
    assert r.json["settings"] == {"a": 1}


def test_get_without_journal_and_no_fallback_is_400(client):
    _login(client)
    r = client.get(f"{API}/custom")
    assert r.status_code == 400
    assert r.json == {"ok": False, "message": "Journal ID is required"}


def test_anonymous_is_401(client):
    r = client.get(f"{API}/custom?journalId=1")
    assert r.status_code == 401
    assert r.json == {"ok": False, "message": "Unauthorized"}

    client.get("/")
    with client.session_transaction() as sess:
        token = sess["csrf_token"]
    r = _post(client, token, "custom", {"journalId": 1, "settings": {"a": 1}})
    assert r.status_code == 401


def test_anonymous_post_without_session_is_401(client):
    r = client.post(f"{API}/custom", json={"journalId": 1, "settings": {"a": 1}})
    assert r.status_code == 401
    assert r.json == {"ok": False, "message": "Unauthorized"}


def test_no_role_in_journal_is_403(app, client):
    token = _login(client, "editor@example.com")
    r = _post(client, token, "custom", {"journalId": 2, "settings": {"a": 1}})
    assert r.status_code == 403
    assert r.json == {"ok": False, "message": "Forbidden"}
    assert _stored(app, 2, "custom") == {}

    r = client.get(f"{API}/custom?journalId=2")
    assert r.status_code == 403


def test_role_without_settings_permission_is_403(client):
    token = _login(client, "reader@example.com")
    r = client.get(f"{API}/custom?journalId=1")
    assert r.status_code == 403
    r = _post(client, token, "custom", {"journalId": 1, "settings": {"a": 1}})
    assert r.status_code == 403


def test_unknown_journal_is_404(client):
    token = _login(client)
    r = _post(client, token, "custom", {"journalId": 999, "settings": {"a": 1}})
    assert r.status_code == 404
    assert r.json["message"] == "Journal not found"


@pytest.mark.parametrize(
    "body, message",
    [
        ([1, 2], "Request body must be a JSON object"),
        ({"settings": {"a": 1}}, "Journal ID is required"),
        ({"journalId": "abc", "settings": {"a": 1}}, "Journal ID must be an integer"),
        ({"journalId": True, "settings": {"a": 1}}, "Journal ID must be an integer"),
        ({"journalId": "\u00b2", "settings": {"a": 1}}, "Journal ID must be an integer"),
        ({"journalId": 10**30, "settings": {"a": 1}}, "Journal ID must be an integer"),
        ({"journalId": 0, "settings": {"a": 1}}, "Journal ID must be an integer"),
        ({"journalId": 1, "settings": {"a": {"b": [1.5, float("inf")]}}}, "Setting 'a' must not be NaN or Infinity."),
        ({"journalId": 1}, "Settings data is required"),
        ({"journalId": 1, "settings": "nope"}, "Settings data is required"),
    ],
)
def test_malformed_bodies_are_400(client, body, message):
    token = _login(client)
    r = _post(client, token, "custom", body)
    assert r.status_code == 400
    assert r.json == {"ok": False, "message": message}


def test_invalid_section_is_400(client):
    token = _login(client)
    r = _post(client, token, "Bad.Section", {"journalId": 1, "settings": {"a": 1}})
    assert r.status_code == 400
    assert r.json["ok"] is False

    r = client.get(f"{API}/UPPER?journalId=1")
    assert r.status_code == 400


def test_bad_journal_id_on_get_is_400(client):
    _login(client)
    r = client.get(f"{API}/custom?journalId=abc")
    assert r.status_code == 400
    assert r.json["message"] == "Journal ID must be an integer"

    for raw in ("\u00b2", "-3", str(10**30)):
        r = client.get(f"{API}/custom", query_string={"journalId": raw})
        assert r.status_code == 400
        assert r.json["message"] == "Journal ID must be an integer"


def test_nan_and_infinity_are_400(app, client):
    token = _login(client)
    r = client.post(
        f"{API}/custom",
        data='{"journalId": 1, "settings": {"x": NaN, "y": Infinity}}',
        content_type="application/json",
        headers={"X-CSRF-Token": token},
    )
    assert r.status_code == 400
    assert r.json == {"ok": False, "message": "Setting 'x' must not be NaN or Infinity."}
    assert _stored(app, 1, "custom") == {}


def test_post_without_csrf_is_400(client):
    _login(client)
    r = client.post(f"{API}/custom", json={"journalId": 1, "settings": {"a": 1}})
    assert r.status_code == 400
    assert r.json["ok"] is False


def test_csrf_token_in_json_body_is_accepted(client):
    token = _login(client)
    r = client.post(f"{API}/custom", json={"journalId": 1, "settings": {"a": 1}, "csrf_token": token})
    assert r.status_code == 200


def test_unexpected_error_is_500_with_message(client, monkeypatch):
    from app.ojsadmin.modules.journals import api

    def boom(*args, **kwargs):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(api, "save_section_settings", boom)
    token = _login(client)
    r = _post(client, token, "custom", {"journalId": 1, "settings": {"a": 1}})
    assert r.status_code == 500
    assert r.json == {"ok": False, "message": "database exploded"}
