"""Release check and component versions shown on the system information page."""
import pytest
import requests
from werkzeug.security import generate_password_hash

from app.ojsadmin import create_app
from app.ojsadmin import versioning
from app.ojsadmin.db import session_scope
from app.ojsadmin.models import Base, User
from app.ojsadmin.versioning import VersionInfo, check_version, component_versions, fetch_latest_version, parse_version
from scripts.init_db import seed_roles


class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("3.4.0", (3, 4, 0)),
        ("v3.3.0.21", (3, 3, 0, 21)),
        ("ojs-3_3_0-21", (3, 3, 0, 21)),
        ("release", ()),
    ],
)
def test_parse_version(raw, expected):
    assert parse_version(raw) == expected


def test_update_available():
    assert VersionInfo(current="3.3.0.21", latest="3.4.0").update_available is True
    assert VersionInfo(current="3.3.0.21", latest="3.3.0.21").update_available is False
    assert VersionInfo(current="3.3.0.21", latest=None).update_available is False


def test_fetch_latest_version_normalizes_tag(monkeypatch):
    calls = []

    def fake_get(url, timeout, headers):
        calls.append((url, timeout))
        return _FakeResponse({"tag_name": "ojs-3_4_0-1"})

    monkeypatch.setattr(versioning.requests, "get", fake_get)
    assert fetch_latest_version("https://example.org/latest") == "3.4.0.1"
    assert calls == [("https://example.org/latest", versioning.VERSION_CHECK_TIMEOUT)]


@pytest.mark.parametrize(
    "response",
    [
        _FakeResponse({}, status=500),
        _FakeResponse(ValueError("not json")),
        _FakeResponse({"name": "no tag"}),
        _FakeResponse(["not", "a", "dict"]),
    ],
)
def test_fetch_latest_version_failures_return_none(monkeypatch, response):
    monkeypatch.setattr(versioning.requests, "get", lambda url, timeout, headers: response)
    assert fetch_latest_version("https://example.org/latest") is None


def test_fetch_latest_version_network_error(monkeypatch):
    def fake_get(url, timeout, headers):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(versioning.requests, "get", fake_get)
    assert fetch_latest_version("https://example.org/latest") is None


def test_check_version_disabled_makes_no_request(monkeypatch):
    def fake_get(*args, **kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(versioning.requests, "get", fake_get)
    info = check_version({"VERSION_CHECK_ENABLED": False})
    assert info.latest is None
    assert info.current == versioning.APP_VERSION


def test_component_versions_lists_stack():
    versions = component_versions()
    assert set(versions) == {"Application", "Python", "Flask", "SQLAlchemy", "Alembic"}
    assert versions["Flask"] != "unknown"


def test_system_info_shows_available_update(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("VERSION_CHECK_ENABLED", "1")
    monkeypatch.setenv("VERSION_CHECK_URL", "https://example.org/latest")
    monkeypatch.setattr(versioning.requests, "get", lambda url, timeout, headers: _FakeResponse({"tag_name": "v99.0.0"}))

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    with session_scope(app) as s:
        roles = seed_roles(s)
        u = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(roles["admin"])
        s.add(u)

    client = app.test_client()
    client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"})
    r = client.get("/admin/system-info")
    assert r.status_code == 200
    assert b"Latest release: 99.0.0" in r.data
    assert b"(update available)" in r.data
