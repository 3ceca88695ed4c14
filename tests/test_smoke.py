import os
import subprocess
import sys
from pathlib import Path

import pytest
from werkzeug.security import generate_password_hash

from app.ojsadmin import create_app
from app.ojsadmin.db import session_scope
from app.ojsadmin.models import Base, User, UserJournalRole
from app.ojsadmin.modules.journals.models import Journal
from scripts.init_db import seed_roles


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("VERSION_CHECK_ENABLED", "0")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        roles = seed_roles(s)
        u = User(email="admin@example.com", name="Site Admin", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(roles["admin"])
        j = Journal(path="jpk", title="Journal of Public Knowledge", enabled=True)
        hidden = Journal(path="draft", title="Draft Journal", enabled=False)
        ce = User(email="copy@example.com", name="Copy Editor", password_hash=generate_password_hash("pw"), is_active=True)
        s.add_all([u, j, hidden, ce])
        s.flush()
        s.add(UserJournalRole(user_id=ce.id, role_id=roles["copyeditor"].id, journal_id=j.id))

    return app.test_client()


def _login(client, email="admin@example.com", password="pw", follow=True):
    return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=follow)


@pytest.mark.parametrize(
    "module",
    ["app.ojsadmin", "app.ojsadmin.routes", "app.ojsadmin.modules.journals.models", "app.wsgi"],
)
def test_fresh_interpreter_imports(module, tmp_path):
    root = Path(__file__).resolve().parents[1]
    env = {**os.environ, "DATABASE_URL": f"sqlite:///{tmp_path/'import.db'}", "ENV": "test"}
    proc = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=root,
        env=env,
        capture_output=True,
        text=True,
    )
    assert proc.returncode == 0, proc.stderr


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True

    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_login_and_admin_access(client):
    # Anonymous goes to the login page
    r = client.get("/admin/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]

    r = _login(client, follow=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/")

    r = client.get("/admin/")
    assert r.status_code == 200
    assert b"Site Administration" in r.data


def test_bad_password_is_rejected(client):
    r = _login(client, password="wrong")
    assert r.status_code == 200
    assert b"Invalid credentials." in r.data

    r = client.get("/admin/")
    assert r.status_code == 302


def test_copyeditor_lands_on_queue(client):
    r = _login(client, email="copy@example.com", follow=False)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/manager/copyediting")

    # no admin.view
    r = client.get("/admin/")
    assert r.status_code == 403


def test_post_without_csrf_is_rejected(client):
    _login(client)
    r = client.post("/admin/site-settings/setup", data={"site_name": "X", "min_password_length": "8"})
    assert r.status_code == 400
    assert b"CSRF" in r.data


def test_public_index_lists_enabled_journals(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"Journal of Public Knowledge" in r.data
    assert b"Draft Journal" not in r.data


def test_admin_pages_render(client):
    _login(client)
    for url in ("/admin/me", "/admin/audit", "/admin/system-info", "/admin/journals"):
        r = client.get(url)
        assert r.status_code == 200, url

    r = client.get("/admin/audit?action=auth.login")
    assert b"auth.login" in r.data


def test_system_info_without_version_check(client):
    _login(client)
    r = client.get("/admin/system-info")
    assert b"Latest release: unknown" in r.data
    assert b"sqlite: connected" in r.data


def test_profile_update(client):
    _login(client)
    with client.session_transaction() as sess:
        token = sess["csrf_token"]
    r = client.post(
        "/admin/me",
        data={"csrf_token": token, "name": "Renamed Admin", "current_password": "pw", "new_password": "longer-password"},
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Profile updated." in r.data
    assert b"Renamed Admin" in r.data

    r = client.post(
        "/admin/me",
        data={"csrf_token": token, "name": "Renamed Admin", "current_password": "nope", "new_password": "another-password"},
        follow_redirects=True,
    )
    assert b"Current password is incorrect." in r.data


def test_unknown_page_is_404(client):
    r = client.get("/no-such-page")
    assert r.status_code == 404
