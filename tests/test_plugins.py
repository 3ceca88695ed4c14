"""Plugin catalog listing and the stored enabled/disabled flags."""
import pytest
from werkzeug.security import generate_password_hash

from app.ojsadmin import create_app
from app.ojsadmin.db import session_scope
from app.ojsadmin.models import Base, User, UserJournalRole
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.journals.settings import load_section_settings
from app.ojsadmin.modules.plugins.catalog import CATEGORIES, PLUGINS
from app.ojsadmin.modules.plugins.service import enabled_plugin_keys, plugin_groups
from app.ojsadmin.modules.site_settings.service import load_site_section
from scripts.init_db import seed_roles


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        roles = seed_roles(s)
        admin = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        admin.roles.append(roles["admin"])
        editor = User(email="editor@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        j1 = Journal(path="jpk", title="Journal of Public Knowledge", enabled=True)
        j2 = Journal(path="other", title="Other Journal", enabled=True)
        s.add_all([admin, editor, j1, j2])
        s.flush()
        s.add(UserJournalRole(user_id=editor.id, role_id=roles["section_editor"].id, journal_id=j1.id))
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email="admin@example.com"):
    client.post("/auth/login", data={"email": email, "password": "pw"}, follow_redirects=True)
    with client.session_transaction() as sess:
        return sess["csrf_token"]


def test_catalog_groups_cover_every_plugin():
    groups = plugin_groups({})
    assert [g.key for g in groups] == list(CATEGORIES)
    assert sum(g.count for g in groups) == len(PLUGINS)


def test_stored_flag_overrides_catalog_default():
    assert "dc11" in enabled_plugin_keys({})
    assert "orcid_profile" not in enabled_plugin_keys({})

    keys = enabled_plugin_keys({"dc11": False, "orcid_profile": True})
    assert "dc11" not in keys
    assert "orcid_profile" in keys


def test_search_matches_name_or_description():
    rows = [row.info.key for g in plugin_groups({}, search="ORCID") for row in g.plugins]
    assert rows == ["orcid_profile"]
    rows = [row.info.key for g in plugin_groups({}, search="syndication") for row in g.plugins]
    assert set(rows) == {"announcement_feed", "web_feed"}


def test_site_plugins_page(client):
    _login(client)
    r = client.get("/admin/site-settings/plugins")
    assert r.status_code == 200
    assert b"Google Scholar Indexing Plugin" in r.data

    r = client.get("/admin/site-settings/plugins?q=orcid")
    assert b"ORCID Profile Plugin" in r.data
    assert b"Google Scholar Indexing Plugin" not in r.data


def test_site_plugin_toggle(app, client):
    token = _login(client)
    r = client.post(
        "/admin/site-settings/plugins/orcid_profile/toggle",
        data={"csrf_token": token, "enabled": "1"},
        follow_redirects=True,
    )
    assert b"Plugin enabled." in r.data
    with session_scope(app) as s:
        assert load_site_section(s, "plugins") == {"orcid_profile": True}


def test_unknown_plugin_is_404(client):
    token = _login(client)
    r = client.post("/admin/site-settings/plugins/nope/toggle", data={"csrf_token": token, "enabled": "1"})
    assert r.status_code == 404
    r = client.post("/admin/journals/1/plugins/nope/toggle", data={"csrf_token": token, "enabled": "1"})
    assert r.status_code == 404


def test_journal_plugin_toggle(app, client):
    token = _login(client, "editor@example.com")
    r = client.post(
        "/admin/journals/1/plugins/dc11/toggle",
        data={"csrf_token": token, "enabled": "0"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert "tab=plugins" in r.headers["Location"]
    with session_scope(app) as s:
        assert load_section_settings(s, 1, "plugins") == {"dc11": False}

    r = client.get("/admin/journals/1/settings/wizard?tab=plugins&q=dublin+core+1.1")
    assert b"Enable" in r.data


def test_journal_plugin_toggle_is_scoped(client):
    token = _login(client, "editor@example.com")
    r = client.post("/admin/journals/2/plugins/dc11/toggle", data={"csrf_token": token, "enabled": "0"})
    assert r.status_code == 403
    # no site-wide permission either
    r = client.post("/admin/site-settings/plugins/dc11/toggle", data={"csrf_token": token, "enabled": "0"})
    assert r.status_code == 403
