"""Hosted journals and the journal settings wizard."""
import pytest
from werkzeug.security import generate_password_hash

from app.ojsadmin import create_app
from app.ojsadmin.db import session_scope
from app.ojsadmin.models import Base, User, UserJournalRole
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.journals.settings import load_section_settings
from scripts.init_db import seed_roles


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        roles = seed_roles(s)
        admin = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        admin.roles.append(roles["admin"])
        editor = User(email="editor@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        j1 = Journal(path="jpk", title="Journal of Public Knowledge", initials="JPK", abbreviation="J Pub Know", enabled=True)
        j2 = Journal(path="other", title="Other Journal", enabled=True)
        s.add_all([admin, editor, j1, j2])
        s.flush()
        s.add(UserJournalRole(user_id=editor.id, role_id=roles["editor"].id, journal_id=j1.id))
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email="admin@example.com"):
    client.post("/auth/login", data={"email": email, "password": "pw"}, follow_redirects=True)
    with client.session_transaction() as sess:
        return sess["csrf_token"]


def _masthead(token, **overrides):
    data = {
        "csrf_token": token,
        "section": "masthead",
        "title": "Journal of Public Knowledge",
        "path": "jpk",
        "initials": "JPK",
        "abbreviation": "J Pub Know",
        "publisher": "Public Knowledge Project",
        "online_issn": "1234-567x",
        "print_issn": "",
        "description": "A journal.",
        "enabled": "1",
    }
    data.update(overrides)
    return data


def test_journals_list_requires_journals_manage(client):
    r = client.get("/admin/journals")
    assert r.status_code == 302

    _login(client, "editor@example.com")
    r = client.get("/admin/journals")
    assert r.status_code == 403


def test_create_journal_opens_wizard(app, client):
    token = _login(client)
    r = client.post(
        "/admin/journals/new",
        data={"csrf_token": token, "title": "New Journal", "path": "New-J", "enabled": "1"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert "/settings/wizard" in r.headers["Location"]

    with session_scope(app) as s:
        j = s.query(Journal).filter(Journal.path == "new-j").one()
        assert j.title == "New Journal"
        assert j.enabled is True

    r = client.get("/admin/journals")
    assert b"New Journal" in r.data


def test_create_journal_validation(client):
    token = _login(client)
    r = client.post(
        "/admin/journals/new",
        data={"csrf_token": token, "title": "", "path": "bad path!"},
        follow_redirects=True,
    )
    assert b"Journal name is required." in r.data
    assert b"Path may only contain" in r.data

    r = client.post(
        "/admin/journals/new",
        data={"csrf_token": token, "title": "Dup", "path": "jpk"},
        follow_redirects=True,
    )
    assert b"is already used by another journal" in r.data


@pytest.mark.parametrize(
    "query",
    [
        "",
        "?tab=settings&section=contact",
        "?tab=settings&section=appearance",
        "?tab=settings&section=languages",
        "?tab=settings&section=indexing",
        "?tab=settings&section=emails",
        "?tab=plugins",
        "?tab=plugins&q=orcid",
        "?tab=users",
        "?tab=bogus&section=bogus",
    ],
)
def test_wizard_tabs_render(client, query):
    _login(client)
    r = client.get(f"/admin/journals/1/settings/wizard{query}")
    assert r.status_code == 200
    assert b"Journal of Public Knowledge" in r.data


def test_wizard_unknown_journal_is_404(client):
    _login(client)
    r = client.get("/admin/journals/999/settings/wizard")
    assert r.status_code == 404


def test_masthead_save(app, client):
    token = _login(client)
    r = client.post(
        "/admin/journals/1/settings/wizard",
        data=_masthead(token, title="Renamed Journal"),
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"Masthead settings saved." in r.data

    with session_scope(app) as s:
        j = s.get(Journal, 1)
        assert j.title == "Renamed Journal"
        assert j.description == "A journal."
        values = load_section_settings(s, 1, "masthead")
        assert values["publisher"] == "Public Knowledge Project"
        assert values["online_issn"] == "1234-567X"


def test_masthead_requires_initials_and_valid_issn(app, client):
    token = _login(client)
    r = client.post(
        "/admin/journals/1/settings/wizard",
        data=_masthead(token, initials="", online_issn="12345"),
        follow_redirects=True,
    )
    assert b"Journal initials are required." in r.data
    assert b"Online ISSN must look like 1234-567X." in r.data
    with session_scope(app) as s:
        assert load_section_settings(s, 1, "masthead") == {}


def test_appearance_save_stores_typed_values(app, client):
    token = _login(client)
    r = client.post(
        "/admin/journals/1/settings/wizard",
        data={
            "csrf_token": token,
            "section": "appearance",
            "theme": "dark",
            "typography": "Lato",
            "header_color": "#112233",
            "show_summary": "1",
        },
        follow_redirects=True,
    )
    assert b"Appearance settings saved." in r.data
    with session_scope(app) as s:
        values = load_section_settings(s, 1, "appearance")
    assert values == {
        "theme": "dark",
        "typography": "Lato",
        "header_color": "#112233",
        "show_summary": True,
        "show_header_image": False,
    }


def test_appearance_rejects_bad_colour(client):
    token = _login(client)
    r = client.post(
        "/admin/journals/1/settings/wizard",
        data={"csrf_token": token, "section": "appearance", "theme": "default", "typography": "Lato", "header_color": "blue"},
        follow_redirects=True,
    )
    assert b"Header colour must be a hex colour" in r.data


def test_languages_save_sets_primary_locale(app, client):
    token = _login(client)
    r = client.post(
        "/admin/journals/1/settings/wizard",
        data={
            "csrf_token": token,
            "section": "languages",
            "primary_locale": "en_US",
            "locale_en_US_ui": "1",
            "locale_en_US_forms": "1",
        },
        follow_redirects=True,
    )
    assert b"Languages settings saved." in r.data
    with session_scope(app) as s:
        assert s.get(Journal, 1).primary_locale == "en_US"
        values = load_section_settings(s, 1, "languages")
    assert values["locales"] == {"en_US": {"ui": True, "forms": True, "submissions": False}}


def test_languages_primary_must_be_enabled_for_ui(client):
    token = _login(client)
    r = client.post(
        "/admin/journals/1/settings/wizard",
        data={"csrf_token": token, "section": "languages", "primary_locale": "en_US", "locale_en_US_forms": "1"},
        follow_redirects=True,
    )
    assert b"The primary locale must be enabled for the user interface." in r.data


def test_indexing_and_emails_save(app, client):
    token = _login(client)
    client.post(
        "/admin/journals/1/settings/wizard",
        data={"csrf_token": token, "section": "indexing", "keywords": "biology, Biology, chemistry", "include_supplemental": "on"},
    )
    client.post(
        "/admin/journals/1/settings/wizard",
        data={"csrf_token": token, "section": "emails", "disable_bulk_email_roles": ["reader", "author", "admin"]},
    )
    with session_scope(app) as s:
        indexing = load_section_settings(s, 1, "indexing")
        emails = load_section_settings(s, 1, "emails")
    assert indexing["keywords"] == ["biology", "chemistry"]
    assert indexing["include_supplemental"] is True
    assert emails == {"disable_bulk_email_roles": ["author", "reader"]}


def test_unknown_section_post_is_400(client):
    token = _login(client)
    r = client.post("/admin/journals/1/settings/wizard", data={"csrf_token": token, "section": "nope"})
    assert r.status_code == 400


def test_editor_is_scoped_to_own_journal(client):
    token = _login(client, "editor@example.com")
    r = client.get("/admin/journals/1/settings/wizard")
    assert r.status_code == 200

    r = client.get("/admin/journals/2/settings/wizard")
    assert r.status_code == 403

    r = client.post(
        "/admin/journals/2/settings/wizard",
        data={"csrf_token": token, "section": "indexing", "keywords": "x"},
    )
    assert r.status_code == 403
