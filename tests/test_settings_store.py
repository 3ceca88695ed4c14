"""Per-journal settings store and the value codec underneath it."""
import json

import pytest

from app.ojsadmin import create_app
from app.ojsadmin.db import session_scope
from app.ojsadmin.models import AuditEvent, Base
from app.ojsadmin.modules.journals.models import Journal, JournalSetting
from app.ojsadmin.modules.journals.settings import (
    ensure_section_defaults,
    load_section_settings,
    load_setting,
    save_section_settings,
    save_setting,
    section_with_defaults,
    validate_section_name,
    validate_settings_payload,
)
from app.ojsadmin.utils import decode_setting_value, encode_setting_value, infer_setting_type


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    with session_scope(app) as s:
        s.add(Journal(path="jpk", title="Journal of Public Knowledge", enabled=True))
    return app


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, "bool"),
        (False, "bool"),
        (0, "int"),
        (42, "int"),
        (3.0, "int"),
        (2.5, "float"),
        ("3", "string"),
        ("", "string"),
        (None, "string"),
        ([1, 2], "object"),
        ({"a": 1}, "object"),
    ],
)
def test_infer_setting_type(value, expected):
    assert infer_setting_type(value) == expected


def test_codec_edges():
    assert encode_setting_value(None, "string") is None
    assert decode_setting_value(None, "int") is None
    assert encode_setting_value(3.0, "int") == "3"
    assert encode_setting_value({"b": 1, "a": 2}, "object") == '{"a": 2, "b": 1}'
    # undecodable rows come back raw
    assert decode_setting_value("not-a-number", "int") == "not-a-number"
    assert decode_setting_value("{broken", "object") == "{broken"
    assert decode_setting_value("anything", "unknown-type") == "anything"


def test_section_name_and_payload_validation():
    assert validate_section_name(" appearance ") == "appearance"
    for bad in ("", None, "Appearance", "has space", "../etc"):
        with pytest.raises(ValueError):
            validate_section_name(bad)

    assert validate_settings_payload({"a": 1}) == []
    assert validate_settings_payload(None) == ["Settings data is required"]
    assert validate_settings_payload([("a", 1)]) == ["Settings data is required"]
    assert validate_settings_payload({"": 1}) == ["Setting names must be non-empty strings."]
    assert validate_settings_payload({"x" * 300: 1})[0].startswith("Setting name too long")
    assert validate_settings_payload({"ok": 1.5, "nested": {"v": [float("nan")]}}) == [
        "Setting 'nested' must not be NaN or Infinity."
    ]


def test_save_and_reload(app):
    with session_scope(app) as s:
        written = save_section_settings(s, 1, "indexing", {"keywords": ["a"], "include_supplemental": False}, actor=None)
    assert written == {"keywords": "object", "include_supplemental": "bool"}

    with session_scope(app) as s:
        assert load_section_settings(s, 1, "indexing") == {"include_supplemental": False, "keywords": ["a"]}
        assert load_setting(s, 1, "indexing", "keywords") == ["a"]
        assert load_setting(s, 1, "indexing", "absent", default="d") == "d"


def test_upsert_updates_row_and_type(app):
    with session_scope(app) as s:
        save_setting(s, 1, "custom", "value", "text", actor=None)
    with session_scope(app) as s:
        assert save_setting(s, 1, "custom", "value", 7, actor=None) == "int"
    with session_scope(app) as s:
        rows = s.query(JournalSetting).filter(JournalSetting.section == "custom").all()
        assert len(rows) == 1
        assert (rows[0].setting_value, rows[0].setting_type) == ("7", "int")


def test_save_records_audit_event(app):
    with session_scope(app) as s:
        save_section_settings(s, 1, "custom", {"a": 1}, actor=None)
    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "journal_settings.save").one()
        assert ev.entity_id == "1"
        assert ev.request_id is None and ev.client_ip is None
        assert json.loads(ev.metadata_json) == {"section": "custom", "types": {"a": "int"}}


def test_defaults_seed_once(app):
    with session_scope(app) as s:
        assert ensure_section_defaults(s, 1, "appearance") is True
    with session_scope(app) as s:
        assert ensure_section_defaults(s, 1, "appearance") is False
        assert ensure_section_defaults(s, 1, "not-a-known-section") is False
        assert load_section_settings(s, 1, "appearance")["typography"] == "Noto Sans"


def test_section_with_defaults_layers_stored_values(app):
    with session_scope(app) as s:
        save_setting(s, 1, "appearance", "theme", "dark", actor=None)
    with session_scope(app) as s:
        merged = section_with_defaults(s, 1, "appearance")
        assert merged["theme"] == "dark"
        assert merged["header_color"] == "#006798"
        # reading does not write defaults
        assert s.query(JournalSetting).filter(JournalSetting.section == "appearance").count() == 1


def test_settings_are_per_journal(app):
    with session_scope(app) as s:
        s.add(Journal(path="other", title="Other", enabled=True))
    with session_scope(app) as s:
        save_setting(s, 1, "custom", "a", 1, actor=None)
        save_setting(s, 2, "custom", "a", 2, actor=None)
    with session_scope(app) as s:
        assert load_section_settings(s, 1, "custom") == {"a": 1}
        assert load_section_settings(s, 2, "custom") == {"a": 2}
