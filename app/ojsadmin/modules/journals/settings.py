"""
Per-journal, per-section settings store.

Settings are loose name/value pairs. The type tag is inferred when a value is
written and used to decode it on read; nothing else is validated here.
Writes are one upsert per key; keys that are not submitted are left alone.
"""
from __future__ import annotations

import copy
import logging
import math
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.ojsadmin.audit import record_event
from app.ojsadmin.constants import DEFAULT_LOCALE
from app.ojsadmin.modules.journals.models import JournalSetting
from app.ojsadmin.utils import decode_setting_value, encode_setting_value, infer_setting_type, is_valid_section_name

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ojsadmin.models import User

logger = logging.getLogger(__name__)

MAX_SETTING_NAME_LENGTH = 255

# Seeded on first read of a section that has no stored rows yet.
SECTION_DEFAULTS: dict[str, dict[str, Any]] = {
    "masthead": {
        "publisher": "",
        "online_issn": "",
        "print_issn": "",
    },
    "contact": {
        "contact_name": "",
        "contact_email": "",
        "contact_affiliation": "",
        "support_name": "",
        "support_email": "",
    },
    "appearance": {
        "theme": "default",
        "typography": "Noto Sans",
        "header_color": "#006798",
        "show_summary": False,
        "show_header_image": False,
    },
    "languages": {
        "primary_locale": DEFAULT_LOCALE,
        "locales": {DEFAULT_LOCALE: {"ui": True, "forms": True, "submissions": True}},
    },
    "indexing": {
        "search_description": "",
        "custom_tags": "",
        "keywords": [],
        "include_supplemental": True,
    },
    "emails": {
        "disable_bulk_email_roles": [],
    },
    "plugins": {},
}

KNOWN_SECTIONS = tuple(SECTION_DEFAULTS)


def validate_section_name(section: str | None) -> str:
    section = (section or "").strip()
    if not is_valid_section_name(section):
        raise ValueError(f"Invalid settings section: {section!r}")
    return section


def _has_non_finite(value: Any) -> bool:
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, dict):
        return any(_has_non_finite(v) for v in value.values())
    if isinstance(value, list):
        return any(_has_non_finite(v) for v in value)
    return False


def validate_settings_payload(settings: Any) -> list[str]:
    """Shape check for a settings mapping. Returns list of errors."""
    if not isinstance(settings, dict):
        return ["Settings data is required"]
    errors = []
    for key in settings:
        if not isinstance(key, str) or not key.strip():
            errors.append("Setting names must be non-empty strings.")
        elif len(key) > MAX_SETTING_NAME_LENGTH:
            errors.append(f"Setting name too long: {key[:32]}...")
        elif _has_non_finite(settings[key]):
            errors.append(f"Setting {key!r} must not be NaN or Infinity.")
    return errors


def _rows(s: "Session", journal_id: int, section: str) -> list[JournalSetting]:
    return (
        s.query(JournalSetting)
        .filter(JournalSetting.journal_id == journal_id)
        .filter(JournalSetting.section == section)
        .order_by(JournalSetting.setting_name.asc())
        .all()
    )


def load_section_settings(s: "Session", journal_id: int, section: str) -> dict[str, Any]:
    """Decoded settings for one (journal, section), keyed by setting name."""
    return {row.setting_name: decode_setting_value(row.setting_value, row.setting_type) for row in _rows(s, journal_id, section)}


def load_setting(s: "Session", journal_id: int, section: str, name: str, default: Any = None) -> Any:
    row = (
        s.query(JournalSetting)
        .filter(JournalSetting.journal_id == journal_id)
        .filter(JournalSetting.section == section)
        .filter(JournalSetting.setting_name == name)
        .one_or_none()
    )
    if row is None:
        return default
    return decode_setting_value(row.setting_value, row.setting_type)


def _upsert(
    s: "Session",
    existing: dict[str, JournalSetting],
    journal_id: int,
    section: str,
    name: str,
    value: Any,
    user_id: int | None,
    now: datetime,
) -> str:
    setting_type = infer_setting_type(value)
    encoded = encode_setting_value(value, setting_type)
    row = existing.get(name)
    if row is None:
        row = JournalSetting(journal_id=journal_id, section=section, setting_name=name)
        s.add(row)
        existing[name] = row
    row.setting_value = encoded
    row.setting_type = setting_type
    row.updated_at = now
    row.updated_by_user_id = user_id
    return setting_type


def save_section_settings(
    s: "Session",
    journal_id: int,
    section: str,
    values: dict[str, Any],
    *,
    actor: "User | None",
) -> dict[str, str]:
    """
    Upsert every submitted key for (journal, section).
    Returns {name: inferred_type} for the keys written.
    """
    existing = {row.setting_name: row for row in _rows(s, journal_id, section)}
    now = datetime.utcnow()
    user_id = actor.id if actor else None
    written: dict[str, str] = {}
    for name, value in values.items():
        written[name] = _upsert(s, existing, journal_id, section, name, value, user_id, now)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="journal_settings.save",
        entity_type="Journal",
        entity_id=str(journal_id),
        metadata={"section": section, "types": written},
    )
    logger.info("Saved %d setting(s) journal_id=%s section=%s", len(written), journal_id, section)
    return written


def save_setting(s: "Session", journal_id: int, section: str, name: str, value: Any, *, actor: "User | None") -> str:
    return save_section_settings(s, journal_id, section, {name: value}, actor=actor)[name]


def ensure_section_defaults(s: "Session", journal_id: int, section: str) -> bool:
    """
    Seed a known section's defaults the first time it is read.
    Returns True when rows were written.
    """
    defaults = SECTION_DEFAULTS.get(section)
    if not defaults:
        return False
    has_rows = (
        s.query(JournalSetting.id)
        .filter(JournalSetting.journal_id == journal_id)
        .filter(JournalSetting.section == section)
        .first()
    )
    if has_rows:
        return False
    existing: dict[str, JournalSetting] = {}
    now = datetime.utcnow()
    for name, value in copy.deepcopy(defaults).items():
        _upsert(s, existing, journal_id, section, name, value, None, now)
    s.flush()
    logger.debug("Seeded default settings journal_id=%s section=%s", journal_id, section)
    return True


def section_with_defaults(s: "Session", journal_id: int, section: str) -> dict[str, Any]:
    """Stored values layered over the section defaults (read-only; nothing is written)."""
    merged = copy.deepcopy(SECTION_DEFAULTS.get(section, {}))
    merged.update(load_section_settings(s, journal_id, section))
    return merged
