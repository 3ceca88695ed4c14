from __future__ import annotations

import copy
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.ojsadmin.audit import record_event
from app.ojsadmin.constants import (
    APP_NAME,
    DEFAULT_LOCALE,
    INSTALLED_LOCALES,
    MIN_PASSWORD_LENGTH_FLOOR,
    SIDEBAR_BLOCKS,
    THEMES,
)
from app.ojsadmin.modules.site_settings.models import SiteSetting
from app.ojsadmin.utils import decode_setting_value, encode_setting_value, infer_setting_type, is_valid_color, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from werkzeug.datastructures import MultiDict
    from app.ojsadmin.models import User

SITE_DEFAULTS: dict[str, dict[str, Any]] = {
    "setup": {
        "site_name": APP_NAME,
        "min_password_length": MIN_PASSWORD_LENGTH_FLOOR,
    },
    "languages": {
        "enabled_locales": [DEFAULT_LOCALE],
        "default_locale": DEFAULT_LOCALE,
    },
    "bulk_emails": {
        # journal ids allowed to send bulk email
        "allowed_journal_ids": [],
    },
    "appearance": {
        "logo_key": None,
        "stylesheet_key": None,
        "page_footer": "",
        "sidebar": [],
    },
    "theme": {
        "theme_id": "default",
        "header_bg_color": "#002C40",
        "primary_color": "#006798",
        "secondary_color": "#002C40",
        "footer_text": "",
    },
    "plugins": {},
}


def load_site_section(s: "Session", section: str) -> dict[str, Any]:
    """Stored values for a site section layered over its defaults."""
    values = copy.deepcopy(SITE_DEFAULTS.get(section, {}))
    rows = s.query(SiteSetting).filter(SiteSetting.section == section).all()
    for row in rows:
        values[row.setting_name] = decode_setting_value(row.setting_value, row.setting_type)
    return values


def load_site_setting(s: "Session", section: str, name: str, default: Any = None) -> Any:
    return load_site_section(s, section).get(name, default)


def save_site_section(s: "Session", section: str, values: dict[str, Any], *, actor: "User | None") -> dict[str, str]:
    existing = {row.setting_name: row for row in s.query(SiteSetting).filter(SiteSetting.section == section).all()}
    now = datetime.utcnow()
    types = {}
    for name, value in values.items():
        setting_type = infer_setting_type(value)
        row = existing.get(name)
        if row is None:
            row = SiteSetting(section=section, setting_name=name)
            s.add(row)
        row.setting_value = encode_setting_value(value, setting_type)
        row.setting_type = setting_type
        row.updated_at = now
        row.updated_by_user_id = actor.id if actor else None
        types[name] = setting_type
    s.flush()
    record_event(
        s,
        actor=actor,
        action="site_settings.save",
        entity_type="SiteSetting",
        entity_id=section,
        metadata={"section": section, "types": types},
    )
    return types


def save_site_setting(s: "Session", section: str, name: str, value: Any, *, actor: "User | None") -> str:
    return save_site_section(s, section, {name: value}, actor=actor)[name]


def enabled_locales(s: "Session") -> dict[str, str]:
    """Enabled site locales (code -> name), installed order."""
    codes = load_site_setting(s, "languages", "enabled_locales") or [DEFAULT_LOCALE]
    return {code: name for code, name in INSTALLED_LOCALES.items() if code in codes}


def min_password_length(s: "Session") -> int:
    value = load_site_setting(s, "setup", "min_password_length", MIN_PASSWORD_LENGTH_FLOOR)
    try:
        return max(int(value), MIN_PASSWORD_LENGTH_FLOOR)
    except (TypeError, ValueError):
        return MIN_PASSWORD_LENGTH_FLOOR


# ---------- Form parsing ----------

def parse_setup_form(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    errors = []
    site_name = (form.get("site_name") or "").strip()
    if not site_name:
        errors.append("Site name is required.")
    min_len = parse_int(form.get("min_password_length"))
    if min_len is None:
        errors.append("Minimum password length must be a whole number.")
    elif min_len < MIN_PASSWORD_LENGTH_FLOOR:
        errors.append(f"Minimum password length must be at least {MIN_PASSWORD_LENGTH_FLOOR}.")
    return {"site_name": site_name, "min_password_length": min_len}, errors


def parse_languages_form(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    errors = []
    picked = form.getlist("enabled_locales")
    codes = [code for code in INSTALLED_LOCALES if code in picked]
    default_locale = (form.get("default_locale") or "").strip()
    if not codes:
        errors.append("At least one language must be enabled.")
    if default_locale not in INSTALLED_LOCALES:
        errors.append("Unknown primary locale.")
    elif default_locale not in codes:
        errors.append("The primary locale must be one of the enabled languages.")
    return {"enabled_locales": codes, "default_locale": default_locale}, errors


def parse_bulk_emails_form(form: "MultiDict", journal_ids: list[int]) -> dict[str, Any]:
    picked = {parse_int(v) for v in form.getlist("allow_journal")}
    return {"allowed_journal_ids": [jid for jid in journal_ids if jid in picked]}


def parse_appearance_form(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    # keep the submitted order, drop unknown blocks
    sidebar = []
    for block in form.getlist("sidebar"):
        if block in SIDEBAR_BLOCKS and block not in sidebar:
            sidebar.append(block)
    return {"page_footer": (form.get("page_footer") or "").strip(), "sidebar": sidebar}, []


def parse_theme_form(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    errors = []
    values = {
        "theme_id": (form.get("theme_id") or "default").strip(),
        "header_bg_color": (form.get("header_bg_color") or "").strip(),
        "primary_color": (form.get("primary_color") or "").strip(),
        "secondary_color": (form.get("secondary_color") or "").strip(),
        "footer_text": (form.get("footer_text") or "").strip(),
    }
    if values["theme_id"] not in THEMES:
        errors.append("Unknown theme.")
    for key, label in (
        ("header_bg_color", "Header background colour"),
        ("primary_color", "Primary colour"),
        ("secondary_color", "Secondary colour"),
    ):
        if not is_valid_color(values[key]):
            errors.append(f"{label} must be a hex colour like #006798.")
    return values, errors


def journal_allows_bulk_email(s: "Session", journal_id: int) -> bool:
    return journal_id in (load_site_setting(s, "bulk_emails", "allowed_journal_ids") or [])
