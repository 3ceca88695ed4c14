from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.ojsadmin.audit import record_event
from app.ojsadmin.constants import BULK_EMAIL_ROLES, THEMES, TYPOGRAPHY_OPTIONS
from app.ojsadmin.utils import form_bool, is_valid_color, is_valid_email, is_valid_path, split_keywords

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from werkzeug.datastructures import MultiDict
    from app.ojsadmin.models import User
    from app.ojsadmin.modules.journals.models import Journal


WIZARD_TABS = ("settings", "plugins", "users")
WIZARD_SECTIONS = {
    "masthead": "Masthead",
    "contact": "Contact",
    "appearance": "Appearance",
    "languages": "Languages",
    "indexing": "Search Indexing",
    "emails": "Bulk Emails",
}

_ISSN_RE = re.compile(r"^\d{4}-\d{3}[\dXx]$")


def _clean(payload: dict, key: str) -> str:
    return (payload.get(key) or "").strip()


def validate_journal_payload(s: "Session", payload: dict, *, journal: "Journal | None" = None, require_masthead: bool = False) -> list[str]:
    """Validate journal create/masthead payload. Returns list of errors."""
    from app.ojsadmin.modules.journals.models import Journal

    errors = []
    if not _clean(payload, "title"):
        errors.append("Journal name is required.")
    path = _clean(payload, "path").lower()
    if not path:
        errors.append("Path is required.")
    elif not is_valid_path(path):
        errors.append("Path may only contain lowercase letters, numbers, hyphens and underscores (max 32).")
    else:
        q = s.query(Journal).filter(Journal.path == path)
        if journal is not None:
            q = q.filter(Journal.id != journal.id)
        if q.first():
            errors.append(f"Path '{path}' is already used by another journal.")
    if require_masthead:
        if not _clean(payload, "initials"):
            errors.append("Journal initials are required.")
        if not _clean(payload, "abbreviation"):
            errors.append("Journal abbreviation is required.")
    return errors


def create_journal(s: "Session", payload: dict, user: "User") -> "Journal":
    from app.ojsadmin.modules.journals.models import Journal

    now = datetime.utcnow()
    journal = Journal(
        title=_clean(payload, "title"),
        path=_clean(payload, "path").lower(),
        initials=_clean(payload, "initials") or None,
        abbreviation=_clean(payload, "abbreviation") or None,
        description=_clean(payload, "description") or None,
        enabled=form_bool(payload.get("enabled")),
        created_at=now,
        updated_at=now,
    )
    s.add(journal)
    s.flush()

    record_event(
        s,
        actor=user,
        action="journal.create",
        entity_type="Journal",
        entity_id=str(journal.id),
        metadata={"title": journal.title, "path": journal.path},
    )
    return journal


def update_masthead(s: "Session", journal: "Journal", payload: dict, user: "User") -> dict[str, Any]:
    """Apply masthead fields to the journal row. Returns the change set."""
    changes: dict[str, Any] = {}
    new_values = {
        "title": _clean(payload, "title"),
        "initials": _clean(payload, "initials") or None,
        "abbreviation": _clean(payload, "abbreviation") or None,
        "description": _clean(payload, "description") or None,
        "path": _clean(payload, "path").lower(),
        "enabled": form_bool(payload.get("enabled")),
    }
    for field, new in new_values.items():
        old = getattr(journal, field)
        if old != new:
            changes[field] = {"old": old, "new": new}
            setattr(journal, field, new)

    if changes:
        journal.updated_at = datetime.utcnow()
        record_event(
            s,
            actor=user,
            action="journal.edit",
            entity_type="Journal",
            entity_id=str(journal.id),
            metadata={"title": journal.title, "changes": changes},
        )
    return changes


def get_enabled_journal_by_path(s: "Session", path: str) -> "Journal | None":
    from app.ojsadmin.modules.journals.models import Journal

    return s.query(Journal).filter(Journal.path == path).filter(Journal.enabled.is_(True)).one_or_none()


# ---------- Wizard section forms ----------

def parse_masthead_settings(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    errors = []
    values = {
        "publisher": (form.get("publisher") or "").strip(),
        "online_issn": (form.get("online_issn") or "").strip().upper(),
        "print_issn": (form.get("print_issn") or "").strip().upper(),
    }
    for key, label in (("online_issn", "Online ISSN"), ("print_issn", "Print ISSN")):
        if values[key] and not _ISSN_RE.match(values[key]):
            errors.append(f"{label} must look like 1234-567X.")
    return values, errors


def parse_contact_settings(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    errors = []
    values = {
        "contact_name": (form.get("contact_name") or "").strip(),
        "contact_email": (form.get("contact_email") or "").strip().lower(),
        "contact_affiliation": (form.get("contact_affiliation") or "").strip(),
        "support_name": (form.get("support_name") or "").strip(),
        "support_email": (form.get("support_email") or "").strip().lower(),
    }
    if values["contact_email"] and not is_valid_email(values["contact_email"]):
        errors.append("Principal contact email is not a valid email address.")
    if values["support_email"] and not is_valid_email(values["support_email"]):
        errors.append("Technical support email is not a valid email address.")
    return values, errors


def parse_appearance_settings(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    errors = []
    values = {
        "theme": (form.get("theme") or "default").strip(),
        "typography": (form.get("typography") or "Noto Sans").strip(),
        "header_color": (form.get("header_color") or "").strip(),
        "show_summary": form_bool(form.get("show_summary")),
        "show_header_image": form_bool(form.get("show_header_image")),
    }
    if values["theme"] not in THEMES:
        errors.append("Unknown theme.")
    if values["typography"] not in TYPOGRAPHY_OPTIONS:
        errors.append("Unknown typography option.")
    if not is_valid_color(values["header_color"]):
        errors.append("Header colour must be a hex colour like #006798.")
    return values, errors


def parse_language_settings(form: "MultiDict", available_locales: dict[str, str]) -> tuple[dict[str, Any], list[str]]:
    errors = []
    locales: dict[str, dict[str, bool]] = {}
    for code in available_locales:
        flags = {
            "ui": form_bool(form.get(f"locale_{code}_ui")),
            "forms": form_bool(form.get(f"locale_{code}_forms")),
            "submissions": form_bool(form.get(f"locale_{code}_submissions")),
        }
        if any(flags.values()):
            locales[code] = flags
    primary = (form.get("primary_locale") or "").strip()
    if primary not in available_locales:
        errors.append("Primary locale must be one of the site's enabled languages.")
    elif not locales.get(primary, {}).get("ui"):
        errors.append("The primary locale must be enabled for the user interface.")
    return {"primary_locale": primary, "locales": locales}, errors


def parse_indexing_settings(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    values = {
        "search_description": (form.get("search_description") or "").strip(),
        "custom_tags": (form.get("custom_tags") or "").strip(),
        "keywords": split_keywords(form.get("keywords")),
        "include_supplemental": form_bool(form.get("include_supplemental")),
    }
    errors = []
    if len(values["search_description"]) > 500:
        errors.append("Search description must be 500 characters or fewer.")
    return values, errors


def parse_email_settings(form: "MultiDict") -> tuple[dict[str, Any], list[str]]:
    picked = [r for r in form.getlist("disable_bulk_email_roles") if r in BULK_EMAIL_ROLES]
    # keep canonical order
    roles = [r for r in BULK_EMAIL_ROLES if r in picked]
    return {"disable_bulk_email_roles": roles}, []
