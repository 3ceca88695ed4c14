from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.ojsadmin.constants import BULK_EMAIL_ROLES, ROLE_NAMES, ROLE_PATHS, THEMES, TYPOGRAPHY_OPTIONS
from app.ojsadmin.db import db_session
from app.ojsadmin.models import User
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.journals.service import (
    WIZARD_SECTIONS,
    WIZARD_TABS,
    create_journal,
    parse_appearance_settings,
    parse_contact_settings,
    parse_email_settings,
    parse_indexing_settings,
    parse_language_settings,
    parse_masthead_settings,
    update_masthead,
    validate_journal_payload,
)
from app.ojsadmin.modules.journals.settings import save_section_settings, section_with_defaults
from app.ojsadmin.modules.plugins.service import PLUGINS_SECTION, plugin_groups
from app.ojsadmin.modules.site_settings.service import enabled_locales, journal_allows_bulk_email
from app.ojsadmin.modules.users.service import journal_members
from app.ojsadmin.rbac import require_journal_permission, require_permission

bp = Blueprint("journals", __name__)

_SECTION_PARSERS = {
    "masthead": parse_masthead_settings,
    "contact": parse_contact_settings,
    "appearance": parse_appearance_settings,
    "indexing": parse_indexing_settings,
    "emails": parse_email_settings,
}


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _get_journal_or_404(s, journal_id: int) -> Journal:
    journal = s.get(Journal, journal_id)
    if not journal:
        abort(404)
    return journal


def _journal_payload() -> dict:
    return {
        "title": request.form.get("title"),
        "path": request.form.get("path"),
        "initials": request.form.get("initials"),
        "abbreviation": request.form.get("abbreviation"),
        "description": request.form.get("description"),
        "enabled": request.form.get("enabled"),
    }


# ---------- Hosted journals ----------
@bp.get("/journals")
@require_permission("journals.manage")
def journals_list():
    s = db_session()
    journals = s.query(Journal).order_by(Journal.title.asc()).all()
    return render_template("admin/journals/list.html", journals=journals)


@bp.get("/journals/new")
@require_permission("journals.manage")
def journals_new_get():
    return render_template("admin/journals/new.html")


@bp.post("/journals/new")
@require_permission("journals.manage")
def journals_new_post():
    s = db_session()
    u = _current_user()
    payload = _journal_payload()

    errors = validate_journal_payload(s, payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("journals.journals_new_get"))

    journal = create_journal(s, payload, u)
    s.commit()
    flash("Journal created.", "success")
    return redirect(url_for("journals.wizard_get", journal_id=journal.id))


# ---------- Settings wizard ----------
@bp.get("/journals/<int:journal_id>/settings/wizard")
@require_journal_permission("journal_settings.view")
def wizard_get(journal_id: int):
    s = db_session()
    journal = _get_journal_or_404(s, journal_id)

    tab = (request.args.get("tab") or "settings").strip()
    if tab not in WIZARD_TABS:
        tab = "settings"
    section = (request.args.get("section") or "masthead").strip()
    if section not in WIZARD_SECTIONS:
        section = "masthead"

    ctx: dict = {
        "journal": journal,
        "tab": tab,
        "section": section,
        "sections": WIZARD_SECTIONS,
    }
    if tab == "settings":
        ctx["values"] = section_with_defaults(s, journal.id, section)
        ctx["themes"] = THEMES
        ctx["typography_options"] = TYPOGRAPHY_OPTIONS
        ctx["locales"] = enabled_locales(s)
        ctx["bulk_email_roles"] = [(r, ROLE_NAMES[r]) for r in BULK_EMAIL_ROLES]
        ctx["bulk_email_allowed"] = journal_allows_bulk_email(s, journal.id)
    elif tab == "plugins":
        search = (request.args.get("q") or "").strip()
        ctx["search"] = search
        ctx["groups"] = plugin_groups(section_with_defaults(s, journal.id, PLUGINS_SECTION), search=search)
    else:
        ctx["members"] = journal_members(s, journal.id)
        ctx["roles"] = [(r, ROLE_NAMES[r]) for r in ROLE_PATHS if r != "admin"]

    return render_template("admin/journals/wizard.html", **ctx)


@bp.post("/journals/<int:journal_id>/settings/wizard")
@require_journal_permission("journal_settings.edit")
def wizard_post(journal_id: int):
    s = db_session()
    u = _current_user()
    journal = _get_journal_or_404(s, journal_id)

    section = (request.form.get("section") or request.args.get("section") or "").strip()
    if section not in WIZARD_SECTIONS:
        abort(400)
    back = url_for("journals.wizard_get", journal_id=journal.id, tab="settings", section=section)

    if section == "languages":
        values, errors = parse_language_settings(request.form, enabled_locales(s))
    else:
        values, errors = _SECTION_PARSERS[section](request.form)

    if section == "masthead":
        payload = _journal_payload()
        errors = validate_journal_payload(s, payload, journal=journal, require_masthead=True) + errors

    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(back)

    if section == "masthead":
        update_masthead(s, journal, payload, u)
    if section == "languages":
        journal.primary_locale = values["primary_locale"]
    save_section_settings(s, journal.id, section, values, actor=u)
    s.commit()

    flash(f"{WIZARD_SECTIONS[section]} settings saved.", "success")
    return redirect(back)

