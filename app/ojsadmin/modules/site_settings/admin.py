from __future__ import annotations

import logging

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from app.ojsadmin.constants import INSTALLED_LOCALES, SIDEBAR_BLOCKS, THEMES
from app.ojsadmin.db import db_session
from app.ojsadmin.models import User
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.site_settings.service import (
    load_site_section,
    parse_appearance_form,
    parse_bulk_emails_form,
    parse_languages_form,
    parse_setup_form,
    parse_theme_form,
    save_site_section,
)
from app.ojsadmin.rbac import require_permission
from app.ojsadmin.storage import build_asset_key, storage_from_config

bp = Blueprint("site_settings", __name__)
logger = logging.getLogger(__name__)

LOGO_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")
STYLESHEET_EXTENSIONS = (".css",)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _flash_errors(errors: list[str]) -> None:
    for e in errors:
        flash(e, "danger")


@bp.get("/")
@require_permission("site_settings.view")
def index():
    return redirect(url_for("site_settings.setup_get"))


# ---------- Setup: settings ----------
@bp.get("/setup")
@require_permission("site_settings.view")
def setup_get():
    s = db_session()
    return render_template("admin/site_settings/setup.html", values=load_site_section(s, "setup"))


@bp.post("/setup")
@require_permission("site_settings.edit")
def setup_post():
    s = db_session()
    values, errors = parse_setup_form(request.form)
    if errors:
        _flash_errors(errors)
        return redirect(url_for("site_settings.setup_get"))
    save_site_section(s, "setup", values, actor=_current_user())
    s.commit()
    flash("Site settings saved.", "success")
    return redirect(url_for("site_settings.setup_get"))


# ---------- Setup: languages ----------
@bp.get("/languages")
@require_permission("site_settings.view")
def languages_get():
    s = db_session()
    return render_template(
        "admin/site_settings/languages.html",
        values=load_site_section(s, "languages"),
        installed=INSTALLED_LOCALES,
    )


@bp.post("/languages")
@require_permission("site_settings.edit")
def languages_post():
    s = db_session()
    values, errors = parse_languages_form(request.form)
    if errors:
        _flash_errors(errors)
        return redirect(url_for("site_settings.languages_get"))
    save_site_section(s, "languages", values, actor=_current_user())
    s.commit()
    flash("Language settings saved.", "success")
    return redirect(url_for("site_settings.languages_get"))


# ---------- Setup: bulk emails ----------
@bp.get("/bulk-emails")
@require_permission("site_settings.view")
def bulk_emails_get():
    s = db_session()
    journals = s.query(Journal).order_by(Journal.title.asc()).all()
    allowed = set(load_site_section(s, "bulk_emails").get("allowed_journal_ids") or [])
    return render_template("admin/site_settings/bulk_emails.html", journals=journals, allowed=allowed)


@bp.post("/bulk-emails")
@require_permission("site_settings.edit")
def bulk_emails_post():
    s = db_session()
    journal_ids = [jid for (jid,) in s.query(Journal.id).order_by(Journal.title.asc()).all()]
    values = parse_bulk_emails_form(request.form, journal_ids)
    save_site_section(s, "bulk_emails", values, actor=_current_user())
    s.commit()
    flash("Bulk email settings saved.", "success")
    return redirect(url_for("site_settings.bulk_emails_get"))


# ---------- Appearance: setup ----------
@bp.get("/appearance")
@require_permission("site_settings.view")
def appearance_get():
    s = db_session()
    return render_template(
        "admin/site_settings/appearance.html",
        values=load_site_section(s, "appearance"),
        sidebar_blocks=SIDEBAR_BLOCKS,
    )


def _store_upload(field: str, allowed_ext: tuple[str, ...], label: str) -> tuple[str | None, str | None]:
    """Save an uploaded file under site/. Returns (storage_key, error)."""
    f = request.files.get(field)
    if not f or not f.filename:
        return None, None
    if not f.filename.lower().endswith(allowed_ext):
        return None, f"{label} must be one of: {', '.join(allowed_ext)}"
    key = build_asset_key("site", f.filename)
    storage = storage_from_config(current_app.config)
    storage.put_bytes(key, f.read(), content_type=f.mimetype or "application/octet-stream")
    logger.info("Stored site %s key=%s", field, key)
    return key, None


@bp.post("/appearance")
@require_permission("site_settings.edit")
def appearance_post():
    s = db_session()
    values, errors = parse_appearance_form(request.form)

    logo_key, err = _store_upload("logo", LOGO_EXTENSIONS, "Logo")
    if err:
        errors.append(err)
    stylesheet_key, err = _store_upload("stylesheet", STYLESHEET_EXTENSIONS, "Stylesheet")
    if err:
        errors.append(err)
    if errors:
        _flash_errors(errors)
        return redirect(url_for("site_settings.appearance_get"))

    if logo_key:
        values["logo_key"] = logo_key
    if stylesheet_key:
        values["stylesheet_key"] = stylesheet_key
    if request.form.get("remove_logo"):
        values["logo_key"] = None
    if request.form.get("remove_stylesheet"):
        values["stylesheet_key"] = None

    save_site_section(s, "appearance", values, actor=_current_user())
    s.commit()
    flash("Appearance saved.", "success")
    return redirect(url_for("site_settings.appearance_get"))


# ---------- Appearance: theme ----------
@bp.get("/theme")
@require_permission("site_settings.view")
def theme_get():
    s = db_session()
    return render_template("admin/site_settings/theme.html", values=load_site_section(s, "theme"), themes=THEMES)


@bp.post("/theme")
@require_permission("site_settings.edit")
def theme_post():
    s = db_session()
    values, errors = parse_theme_form(request.form)
    if errors:
        _flash_errors(errors)
        return redirect(url_for("site_settings.theme_get"))
    save_site_section(s, "theme", values, actor=_current_user())
    s.commit()
    flash("Theme saved.", "success")
    return redirect(url_for("site_settings.theme_get"))
