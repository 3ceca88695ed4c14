from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.ojsadmin.db import db_session
from app.ojsadmin.models import User
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.plugins.service import PLUGINS_SECTION, plugin_groups, set_journal_plugin, set_site_plugin
from app.ojsadmin.modules.site_settings.service import load_site_section
from app.ojsadmin.rbac import require_journal_permission, require_permission
from app.ojsadmin.utils import form_bool

bp = Blueprint("plugins", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


# ---------- Site-wide ----------
@bp.get("/site-settings/plugins")
@require_permission("site_settings.view")
def site_plugins():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    groups = plugin_groups(load_site_section(s, PLUGINS_SECTION), search=search)
    return render_template("admin/site_settings/plugins.html", groups=groups, search=search)


@bp.post("/site-settings/plugins/<plugin_key>/toggle")
@require_permission("site_settings.edit")
def site_plugin_toggle(plugin_key: str):
    s = db_session()
    u = _current_user()
    enabled = form_bool(request.form.get("enabled"))
    try:
        set_site_plugin(s, plugin_key, enabled, actor=u)
    except ValueError:
        abort(404)
    s.commit()
    flash(f"Plugin {'enabled' if enabled else 'disabled'}.", "success")
    return redirect(url_for("plugins.site_plugins"))


# ---------- Per journal (listed on the wizard's plugins tab) ----------
@bp.post("/journals/<int:journal_id>/plugins/<plugin_key>/toggle")
@require_journal_permission("journal_settings.edit")
def journal_plugin_toggle(journal_id: int, plugin_key: str):
    s = db_session()
    u = _current_user()
    journal = s.get(Journal, journal_id)
    if not journal:
        abort(404)
    enabled = form_bool(request.form.get("enabled"))
    try:
        set_journal_plugin(s, journal.id, plugin_key, enabled, actor=u)
    except ValueError:
        abort(404)
    s.commit()
    flash(f"Plugin {'enabled' if enabled else 'disabled'}.", "success")
    return redirect(url_for("journals.wizard_get", journal_id=journal.id, tab="plugins"))
