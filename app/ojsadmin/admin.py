from datetime import date, datetime, time, timedelta

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for
from sqlalchemy import text
from werkzeug.security import check_password_hash, generate_password_hash

from app.ojsadmin.audit import record_event
from app.ojsadmin.db import db_session
from app.ojsadmin.models import AuditEvent, User
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.site_settings.service import min_password_length
from app.ojsadmin.rbac import require_login, require_permission, user_role_assignments
from app.ojsadmin.storage import LocalStorage, S3Storage, storage_from_config
from app.ojsadmin.versioning import check_version, component_versions

bp = Blueprint("admin", __name__)


def _parse_date(s: str) -> date | None:
    s = (s or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _storage_status() -> dict:
    storage = storage_from_config(current_app.config)
    status = {"backend": current_app.config.get("STORAGE_BACKEND") or "local", "configured": False, "error": None}
    if isinstance(storage, S3Storage):
        missing = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not current_app.config.get(key)
        ]
        status["configured"] = not missing
        if missing:
            status["error"] = f"Missing: {', '.join(missing)}"
    elif isinstance(storage, LocalStorage):
        status["configured"] = True
        status["root"] = str(storage.root)
    return status


@bp.get("/")
@require_permission("admin.view")
def index():
    s = db_session()
    journal_count = s.query(Journal).count()
    user_count = s.query(User).count()
    return render_template("admin/index.html", journal_count=journal_count, user_count=user_count)


@bp.get("/me")
@require_login
def me():
    user = _current_user()
    perm_keys = set()
    for r in user.roles or []:
        perm_keys.update(p.key for p in r.permissions or [])
    for jr in user.journal_roles or []:
        perm_keys.update(p.key for p in jr.role.permissions or [])
    return render_template(
        "admin/me.html",
        user=user,
        assignments=user_role_assignments(user),
        perm_keys=sorted(perm_keys),
    )


@bp.post("/me")
@require_login
def me_update():
    """Update the current user's display name and, optionally, password."""
    s = db_session()
    user = _current_user()

    name = (request.form.get("name") or "").strip()
    new_password = request.form.get("new_password") or ""
    current_password = request.form.get("current_password") or ""

    if not name:
        flash("Name is required.", "danger")
        return redirect(url_for("admin.me"))
    changes: dict = {}
    if name != user.name:
        changes["name"] = {"old": user.name, "new": name}
        user.name = name
    if new_password:
        min_len = min_password_length(s)
        if not check_password_hash(user.password_hash, current_password):
            flash("Current password is incorrect.", "danger")
            return redirect(url_for("admin.me"))
        if len(new_password) < min_len:
            flash(f"Password must be at least {min_len} characters.", "danger")
            return redirect(url_for("admin.me"))
        user.password_hash = generate_password_hash(new_password)
        changes["password"] = "changed"

    if changes:
        record_event(
            s,
            actor=user,
            action="user.update_profile",
            entity_type="User",
            entity_id=str(user.id),
            metadata={"changes": changes},
        )
    s.commit()
    flash("Profile updated.", "success")
    return redirect(url_for("admin.me"))


@bp.get("/audit")
@require_permission("admin.view")
def audit_list():
    """
    Audit trail (last 200 events) with filters:
    - action (contains)
    - actor_email (contains)
    - date range (YYYY-MM-DD, inclusive)
    """
    s = db_session()
    action = (request.args.get("action") or "").strip()
    actor_email = (request.args.get("actor_email") or "").strip()
    date_from = _parse_date(request.args.get("date_from") or "")
    date_to = _parse_date(request.args.get("date_to") or "")

    if (request.args.get("date_from") or "").strip() and not date_from:
        flash("date_from must be YYYY-MM-DD", "danger")
    if (request.args.get("date_to") or "").strip() and not date_to:
        flash("date_to must be YYYY-MM-DD", "danger")

    q = s.query(AuditEvent)
    if action:
        q = q.filter(AuditEvent.action.like(f"%{action}%"))
    if actor_email:
        q = q.filter(AuditEvent.actor_user_email.like(f"%{actor_email.lower()}%"))
    if date_from:
        q = q.filter(AuditEvent.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        q = q.filter(AuditEvent.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

    events = q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(200).all()
    return render_template(
        "admin/audit/list.html",
        events=events,
        action=action,
        actor_email=actor_email,
        date_from=request.args.get("date_from") or "",
        date_to=request.args.get("date_to") or "",
    )


@bp.get("/system-info")
@require_permission("admin.view")
def system_info():
    s = db_session()
    db_status = {"connected": False, "error": None, "dialect": s.get_bind().dialect.name}
    try:
        s.execute(text("SELECT 1"))
        db_status["connected"] = True
    except Exception as e:
        current_app.logger.warning("System info DB check failed: %s", e)
        db_status["error"] = str(e)[:200]

    return render_template(
        "admin/system_info.html",
        versions=component_versions(),
        version_info=check_version(current_app.config),
        db_status=db_status,
        storage_status=_storage_status(),
        env=current_app.config.get("ENV"),
    )
