from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.ojsadmin.constants import ROLE_NAMES, ROLE_PATHS
from app.ojsadmin.db import db_session
from app.ojsadmin.models import User
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.site_settings.service import min_password_length
from app.ojsadmin.modules.users.service import (
    assign_journal_role,
    create_user,
    delete_user,
    list_users,
    remove_journal_role,
    role_paths,
    set_user_active,
    update_user,
    validate_user_payload,
)
from app.ojsadmin.rbac import (
    journal_ids_with_permission,
    require_journal_permission,
    require_permission,
    user_has_journal_permission,
)
from app.ojsadmin.utils import parse_int

bp = Blueprint("users", __name__)

# Journal-scoped roles a manager can hand out ("admin" is site-wide only).
ASSIGNABLE_ROLES = tuple(r for r in ROLE_PATHS if r != "admin")


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _scope(permission_key: str) -> set[int] | None:
    return journal_ids_with_permission(_current_user(), permission_key)


def _get_user_in_scope_or_404(s, user_id: int) -> User:
    """A journal-scoped manager only sees users holding a role in their journals."""
    user = s.get(User, user_id)
    if not user:
        abort(404)
    scope = _scope("users.manage")
    if scope is not None and not any(jr.journal_id in scope for jr in user.journal_roles):
        abort(404)
    return user


def _manageable_journals(s) -> list[Journal]:
    scope = _scope("users.manage")
    q = s.query(Journal)
    if scope is not None:
        q = q.filter(Journal.id.in_(scope))
    return q.order_by(Journal.title.asc()).all()


def _user_payload() -> dict:
    return {
        "email": request.form.get("email"),
        "name": request.form.get("name"),
        "password": request.form.get("password"),
    }


# ---------- Users & Roles ----------
@bp.get("/manager/users")
@require_permission("users.view")
def users_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    role_filter = (request.args.get("role") or "").strip()
    status_filter = (request.args.get("status") or "").strip()
    scope = _scope("users.view")

    users = list_users(s, search=search, role_filter=role_filter, status_filter=status_filter, journal_ids=scope)
    return render_template(
        "admin/users/list.html",
        users=users,
        user_roles={u.id: role_paths(u, scope) for u in users},
        roles=[(r, ROLE_NAMES[r]) for r in ROLE_PATHS],
        search=search,
        role_filter=role_filter,
        status_filter=status_filter,
    )


@bp.get("/manager/users/new")
@require_permission("users.manage")
def users_new_get():
    s = db_session()
    return render_template(
        "admin/users/new.html",
        journals=_manageable_journals(s),
        roles=[(r, ROLE_NAMES[r]) for r in ASSIGNABLE_ROLES],
        min_password_length=min_password_length(s),
    )


@bp.post("/manager/users/new")
@require_permission("users.manage")
def users_new_post():
    s = db_session()
    u = _current_user()
    payload = _user_payload()

    errors = validate_user_payload(s, payload, min_password_length=min_password_length(s))
    journal_id = parse_int(request.form.get("journal_id"))
    role = (request.form.get("role") or "").strip()
    if journal_id is not None:
        if role not in ASSIGNABLE_ROLES:
            errors.append("Pick a role for the journal.")
        elif not user_has_journal_permission(u, journal_id, "users.manage"):
            errors.append("You cannot assign roles in that journal.")
    elif _scope("users.manage") is not None:
        # journal-scoped managers can only create users inside their journals
        errors.append("Pick a journal for the new user.")
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("users.users_new_get"))

    user = create_user(s, payload, u)
    if journal_id is not None:
        assign_journal_role(s, user, journal_id, role, u)
    s.commit()
    flash("User created.", "success")
    return redirect(url_for("users.users_edit_get", user_id=user.id))


@bp.get("/manager/users/<int:user_id>/edit")
@require_permission("users.manage")
def users_edit_get(user_id: int):
    s = db_session()
    user = _get_user_in_scope_or_404(s, user_id)
    journals = _manageable_journals(s)
    visible = {j.id for j in journals}
    return render_template(
        "admin/users/edit.html",
        user=user,
        journal_roles=[jr for jr in user.journal_roles if jr.journal_id in visible],
        journals=journals,
        roles=[(r, ROLE_NAMES[r]) for r in ASSIGNABLE_ROLES],
        min_password_length=min_password_length(s),
    )


@bp.post("/manager/users/<int:user_id>/edit")
@require_permission("users.manage")
def users_edit_post(user_id: int):
    s = db_session()
    u = _current_user()
    user = _get_user_in_scope_or_404(s, user_id)
    payload = _user_payload()

    errors = validate_user_payload(s, payload, user=user, min_password_length=min_password_length(s))
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("users.users_edit_get", user_id=user.id))

    changes = update_user(s, user, payload, u)
    s.commit()
    flash("User updated." if changes else "No changes.", "success")
    return redirect(url_for("users.users_edit_get", user_id=user.id))


@bp.post("/manager/users/<int:user_id>/toggle-status")
@require_permission("users.manage")
def users_toggle_status(user_id: int):
    s = db_session()
    u = _current_user()
    user = _get_user_in_scope_or_404(s, user_id)
    try:
        set_user_active(s, user, not user.is_active, u)
    except ValueError as e:
        flash(str(e), "danger")
        return redirect(url_for("users.users_list"))
    s.commit()
    flash(f"User {'enabled' if user.is_active else 'disabled'}.", "success")
    return redirect(url_for("users.users_list"))


@bp.post("/manager/users/<int:user_id>/delete")
@require_permission("users.manage")
def users_delete(user_id: int):
    s = db_session()
    u = _current_user()
    user = _get_user_in_scope_or_404(s, user_id)
    try:
        delete_user(s, user, u)
    except ValueError as e:
        flash(str(e), "danger")
        return redirect(url_for("users.users_list"))
    s.commit()
    flash("User deleted.", "success")
    return redirect(url_for("users.users_list"))


@bp.post("/manager/users/<int:user_id>/roles/add")
@require_permission("users.manage")
def users_role_add(user_id: int):
    s = db_session()
    u = _current_user()
    user = _get_user_in_scope_or_404(s, user_id)
    journal_id = parse_int(request.form.get("journal_id"))
    role = (request.form.get("role") or "").strip()

    if journal_id is None or s.get(Journal, journal_id) is None:
        flash("Pick a journal.", "danger")
    elif role not in ASSIGNABLE_ROLES:
        flash("Pick a role.", "danger")
    elif not user_has_journal_permission(u, journal_id, "users.manage"):
        g.missing_permission = "users.manage"
        abort(403)
    else:
        assign_journal_role(s, user, journal_id, role, u)
        s.commit()
        flash(f"Role {ROLE_NAMES[role]} assigned.", "success")
    return redirect(url_for("users.users_edit_get", user_id=user.id))


@bp.post("/manager/users/<int:user_id>/roles/remove")
@require_permission("users.manage")
def users_role_remove(user_id: int):
    s = db_session()
    u = _current_user()
    user = _get_user_in_scope_or_404(s, user_id)
    journal_id = parse_int(request.form.get("journal_id"))
    role = (request.form.get("role") or "").strip()
    if journal_id is None or not user_has_journal_permission(u, journal_id, "users.manage"):
        g.missing_permission = "users.manage"
        abort(403)
    if remove_journal_role(s, user, journal_id, role, u):
        s.commit()
        flash("Role removed.", "success")
    else:
        flash("That role is not assigned.", "danger")
    return redirect(url_for("users.users_edit_get", user_id=user.id))


# ---------- Journal users panel (wizard "users" tab) ----------
@bp.post("/admin/journals/<int:journal_id>/users/add")
@require_journal_permission("users.manage")
def journal_user_add(journal_id: int):
    s = db_session()
    u = _current_user()
    journal = s.get(Journal, journal_id)
    if not journal:
        abort(404)
    back = url_for("journals.wizard_get", journal_id=journal.id, tab="users")

    email = (request.form.get("email") or "").strip().lower()
    role = (request.form.get("role") or "").strip()
    user = s.query(User).filter(User.email == email).one_or_none() if email else None
    if user is None:
        flash("No user with that email.", "danger")
        return redirect(back)
    if role not in ASSIGNABLE_ROLES:
        flash("Pick a role.", "danger")
        return redirect(back)

    assign_journal_role(s, user, journal.id, role, u)
    s.commit()
    flash(f"{user.display_name} added as {ROLE_NAMES[role]}.", "success")
    return redirect(back)


@bp.post("/admin/journals/<int:journal_id>/users/<int:user_id>/remove")
@require_journal_permission("users.manage")
def journal_user_remove(journal_id: int, user_id: int):
    s = db_session()
    u = _current_user()
    user = s.get(User, user_id)
    if not user:
        abort(404)
    role = (request.form.get("role") or "").strip()
    if remove_journal_role(s, user, journal_id, role, u):
        s.commit()
        flash("Role removed.", "success")
    else:
        flash("That role is not assigned.", "danger")
    return redirect(url_for("journals.wizard_get", journal_id=journal_id, tab="users"))
