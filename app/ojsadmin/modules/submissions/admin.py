from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.ojsadmin.constants import STAGE_LABELS, STATUS_LABELS
from app.ojsadmin.db import db_session
from app.ojsadmin.models import User
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.submissions.models import Issue, Submission
from app.ojsadmin.modules.submissions.service import (
    create_issue,
    journal_issues,
    manager_stats,
    publish_issue,
    schedulable_submissions,
    schedule_submission,
    set_issue_cover,
    stage_queue,
    unpublish_issue,
    validate_issue_payload,
)
from app.ojsadmin.rbac import journal_ids_with_permission, require_journal_permission, require_permission
from app.ojsadmin.storage import build_asset_key, storage_from_config
from app.ojsadmin.utils import parse_int

bp = Blueprint("submissions", __name__)

COVER_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp")


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _journals_in_scope(s, scope: set[int] | None) -> list[Journal]:
    q = s.query(Journal)
    if scope is not None:
        q = q.filter(Journal.id.in_(scope))
    return q.order_by(Journal.title.asc()).all()


def _narrow(scope: set[int] | None) -> set[int] | None:
    """Apply an optional ?journal_id= filter; ids outside the user's scope yield an empty set."""
    picked = parse_int(request.args.get("journal_id"))
    if picked is None:
        return scope
    if scope is None or picked in scope:
        return {picked}
    return set()


# ---------- Dashboard ----------
@bp.get("/")
@require_permission("manager.view")
def manager_dashboard():
    s = db_session()
    scope = journal_ids_with_permission(_current_user(), "manager.view")
    stats = manager_stats(s, _narrow(scope))
    return render_template(
        "manager/dashboard.html",
        stats=stats,
        journals=_journals_in_scope(s, scope),
        journal_id=parse_int(request.args.get("journal_id")),
        stage_labels=STAGE_LABELS,
        status_labels=STATUS_LABELS,
    )


def _queue_page(permission_key: str, stage: str, title: str):
    s = db_session()
    scope = journal_ids_with_permission(_current_user(), permission_key)
    submissions = stage_queue(s, stage, _narrow(scope))
    return render_template(
        "manager/queue.html",
        title=title,
        submissions=submissions,
        journals=_journals_in_scope(s, scope),
        status_labels=STATUS_LABELS,
    )


# ---------- Role landing pages ----------
@bp.get("/copyediting")
@require_permission("queue.copyediting")
def copyeditor_queue():
    return _queue_page("queue.copyediting", "copyediting", "Copyediting")


@bp.get("/proofreading")
@require_permission("queue.production")
def proofreader_queue():
    return _queue_page("queue.production", "production", "Proofreading")


@bp.get("/subscriptions")
@require_permission("subscriptions.view")
def subscriptions_home():
    s = db_session()
    scope = journal_ids_with_permission(_current_user(), "subscriptions.view")
    journals = _journals_in_scope(s, scope)
    issue_counts = {
        j.id: s.query(Issue).filter(Issue.journal_id == j.id).filter(Issue.published_at.isnot(None)).count()
        for j in journals
    }
    return render_template("manager/subscriptions.html", journals=journals, issue_counts=issue_counts)


# ---------- Issues ----------
def _issue_or_404(s, journal_id: int, issue_id: int) -> Issue:
    issue = s.get(Issue, issue_id)
    if not issue or issue.journal_id != journal_id:
        abort(404)
    return issue


@bp.get("/journals/<int:journal_id>/issues")
@require_journal_permission("issues.manage")
def issues_list(journal_id: int):
    s = db_session()
    journal = s.get(Journal, journal_id)
    if not journal:
        abort(404)
    return render_template(
        "manager/issues.html",
        journal=journal,
        issues=journal_issues(s, journal.id),
        schedulable=schedulable_submissions(s, journal.id),
    )


@bp.post("/journals/<int:journal_id>/issues/new")
@require_journal_permission("issues.manage")
def issues_new_post(journal_id: int):
    s = db_session()
    u = _current_user()
    journal = s.get(Journal, journal_id)
    if not journal:
        abort(404)
    payload = {k: request.form.get(k) for k in ("title", "volume", "number", "year", "description")}
    errors = validate_issue_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("submissions.issues_list", journal_id=journal.id))
    issue = create_issue(s, journal.id, payload, u)
    s.commit()
    flash(f"Issue {issue.display_title} created.", "success")
    return redirect(url_for("submissions.issues_list", journal_id=journal.id))


@bp.post("/journals/<int:journal_id>/issues/<int:issue_id>/cover")
@require_journal_permission("issues.manage")
def issue_cover_upload(journal_id: int, issue_id: int):
    s = db_session()
    u = _current_user()
    issue = _issue_or_404(s, journal_id, issue_id)

    f = request.files.get("cover")
    if not f or not f.filename:
        flash("Please select an image to upload.", "danger")
        return redirect(url_for("submissions.issues_list", journal_id=journal_id))
    if not f.filename.lower().endswith(COVER_EXTENSIONS):
        flash(f"Cover must be one of: {', '.join(COVER_EXTENSIONS)}", "danger")
        return redirect(url_for("submissions.issues_list", journal_id=journal_id))

    key = build_asset_key(f"journals/{journal_id}/issues/{issue.id}", f.filename)
    storage = storage_from_config(current_app.config)
    storage.put_bytes(key, f.read(), content_type=f.mimetype or "application/octet-stream")
    set_issue_cover(s, issue, key, u)
    s.commit()
    flash("Cover image uploaded.", "success")
    return redirect(url_for("submissions.issues_list", journal_id=journal_id))


@bp.post("/journals/<int:journal_id>/issues/<int:issue_id>/publish")
@require_journal_permission("issues.manage")
def issue_publish(journal_id: int, issue_id: int):
    s = db_session()
    u = _current_user()
    issue = _issue_or_404(s, journal_id, issue_id)
    try:
        count = publish_issue(s, issue, u)
    except ValueError as e:
        flash(str(e), "danger")
        return redirect(url_for("submissions.issues_list", journal_id=journal_id))
    s.commit()
    flash(f"Issue published with {count} article(s).", "success")
    return redirect(url_for("submissions.issues_list", journal_id=journal_id))


@bp.post("/journals/<int:journal_id>/issues/<int:issue_id>/unpublish")
@require_journal_permission("issues.manage")
def issue_unpublish(journal_id: int, issue_id: int):
    s = db_session()
    u = _current_user()
    issue = _issue_or_404(s, journal_id, issue_id)
    try:
        unpublish_issue(s, issue, u)
    except ValueError as e:
        flash(str(e), "danger")
        return redirect(url_for("submissions.issues_list", journal_id=journal_id))
    s.commit()
    flash("Issue unpublished.", "success")
    return redirect(url_for("submissions.issues_list", journal_id=journal_id))


@bp.post("/journals/<int:journal_id>/submissions/<int:submission_id>/schedule")
@require_journal_permission("issues.manage")
def submission_schedule(journal_id: int, submission_id: int):
    s = db_session()
    u = _current_user()
    submission = s.get(Submission, submission_id)
    if not submission or submission.journal_id != journal_id:
        abort(404)
    issue_id = parse_int(request.form.get("issue_id"))
    if issue_id is None:
        flash("Pick an issue.", "danger")
        return redirect(url_for("submissions.issues_list", journal_id=journal_id))
    issue = _issue_or_404(s, journal_id, issue_id)
    try:
        schedule_submission(s, submission, issue, u)
    except ValueError as e:
        flash(str(e), "danger")
        return redirect(url_for("submissions.issues_list", journal_id=journal_id))
    s.commit()
    flash("Submission scheduled.", "success")
    return redirect(url_for("submissions.issues_list", journal_id=journal_id))
