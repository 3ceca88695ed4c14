from __future__ import annotations

from flask import Blueprint, abort, render_template

from app.ojsadmin.db import db_session
from app.ojsadmin.modules.journals.models import Journal
from app.ojsadmin.modules.journals.service import get_enabled_journal_by_path
from app.ojsadmin.modules.journals.settings import section_with_defaults
from app.ojsadmin.modules.submissions.service import (
    current_issue,
    get_published_article,
    get_published_issue,
    issue_articles,
    published_issues,
)

bp = Blueprint("journal_public", __name__)


def _journal_or_404(s, path: str) -> Journal:
    journal = get_enabled_journal_by_path(s, path)
    if not journal:
        abort(404)
    return journal


@bp.get("/journals/<path>")
def journal_home(path: str):
    s = db_session()
    journal = _journal_or_404(s, path)
    appearance = section_with_defaults(s, journal.id, "appearance")
    issue = current_issue(s, journal.id)
    return render_template(
        "public/journal.html",
        journal=journal,
        appearance=appearance,
        masthead=section_with_defaults(s, journal.id, "masthead"),
        issue=issue,
        articles=issue_articles(s, issue) if issue else [],
    )


@bp.get("/journals/<path>/issue/archive")
def issue_archive(path: str):
    s = db_session()
    journal = _journal_or_404(s, path)
    return render_template("public/archive.html", journal=journal, issues=published_issues(s, journal.id))


@bp.get("/journals/<path>/issue/<int:issue_id>")
def issue_view(path: str, issue_id: int):
    s = db_session()
    journal = _journal_or_404(s, path)
    issue = get_published_issue(s, journal.id, issue_id)
    if not issue:
        abort(404)
    return render_template("public/issue.html", journal=journal, issue=issue, articles=issue_articles(s, issue))


@bp.get("/journals/<path>/article/<int:article_id>")
def article_view(path: str, article_id: int):
    s = db_session()
    journal = _journal_or_404(s, path)
    article = get_published_article(s, journal.id, article_id)
    if not article:
        abort(404)
    return render_template("public/article.html", journal=journal, article=article, issue=article.issue)
