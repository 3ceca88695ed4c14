from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func

from app.ojsadmin.audit import record_event
from app.ojsadmin.models import User, UserJournalRole
from app.ojsadmin.modules.submissions.models import Issue, Submission

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session


RECENT_SUBMISSIONS_LIMIT = 10


@dataclass
class ManagerStats:
    total_submissions: int = 0
    in_review: int = 0
    in_copyediting: int = 0
    in_production: int = 0
    published: int = 0
    declined: int = 0
    total_users: int = 0
    recent_submissions: list[Submission] = field(default_factory=list)


def _scoped(q: "Query", journal_ids: set[int] | None) -> "Query":
    if journal_ids is None:
        return q
    return q.filter(Submission.journal_id.in_(journal_ids))


def manager_stats(s: "Session", journal_ids: set[int] | None) -> ManagerStats:
    """
    Dashboard counts for the given journals (None = every journal).

    Stage counters only count work still in progress (not published/declined).
    """
    if journal_ids is not None and not journal_ids:
        return ManagerStats()

    stats = ManagerStats()
    stats.total_submissions = _scoped(s.query(func.count(Submission.id)), journal_ids).scalar() or 0

    by_status = dict(
        _scoped(s.query(Submission.status, func.count(Submission.id)), journal_ids)
        .group_by(Submission.status)
        .all()
    )
    stats.published = by_status.get("published", 0)
    stats.declined = by_status.get("declined", 0)

    by_stage = dict(
        _scoped(s.query(Submission.current_stage, func.count(Submission.id)), journal_ids)
        .filter(Submission.status.notin_(("published", "declined")))
        .group_by(Submission.current_stage)
        .all()
    )
    stats.in_review = by_stage.get("review", 0)
    stats.in_copyediting = by_stage.get("copyediting", 0)
    stats.in_production = by_stage.get("production", 0)

    if journal_ids is None:
        stats.total_users = s.query(func.count(User.id)).scalar() or 0
    else:
        stats.total_users = (
            s.query(func.count(func.distinct(UserJournalRole.user_id)))
            .filter(UserJournalRole.journal_id.in_(journal_ids))
            .scalar()
            or 0
        )

    stats.recent_submissions = (
        _scoped(s.query(Submission), journal_ids)
        .order_by(Submission.submitted_at.desc().nullslast(), Submission.id.desc())
        .limit(RECENT_SUBMISSIONS_LIMIT)
        .all()
    )
    return stats


def stage_queue(s: "Session", stage: str, journal_ids: set[int] | None) -> list[Submission]:
    """Active submissions sitting in one workflow stage, oldest first."""
    if journal_ids is not None and not journal_ids:
        return []
    return (
        _scoped(s.query(Submission), journal_ids)
        .filter(Submission.current_stage == stage)
        .filter(Submission.status.notin_(("published", "declined")))
        .order_by(Submission.updated_at.asc().nullsfirst(), Submission.id.asc())
        .all()
    )


# ---------- Public site reads ----------

def published_issues(s: "Session", journal_id: int) -> list[Issue]:
    return (
        s.query(Issue)
        .filter(Issue.journal_id == journal_id)
        .filter(Issue.published_at.isnot(None))
        .order_by(Issue.published_at.desc(), Issue.id.desc())
        .all()
    )


def current_issue(s: "Session", journal_id: int) -> Issue | None:
    issues = published_issues(s, journal_id)
    return issues[0] if issues else None


def get_published_issue(s: "Session", journal_id: int, issue_id: int) -> Issue | None:
    return (
        s.query(Issue)
        .filter(Issue.id == issue_id)
        .filter(Issue.journal_id == journal_id)
        .filter(Issue.published_at.isnot(None))
        .one_or_none()
    )


def issue_articles(s: "Session", issue: Issue) -> list[Submission]:
    return (
        s.query(Submission)
        .filter(Submission.issue_id == issue.id)
        .filter(Submission.status == "published")
        .order_by(Submission.id.asc())
        .all()
    )


def get_published_article(s: "Session", journal_id: int, submission_id: int) -> Submission | None:
    article = (
        s.query(Submission)
        .filter(Submission.id == submission_id)
        .filter(Submission.journal_id == journal_id)
        .filter(Submission.status == "published")
        .one_or_none()
    )
    if article is None or article.issue is None or article.issue.published_at is None:
        return None
    return article


# ---------- Issue management ----------

def validate_issue_payload(payload: dict) -> list[str]:
    errors = []
    for key, label in (("volume", "Volume"), ("year", "Year")):
        raw = (payload.get(key) or "").strip()
        if raw and not raw.isdigit():
            errors.append(f"{label} must be a whole number.")
    if not any((payload.get(k) or "").strip() for k in ("title", "volume", "number", "year")):
        errors.append("Give the issue a title or a volume/number/year.")
    return errors


def create_issue(s: "Session", journal_id: int, payload: dict, actor: "User") -> Issue:
    def _int(key: str) -> int | None:
        raw = (payload.get(key) or "").strip()
        return int(raw) if raw.isdigit() else None

    issue = Issue(
        journal_id=journal_id,
        volume=_int("volume"),
        number=(payload.get("number") or "").strip() or None,
        year=_int("year"),
        title=(payload.get("title") or "").strip() or None,
        description=(payload.get("description") or "").strip() or None,
    )
    s.add(issue)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="issue.create",
        entity_type="Issue",
        entity_id=str(issue.id),
        metadata={"journal_id": journal_id, "title": issue.display_title},
    )
    return issue


def set_issue_cover(s: "Session", issue: Issue, storage_key: str, actor: "User") -> None:
    issue.cover_image = storage_key
    record_event(
        s,
        actor=actor,
        action="issue.cover_upload",
        entity_type="Issue",
        entity_id=str(issue.id),
        metadata={"storage_key": storage_key},
    )


def schedule_submission(s: "Session", submission: Submission, issue: Issue, actor: "User") -> None:
    """Assign an accepted submission to an issue's table of contents."""
    if submission.journal_id != issue.journal_id:
        raise ValueError("Issue belongs to another journal.")
    if submission.status in ("declined", "published"):
        raise ValueError(f"A {submission.status} submission cannot be scheduled.")
    submission.issue_id = issue.id
    submission.issue = issue
    submission.status = "accepted"
    submission.current_stage = "production"
    submission.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=actor,
        action="submission.schedule",
        entity_type="Submission",
        entity_id=str(submission.id),
        metadata={"issue_id": issue.id},
    )


def publish_issue(s: "Session", issue: Issue, actor: "User") -> int:
    """
    Publish an issue and every accepted submission scheduled in it.
    Returns the number of articles published.
    """
    if issue.published_at is not None:
        raise ValueError("Issue is already published.")
    now = datetime.utcnow()
    issue.published_at = now
    count = 0
    for sub in issue.submissions:
        if sub.status == "accepted":
            sub.status = "published"
            sub.updated_at = now
            count += 1
    record_event(
        s,
        actor=actor,
        action="issue.publish",
        entity_type="Issue",
        entity_id=str(issue.id),
        metadata={"journal_id": issue.journal_id, "articles": count},
    )
    return count


def unpublish_issue(s: "Session", issue: Issue, actor: "User") -> None:
    if issue.published_at is None:
        raise ValueError("Issue is not published.")
    issue.published_at = None
    for sub in issue.submissions:
        if sub.status == "published":
            sub.status = "accepted"
    record_event(
        s,
        actor=actor,
        action="issue.unpublish",
        entity_type="Issue",
        entity_id=str(issue.id),
        metadata={"journal_id": issue.journal_id},
    )


def journal_issues(s: "Session", journal_id: int) -> list[Issue]:
    """All issues of a journal, unpublished (future) ones first."""
    return (
        s.query(Issue)
        .filter(Issue.journal_id == journal_id)
        .order_by(Issue.published_at.desc().nullsfirst(), Issue.id.desc())
        .all()
    )


def schedulable_submissions(s: "Session", journal_id: int) -> list[Submission]:
    return (
        s.query(Submission)
        .filter(Submission.journal_id == journal_id)
        .filter(Submission.status == "accepted")
        .filter(Submission.issue_id.is_(None))
        .order_by(Submission.id.asc())
        .all()
    )
