from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import abort, g, redirect, request, url_for

from app.ojsadmin.models import Role, User


@dataclass(frozen=True)
class RoleAssignment:
    role_path: str
    context_id: int | None  # journal id; None = site-wide


def user_role_assignments(user: User | None) -> list[RoleAssignment]:
    if not user:
        return []
    out = [RoleAssignment(role_path=r.key, context_id=None) for r in user.roles or []]
    for jr in user.journal_roles or []:
        out.append(RoleAssignment(role_path=jr.role.key, context_id=jr.journal_id))
    return out


def _site_roles(user: User) -> Iterator[Role]:
    yield from user.roles or []


def _journal_roles(user: User, journal_id: int | None = None) -> Iterator[Role]:
    for jr in user.journal_roles or []:
        if journal_id is None or jr.journal_id == journal_id:
            yield jr.role


def _grants(roles: Iterator[Role], permission_key: str) -> bool:
    for role in roles:
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def user_has_permission(user: User | None, permission_key: str) -> bool:
    """True when any of the user's roles (site-wide or in any journal) grants the permission."""
    if not user or not user.is_active:
        return False
    return _grants(_site_roles(user), permission_key) or _grants(_journal_roles(user), permission_key)


def user_has_site_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    return _grants(_site_roles(user), permission_key)


def user_has_journal_permission(user: User | None, journal_id: int, permission_key: str) -> bool:
    """Site-wide grant, or a grant through a role held in this journal."""
    if not user or not user.is_active:
        return False
    if _grants(_site_roles(user), permission_key):
        return True
    return _grants(_journal_roles(user, journal_id), permission_key)


def journal_ids_with_permission(user: User | None, permission_key: str) -> set[int] | None:
    """
    Journals where the user holds the permission.
    Returns None when the grant is site-wide (every journal).
    """
    if not user or not user.is_active:
        return set()
    if _grants(_site_roles(user), permission_key):
        return None
    ids: set[int] = set()
    for jr in user.journal_roles or []:
        if _grants(iter([jr.role]), permission_key):
            ids.add(jr.journal_id)
    return ids


def _login_redirect():
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return redirect(url_for("auth.login_get", next=nxt))


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated → redirect to login
            if not user or not user.is_active:
                return _login_redirect()
            # Authenticated but unauthorized → 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def require_journal_permission(
    permission_key: str, *, arg: str = "journal_id"
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Like require_permission, scoped to the journal named by the `arg` route parameter."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            if not user or not user.is_active:
                return _login_redirect()
            journal_id = kwargs.get(arg)
            if journal_id is None or not user_has_journal_permission(user, int(journal_id), permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Any active, logged-in user."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return _login_redirect()
        return fn(*args, **kwargs)

    return wrapped
