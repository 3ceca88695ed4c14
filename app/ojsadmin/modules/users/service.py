from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, or_
from werkzeug.security import generate_password_hash

from app.ojsadmin.audit import record_event
from app.ojsadmin.models import Role, User, UserJournalRole
from app.ojsadmin.utils import is_valid_email

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def list_users(
    s: "Session",
    *,
    search: str = "",
    role_filter: str = "",
    status_filter: str = "",
    journal_ids: set[int] | None = None,
) -> list[User]:
    """
    Users matching the filters. `journal_ids` limits the list to users holding a role
    in those journals (None = everybody).
    """
    q = s.query(User)
    if journal_ids is not None:
        q = q.filter(User.id.in_(s.query(UserJournalRole.user_id).filter(UserJournalRole.journal_id.in_(journal_ids))))
    if search:
        like = f"%{search.lower()}%"
        q = q.filter(or_(func.lower(User.name).like(like), func.lower(User.email).like(like)))
    if status_filter == "active":
        q = q.filter(User.is_active.is_(True))
    elif status_filter == "inactive":
        q = q.filter(User.is_active.is_(False))
    users = q.order_by(User.name.asc(), User.email.asc()).all()
    if role_filter:
        users = [u for u in users if role_filter in role_paths(u, journal_ids)]
    return users


def role_paths(user: User, journal_ids: set[int] | None = None) -> list[str]:
    """Distinct role keys of a user, site-wide plus the journals in scope."""
    keys = {r.key for r in user.roles or []}
    for jr in user.journal_roles or []:
        if journal_ids is None or jr.journal_id in journal_ids:
            keys.add(jr.role.key)
    return sorted(keys)


def validate_user_payload(s: "Session", payload: dict, *, user: User | None = None, min_password_length: int = 6) -> list[str]:
    errors = []
    email = (payload.get("email") or "").strip().lower()
    if not email:
        errors.append("Email is required.")
    elif not is_valid_email(email):
        errors.append("Email is not a valid email address.")
    else:
        q = s.query(User).filter(User.email == email)
        if user is not None:
            q = q.filter(User.id != user.id)
        if q.first():
            errors.append("A user with that email already exists.")
    if not (payload.get("name") or "").strip():
        errors.append("Name is required.")
    password = payload.get("password") or ""
    # Required for new users; optional (keep current) on edit.
    if user is None or password:
        if len(password) < min_password_length:
            errors.append(f"Password must be at least {min_password_length} characters.")
    return errors


def create_user(s: "Session", payload: dict, actor: User) -> User:
    user = User(
        email=(payload.get("email") or "").strip().lower(),
        name=(payload.get("name") or "").strip(),
        password_hash=generate_password_hash(payload.get("password") or ""),
        is_active=True,
    )
    s.add(user)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="user.create",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email, "name": user.name},
    )
    return user


def update_user(s: "Session", user: User, payload: dict, actor: User) -> dict:
    changes = {}
    new_email = (payload.get("email") or "").strip().lower()
    if new_email and new_email != user.email:
        changes["email"] = {"old": user.email, "new": new_email}
        user.email = new_email
    new_name = (payload.get("name") or "").strip()
    if new_name and new_name != user.name:
        changes["name"] = {"old": user.name, "new": new_name}
        user.name = new_name
    if payload.get("password"):
        user.password_hash = generate_password_hash(payload["password"])
        changes["password"] = "changed"
    if changes:
        record_event(
            s,
            actor=actor,
            action="user.edit",
            entity_type="User",
            entity_id=str(user.id),
            metadata={"changes": changes},
        )
    return changes


def set_user_active(s: "Session", user: User, active: bool, actor: User) -> None:
    if user.id == actor.id and not active:
        raise ValueError("You cannot disable your own account.")
    user.is_active = active
    record_event(
        s,
        actor=actor,
        action="user.enable" if active else "user.disable",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email},
    )


def delete_user(s: "Session", user: User, actor: User) -> None:
    if user.id == actor.id:
        raise ValueError("You cannot delete your own account.")
    record_event(
        s,
        actor=actor,
        action="user.delete",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"email": user.email},
    )
    s.delete(user)


def get_role(s: "Session", role_path: str) -> Role | None:
    return s.query(Role).filter(Role.key == role_path).one_or_none()


def assign_journal_role(s: "Session", user: User, journal_id: int, role_path: str, actor: User) -> UserJournalRole:
    role = get_role(s, role_path)
    if role is None:
        raise ValueError(f"Unknown role: {role_path}")
    for jr in user.journal_roles:
        if jr.journal_id == journal_id and jr.role_id == role.id:
            return jr
    jr = UserJournalRole(user_id=user.id, role_id=role.id, journal_id=journal_id)
    jr.role = role
    user.journal_roles.append(jr)
    s.flush()
    record_event(
        s,
        actor=actor,
        action="user.role_assign",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"role": role_path, "journal_id": journal_id},
    )
    return jr


def remove_journal_role(s: "Session", user: User, journal_id: int, role_path: str, actor: User) -> bool:
    for jr in list(user.journal_roles):
        if jr.journal_id == journal_id and jr.role.key == role_path:
            user.journal_roles.remove(jr)
            record_event(
                s,
                actor=actor,
                action="user.role_remove",
                entity_type="User",
                entity_id=str(user.id),
                metadata={"role": role_path, "journal_id": journal_id},
            )
            return True
    return False


def journal_members(s: "Session", journal_id: int) -> list[tuple[User, list[str]]]:
    """Users holding any role in a journal, with their role keys there."""
    rows = (
        s.query(UserJournalRole)
        .filter(UserJournalRole.journal_id == journal_id)
        .all()
    )
    by_user: dict[int, tuple[User, list[str]]] = {}
    for jr in rows:
        entry = by_user.setdefault(jr.user_id, (jr.user, []))
        if jr.role.key not in entry[1]:
            entry[1].append(jr.role.key)
    members = sorted(by_user.values(), key=lambda e: (e[0].name or e[0].email).lower())
    return [(u, sorted(keys)) for u, keys in members]
