import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from contextlib import contextmanager

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ojsadmin.constants import ROLE_NAMES, ROLE_PATHS
from app.ojsadmin.models import Permission, Role, User

PERMISSIONS = {
    "admin.view": "Admin: view shell",
    "journals.manage": "Hosted journals: create and list",
    "site_settings.view": "Site settings: view",
    "site_settings.edit": "Site settings: edit",
    "journal_settings.view": "Journal settings: view",
    "journal_settings.edit": "Journal settings: edit",
    "users.view": "Users & roles: view",
    "users.manage": "Users & roles: manage",
    "manager.view": "Manager dashboard: view",
    "issues.manage": "Issues: create, schedule, publish",
    "queue.copyediting": "Copyediting queue: view",
    "queue.production": "Production queue: view",
    "subscriptions.view": "Subscriptions: view",
}

_EDITORIAL = ("journal_settings.view", "journal_settings.edit", "manager.view", "issues.manage", "queue.copyediting", "queue.production")

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "admin": tuple(PERMISSIONS),
    "manager": _EDITORIAL + ("users.view", "users.manage", "subscriptions.view"),
    "editor": _EDITORIAL,
    "section_editor": ("journal_settings.view", "journal_settings.edit", "queue.copyediting"),
    "reviewer": (),
    "author": (),
    "copyeditor": ("queue.copyediting",),
    "layout_editor": ("queue.production",),
    "proofreader": ("queue.production",),
    "subscription_manager": ("subscriptions.view",),
    "reader": (),
}


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def seed_roles(s: Session) -> dict[str, Role]:
    """Create missing permissions/roles and top up role grants. Never removes grants."""
    perms: dict[str, Permission] = {}
    for key, name in PERMISSIONS.items():
        p = s.query(Permission).filter(Permission.key == key).one_or_none()
        if not p:
            p = Permission(key=key, name=name)
            s.add(p)
        perms[key] = p

    roles: dict[str, Role] = {}
    for role_path in ROLE_PATHS:
        role = s.query(Role).filter(Role.key == role_path).one_or_none()
        if not role:
            role = Role(key=role_path, name=ROLE_NAMES[role_path])
            s.add(role)
        for key in ROLE_PERMISSIONS.get(role_path, ()):
            if perms[key] not in role.permissions:
                role.permissions.append(perms[key])
        roles[role_path] = role
    return roles


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.org").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///ojsadmin.db").strip()

    # Direct engine/session so this can run during release without importing app.wsgi.
    with _session_scope(db_url) as s:
        roles = seed_roles(s)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, name="Site Administrator", password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)
        if roles["admin"] not in user.roles:
            user.roles.append(roles["admin"])

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
