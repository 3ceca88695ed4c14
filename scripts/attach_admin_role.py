#!/usr/bin/env python3
"""Attach a role to a user (idempotent). Site-wide unless --journal is given.

Usage:
  python scripts/attach_admin_role.py --email someone@example.org
  python scripts/attach_admin_role.py --email someone@example.org --role manager --journal publicknowledge
"""

import sys
import os
import argparse
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ojsadmin.models import Journal, Role, User, UserJournalRole


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--role", default="admin", help="Role path (default: admin)")
    parser.add_argument("--journal", default="", help="Journal path for a journal-scoped role")
    args = parser.parse_args()

    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///ojsadmin.db").strip()
    engine = create_engine(db_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        user = s.query(User).filter(User.email.ilike(args.email)).one_or_none()
        if not user:
            print(f"User not found: {args.email}")
            return
        role = s.query(Role).filter(Role.key == args.role).one_or_none()
        if not role:
            print(f"Role not found: {args.role}. Run python scripts/init_db.py first.")
            return

        if not args.journal:
            if role in (user.roles or []):
                print(f"User already has {args.role} role: {args.email}")
                return
            user.roles.append(role)
            s.commit()
            print(f"Role {args.role} attached to {args.email}")
            return

        journal = s.query(Journal).filter(Journal.path == args.journal).one_or_none()
        if not journal:
            print(f"Journal not found: {args.journal}")
            return
        if any(jr.journal_id == journal.id and jr.role_id == role.id for jr in user.journal_roles):
            print(f"User already has {args.role} in {args.journal}: {args.email}")
            return
        user.journal_roles.append(UserJournalRole(role_id=role.id, journal_id=journal.id))
        s.commit()
        print(f"Role {args.role} attached to {args.email} in {args.journal}")
    finally:
        s.close()


if __name__ == "__main__":
    main()
