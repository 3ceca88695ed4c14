"""Journals, journal/site settings, journal role assignments, issues, submissions.

Revision ID: b2d4f6a8c0e2
Revises: a1c3e5f7b9d1
Create Date: 2026-09-21
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "b2d4f6a8c0e2"
down_revision: Union[str, Sequence[str], None] = "a1c3e5f7b9d1"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "journals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("path", sa.String(32), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("initials", sa.String(32), nullable=True),
        sa.Column("abbreviation", sa.String(64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("primary_locale", sa.String(16), nullable=False, server_default="en_US"),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("path"),
    )
    op.create_index("idx_journals_enabled", "journals", ["enabled"])

    op.create_table(
        "journal_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("journal_id", sa.Integer(), nullable=False),
        sa.Column("section", sa.String(64), nullable=False),
        sa.Column("setting_name", sa.String(255), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=True),
        sa.Column("setting_type", sa.String(16), nullable=False, server_default="string"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("updated_by_user_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["journal_id"], ["journals.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["updated_by_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("journal_id", "section", "setting_name", name="uq_journal_settings_key"),
    )
    op.create_index("idx_journal_settings_section", "journal_settings", ["journal_id", "section"])

    op.create_table(
        "site_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("section", sa.String(64), nullable=False),
        sa.Column("setting_name", sa.String(255), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=True),
        sa.Column("setting_type", sa.String(16), nullable=False, server_default="string"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("updated_by_user_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["updated_by_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("section", "setting_name", name="uq_site_settings_key"),
    )

    op.create_table(
        "user_journal_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("journal_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["journal_id"], ["journals.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "role_id", "journal_id", name="uq_user_journal_role"),
    )
    op.create_index("ix_user_journal_roles_user_id", "user_journal_roles", ["user_id"])
    op.create_index("ix_user_journal_roles_journal_id", "user_journal_roles", ["journal_id"])

    op.create_table(
        "issues",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("journal_id", sa.Integer(), nullable=False),
        sa.Column("volume", sa.Integer(), nullable=True),
        sa.Column("number", sa.String(32), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("cover_image", sa.String(512), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["journal_id"], ["journals.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_issues_journal_published", "issues", ["journal_id", "published_at"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("journal_id", sa.Integer(), nullable=False),
        sa.Column("issue_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="submitted"),
        sa.Column("current_stage", sa.String(32), nullable=False, server_default="submission"),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["journal_id"], ["journals.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["issue_id"], ["issues.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_submissions_journal_status", "submissions", ["journal_id", "status"])
    op.create_index("idx_submissions_journal_stage", "submissions", ["journal_id", "current_stage"])


def downgrade() -> None:
    op.drop_index("idx_submissions_journal_stage", table_name="submissions")
    op.drop_index("idx_submissions_journal_status", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("idx_issues_journal_published", table_name="issues")
    op.drop_table("issues")
    op.drop_index("ix_user_journal_roles_journal_id", table_name="user_journal_roles")
    op.drop_index("ix_user_journal_roles_user_id", table_name="user_journal_roles")
    op.drop_table("user_journal_roles")
    op.drop_table("site_settings")
    op.drop_index("idx_journal_settings_section", table_name="journal_settings")
    op.drop_table("journal_settings")
    op.drop_index("idx_journals_enabled", table_name="journals")
    op.drop_table("journals")
