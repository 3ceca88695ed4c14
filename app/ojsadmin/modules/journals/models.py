from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ojsadmin.models import Base

if TYPE_CHECKING:
    from app.ojsadmin.modules.submissions.models import Issue, Submission


class Journal(Base):
    __tablename__ = "journals"
    __table_args__ = (
        Index("idx_journals_enabled", "enabled"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Required
    path: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)  # URL slug, e.g. "publicknowledge"
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    # Masthead
    initials: Mapped[str | None] = mapped_column(String(32), nullable=True)
    abbreviation: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_locale: Mapped[str] = mapped_column(String(16), nullable=False, default="en_US")

    # Visible on the public site
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    settings: Mapped[list["JournalSetting"]] = relationship(
        back_populates="journal",
        cascade="all, delete-orphan",
        lazy="select",
    )
    issues: Mapped[list["Issue"]] = relationship(
        "Issue",
        back_populates="journal",
        cascade="all, delete-orphan",
        lazy="select",
    )
    submissions: Mapped[list["Submission"]] = relationship(
        "Submission",
        back_populates="journal",
        cascade="all, delete-orphan",
        lazy="select",
    )

    @property
    def name(self) -> str:
        return self.title


class JournalSetting(Base):
    """
    Loosely typed name/value pair for one journal and one settings section.
    setting_type is inferred at write time (string|bool|int|float|object).
    """

    __tablename__ = "journal_settings"
    __table_args__ = (
        UniqueConstraint("journal_id", "section", "setting_name", name="uq_journal_settings_key"),
        Index("idx_journal_settings_section", "journal_id", "section"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    journal_id: Mapped[int] = mapped_column(ForeignKey("journals.id", ondelete="CASCADE"), nullable=False)
    section: Mapped[str] = mapped_column(String(64), nullable=False)
    setting_name: Mapped[str] = mapped_column(String(255), nullable=False)
    setting_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    setting_type: Mapped[str] = mapped_column(String(16), nullable=False, default="string")

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    journal: Mapped[Journal] = relationship(back_populates="settings")
