from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ojsadmin.models import Base

if TYPE_CHECKING:
    from app.ojsadmin.modules.journals.models import Journal


class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (
        Index("idx_issues_journal_published", "journal_id", "published_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    journal_id: Mapped[int] = mapped_column(ForeignKey("journals.id", ondelete="CASCADE"), nullable=False)

    volume: Mapped[int | None] = mapped_column(Integer, nullable=True)
    number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image: Mapped[str | None] = mapped_column(String(512), nullable=True)  # storage key

    # null = not published
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    journal: Mapped["Journal"] = relationship("Journal", back_populates="issues")
    submissions: Mapped[list["Submission"]] = relationship(back_populates="issue", lazy="selectin")

    @property
    def display_title(self) -> str:
        if self.title:
            return self.title
        return f"Vol {self.volume or '-'} No {self.number or '-'} ({self.year or '-'})"


class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        Index("idx_submissions_journal_status", "journal_id", "status"),
        Index("idx_submissions_journal_stage", "journal_id", "current_stage"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    journal_id: Mapped[int] = mapped_column(ForeignKey("journals.id", ondelete="CASCADE"), nullable=False)
    issue_id: Mapped[int | None] = mapped_column(ForeignKey("issues.id", ondelete="SET NULL"), nullable=True)

    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # authors, abstract, keywords
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="submitted")
    current_stage: Mapped[str] = mapped_column(String(32), nullable=False, default="submission")

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    journal: Mapped["Journal"] = relationship("Journal", back_populates="submissions")
    issue: Mapped[Issue | None] = relationship(back_populates="submissions")

    @property
    def meta(self) -> dict[str, Any]:
        if not self.metadata_json:
            return {}
        try:
            value = json.loads(self.metadata_json)
        except ValueError:
            return {}
        return value if isinstance(value, dict) else {}

    @property
    def authors(self) -> list[dict[str, Any]]:
        authors = self.meta.get("authors") or []
        return [a for a in authors if isinstance(a, dict)]

    @property
    def author_names(self) -> str:
        names = []
        for a in self.authors:
            full = " ".join(p for p in ((a.get("givenName") or "").strip(), (a.get("familyName") or "").strip()) if p)
            if full:
                names.append(full)
        return ", ".join(names)
