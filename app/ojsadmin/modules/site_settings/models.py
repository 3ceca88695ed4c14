from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.ojsadmin.models import Base


class SiteSetting(Base):
    __tablename__ = "site_settings"
    __table_args__ = (UniqueConstraint("section", "setting_name", name="uq_site_settings_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    section: Mapped[str] = mapped_column(String(64), nullable=False)  # setup, languages, bulk_emails, appearance, theme, plugins
    setting_name: Mapped[str] = mapped_column(String(255), nullable=False)
    setting_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    setting_type: Mapped[str] = mapped_column(String(16), nullable=False, default="string")

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
