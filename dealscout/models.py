from __future__ import annotations

from datetime import datetime, UTC

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class SavedSession(Base):
    """Snapshot of a wizard conversation. Structured fields are JSON text."""

    __tablename__ = "saved_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    phase: Mapped[str] = mapped_column(String(50), nullable=False)
    fund_mandate_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    scoring_weights_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    thresholds_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    shortlist_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    chosen_company_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    chosen_company_ids_json: Mapped[str] = mapped_column(Text, default="[]")
    messages_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    thinking_steps_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)
