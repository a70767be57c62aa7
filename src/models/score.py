"""scores table model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType


class Score(Base):
    """A hydrated score. Only `highlight` and `comment` change after insert."""

    __tablename__ = "scores"
    __table_args__ = (
        Index("ix_scores_user_gpt", "user_id", "game", "playtype"),
        Index("ix_scores_user_chart", "user_id", "chart_id"),
    )

    score_id: Mapped[str] = mapped_column(String(72), primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    playtype: Mapped[str] = mapped_column(String(16), nullable=False)
    song_id: Mapped[int] = mapped_column(Integer, nullable=False)
    chart_id: Mapped[str] = mapped_column(String(64), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False)
    score_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    calculated_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    score_meta: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    time_added: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    time_achieved: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    service: Mapped[str] = mapped_column(String(64), nullable=False)
    import_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    comment: Mapped[str | None] = mapped_column(String(240), nullable=True)
    highlight: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
