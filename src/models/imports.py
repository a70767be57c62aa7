"""imports and sessions table models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType
from models.mixins import GPTScopedMixin


class ImportRecord(Base):
    """Outcome of one import batch."""

    __tablename__ = "imports"
    __table_args__ = (Index("ix_imports_user_finished", "user_id", "time_finished"),)

    import_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[int] = mapped_column(nullable=False)
    import_type: Mapped[str] = mapped_column(String(64), nullable=False)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    playtypes: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    score_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    errors: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    class_deltas: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    goal_info: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    milestone_info: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    created_sessions: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    updated_sessions: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    time_started: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    time_finished: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    user_intent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class PlaySession(GPTScopedMixin, Base):
    """Scores grouped by play time; a gap of two hours starts a new session."""

    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    score_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    time_started: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    time_ended: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    time_inserted: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    calculated_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
