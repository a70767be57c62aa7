"""user_game_stats, user_game_classes and class_achievements table models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, JSONType
from models.mixins import GPTScopedMixin


class UserGameStats(GPTScopedMixin, Base):
    """Profile ratings and classes for one user on one GPT."""

    __tablename__ = "user_game_stats"
    __table_args__ = (UniqueConstraint("user_id", "game", "playtype", name="uq_user_game_stats_gpt"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    ratings: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    class_values: Mapped[list[UserGameClass]] = relationship(
        back_populates="stats",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def classes(self) -> dict[str, int]:
        return {row.class_set: row.value for row in self.class_values}


class UserGameClass(Base):
    """One class dimension value; one row per (stats, class set)."""

    __tablename__ = "user_game_classes"
    __table_args__ = (UniqueConstraint("stats_id", "class_set", name="uq_user_game_classes_set"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    stats_id: Mapped[int] = mapped_column(ForeignKey("user_game_stats.id"), nullable=False)
    class_set: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    stats: Mapped[UserGameStats] = relationship(back_populates="class_values")


class ClassAchievement(GPTScopedMixin, Base):
    """Append-only history of class changes."""

    __tablename__ = "class_achievements"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    class_set: Mapped[str] = mapped_column(String(64), nullable=False)
    class_old_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    class_value: Mapped[int] = mapped_column(Integer, nullable=False)
    time_achieved: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
