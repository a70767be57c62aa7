"""Goal, milestone and subscription table models."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType
from models.mixins import SubscriptionMixin


class Goal(Base):
    """A chart set plus a criterion on one metric."""

    __tablename__ = "goals"
    __table_args__ = (Index("ix_goals_gpt", "game", "playtype"),)

    goal_id: Mapped[str] = mapped_column(String(72), primary_key=True)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    playtype: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    charts: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    criteria: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)


class GoalSubscription(SubscriptionMixin, Base):
    __tablename__ = "goal_subs"
    __table_args__ = (UniqueConstraint("user_id", "goal_id", name="uq_goal_subs_user_goal"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    goal_id: Mapped[str] = mapped_column(String(72), nullable=False, index=True)
    progress: Mapped[float | None] = mapped_column(Float, nullable=True)
    out_of: Mapped[float] = mapped_column(Float, nullable=False)
    progress_human: Mapped[str] = mapped_column(String(64), nullable=False)
    out_of_human: Mapped[str] = mapped_column(String(64), nullable=False)


class Milestone(Base):
    """A collection of goals with an "all" or "total" completion criterion."""

    __tablename__ = "milestones"
    __table_args__ = (Index("ix_milestones_gpt", "game", "playtype"),)

    milestone_id: Mapped[str] = mapped_column(String(72), primary_key=True)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    playtype: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    desc: Mapped[str] = mapped_column(Text, nullable=False, default="")
    milestone_data: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    criteria: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)


class MilestoneSubscription(SubscriptionMixin, Base):
    __tablename__ = "milestone_subs"
    __table_args__ = (UniqueConstraint("user_id", "milestone_id", name="uq_milestone_subs_user_milestone"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    milestone_id: Mapped[str] = mapped_column(String(72), nullable=False, index=True)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MilestoneSet(Base):
    """An ordered grouping of milestones."""

    __tablename__ = "milestone_sets"

    set_id: Mapped[str] = mapped_column(String(72), primary_key=True)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    playtype: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    desc: Mapped[str] = mapped_column(Text, nullable=False, default="")
    milestones: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
