"""SQLAlchemy mixins for goal and milestone subscription columns."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column


class GPTScopedMixin:
    """Rows owned by one user on one game/playtype."""

    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    playtype: Mapped[str] = mapped_column(String(16), nullable=False)


class SubscriptionMixin(GPTScopedMixin):
    """Common columns for goal and milestone subscriptions."""

    achieved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    was_instantly_achieved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_interaction: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    time_set: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    time_achieved: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
