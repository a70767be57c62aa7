"""User game stats, class values and class achievements."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from models import ClassAchievement, UserGameClass, UserGameStats
from repositories.base import BaseRepository

STATS_REPOSITORY = BaseRepository(model=UserGameStats, id_column="id")
CLASS_ACHIEVEMENT_REPOSITORY = BaseRepository(model=ClassAchievement, id_column="id")


def get_stats(session: Session, user_id: int, game: str, playtype: str) -> UserGameStats | None:
    return STATS_REPOSITORY.find_one(
        session,
        UserGameStats.user_id == user_id,
        UserGameStats.game == game,
        UserGameStats.playtype == playtype,
    )


def get_or_create_stats(session: Session, user_id: int, game: str, playtype: str) -> UserGameStats:
    stats = get_stats(session, user_id, game, playtype)
    if stats is None:
        stats = UserGameStats(user_id=user_id, game=game, playtype=playtype, ratings={})
        session.add(stats)
        session.flush()
    return stats


def set_ratings(stats: UserGameStats, ratings: dict[str, Any]) -> None:
    # JSON columns only notice reassignment
    stats.ratings = dict(ratings)


def add_class_value(session: Session, stats: UserGameStats, class_set: str, value: int) -> None:
    stats.class_values.append(UserGameClass(class_set=class_set, value=value))
    session.flush()


def raise_class_value(session: Session, stats: UserGameStats, class_set: str, value: int) -> bool:
    """Store `value` only if the stored value is lower. Returns whether a row changed."""
    result = session.execute(
        update(UserGameClass)
        .where(
            UserGameClass.stats_id == stats.id,
            UserGameClass.class_set == class_set,
            UserGameClass.value < value,
        )
        .values(value=value)
        .execution_options(synchronize_session="fetch")
    )
    return bool(result.rowcount)


def replace_class_value(session: Session, stats: UserGameStats, class_set: str, value: int) -> bool:
    result = session.execute(
        update(UserGameClass)
        .where(
            UserGameClass.stats_id == stats.id,
            UserGameClass.class_set == class_set,
            UserGameClass.value != value,
        )
        .values(value=value)
        .execution_options(synchronize_session="fetch")
    )
    return bool(result.rowcount)


def add_class_achievement(
    session: Session,
    *,
    user_id: int,
    game: str,
    playtype: str,
    class_set: str,
    old_value: int | None,
    new_value: int,
    time_achieved: datetime,
) -> None:
    session.add(
        ClassAchievement(
            user_id=user_id,
            game=game,
            playtype=playtype,
            class_set=class_set,
            class_old_value=old_value,
            class_value=new_value,
            time_achieved=time_achieved,
        )
    )
    session.flush()


__all__ = [
    "CLASS_ACHIEVEMENT_REPOSITORY",
    "STATS_REPOSITORY",
    "add_class_achievement",
    "add_class_value",
    "get_or_create_stats",
    "get_stats",
    "raise_class_value",
    "replace_class_value",
    "set_ratings",
]
