"""Profile ratings from a user's best score per chart."""

from __future__ import annotations

from sqlalchemy.orm import Session

from domain.gpt.config import GPTConfig
from domain.ratings.protocol import RatingKind
from domain.ratings.registry import algorithms_for
from models import UserGameStats
from repositories.game_stats import get_or_create_stats, set_ratings
from repositories.scores import best_calculated_per_chart


def calculate_profile_ratings(session: Session, config: GPTConfig, user_id: int) -> dict[str, float]:
    """Every profile algorithm of the GPT; algorithms without data are left out."""
    ratings: dict[str, float] = {}
    for algorithm in algorithms_for(config, RatingKind.PROFILE):
        best = best_calculated_per_chart(
            session,
            user_id=user_id,
            game=config.game,
            playtype=config.playtype,
            alg=algorithm.source_score_alg,
        )
        value = algorithm.calculate(list(best.values()))
        if value is not None:
            ratings[algorithm.name] = value
    return ratings


def recompute_profile_ratings(session: Session, config: GPTConfig, user_id: int) -> UserGameStats:
    stats = get_or_create_stats(session, user_id, config.game, config.playtype)
    set_ratings(stats, calculate_profile_ratings(session, config, user_id))
    session.flush()
    return stats


__all__ = ["calculate_profile_ratings", "recompute_profile_ratings"]
