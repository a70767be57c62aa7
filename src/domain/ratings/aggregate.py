"""Session and profile ratings built from the best N score ratings."""

from __future__ import annotations

from collections.abc import Sequence

from domain.ratings.protocol import AggregateRatingFn


def best_n_sum(count: int) -> AggregateRatingFn:
    def calculate(values: Sequence[float]) -> float | None:
        best = sorted(values, reverse=True)[:count]
        if not best:
            return None
        return sum(best)

    return calculate


def best_n_mean(count: int) -> AggregateRatingFn:
    def calculate(values: Sequence[float]) -> float | None:
        best = sorted(values, reverse=True)[:count]
        if not best:
            return None
        return sum(best) / len(best)

    return calculate


__all__ = ["best_n_mean", "best_n_sum"]
