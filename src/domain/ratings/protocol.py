"""Shared protocols and enums for rating algorithms."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Protocol

from models import Chart


class RatingKind(str, Enum):
    """What a rating algorithm rates."""

    SCORE = "score"
    SESSION = "session"
    PROFILE = "profile"


class ScoreRatingFn(Protocol):
    """Rates one hydrated score; None means not enough data."""

    def __call__(self, score_data: Mapping[str, Any], chart: Chart) -> float | None: ...


class AggregateRatingFn(Protocol):
    """Rates a session or profile from per-score ratings."""

    def __call__(self, values: Sequence[float]) -> float | None: ...


__all__ = ["AggregateRatingFn", "RatingKind", "ScoreRatingFn"]
