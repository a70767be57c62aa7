"""CHUNITHM rating."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from domain.ratings.bands import interpolate
from models import Chart

# score -> offset from the chart constant
_RATING_OFFSETS = (
    (900_000.0, -5.0),
    (925_000.0, -3.0),
    (950_000.0, -1.5),
    (975_000.0, 0.0),
    (990_000.0, 0.6),
    (1_000_000.0, 1.0),
    (1_005_000.0, 1.5),
    (1_007_500.0, 2.0),
    (1_009_000.0, 2.15),
)


def calculate_rating(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    if not chart.level_num:
        return None

    score = score_data["score"]
    level = chart.level_num
    if score >= 900_000:
        rating = level + interpolate(score, _RATING_OFFSETS)
    elif score >= 800_000:
        rating = (level - 5) / 2 + (level + _RATING_OFFSETS[0][1] - (level - 5) / 2) * (score - 800_000) / 100_000
    elif score >= 500_000:
        rating = (level - 5) / 2 * (score - 500_000) / 300_000
    else:
        rating = 0.0

    return round(max(rating, 0.0), 2)


__all__ = ["calculate_rating"]
