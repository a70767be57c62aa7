"""MÚSECA score rating."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from domain.ratings.bands import interpolate
from models import Chart

_KT_RATING_CURVE = (
    (0.0, 0.0),
    (800_000.0, 0.5),
    (900_000.0, 0.8),
    (975_000.0, 0.95),
    (1_000_000.0, 1.0),
)


def calculate_kt_rating(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    if not chart.level_num:
        return None
    return round(chart.level_num * interpolate(score_data["score"], _KT_RATING_CURVE), 2)


__all__ = ["calculate_kt_rating"]
