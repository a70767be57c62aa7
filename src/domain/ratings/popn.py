"""pop'n music class points."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from models import Chart

CLEAR_BONUS = 3000


def calculate_class_points(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    if not chart.level_num:
        return None

    bonus = 0 if score_data["lamp"] == "FAILED" else CLEAR_BONUS
    points = (10_000 * chart.level_num + score_data["score"] - 100_000 + bonus) / 5440
    return round(max(points, 0.0), 2)


__all__ = ["calculate_class_points"]
