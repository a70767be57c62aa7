"""jubeat jubility."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from models import Chart

MINIMUM_SCORE = 700_000


def calculate_jubility(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    if not chart.level_num:
        return None
    if score_data["score"] < MINIMUM_SCORE:
        return 0.0
    return round(chart.level_num * 12.5 * score_data["musicRate"] / 99, 1)


__all__ = ["calculate_jubility"]
