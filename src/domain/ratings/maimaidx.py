"""maimai DX rate."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from domain.ratings.bands import first_band
from models import Chart

MAX_ACHIEVEMENT = 100.5

_RANK_COEFFICIENTS = (
    (100.5, 22.4),
    (100.0, 21.6),
    (99.5, 21.1),
    (99.0, 20.8),
    (98.0, 20.3),
    (97.0, 20.0),
    (94.0, 16.8),
    (90.0, 15.2),
    (80.0, 13.6),
    (75.0, 12.0),
    (70.0, 11.2),
    (60.0, 9.6),
    (50.0, 8.0),
    (40.0, 6.4),
    (30.0, 4.8),
    (20.0, 3.2),
    (10.0, 1.6),
)


def calculate_rate(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    if not chart.level_num:
        return None

    achievement = min(score_data["percent"], MAX_ACHIEVEMENT)
    coefficient = first_band(achievement, _RANK_COEFFICIENTS, 0.0)
    return float(math.floor(chart.level_num * achievement / 100 * coefficient))


__all__ = ["calculate_rate"]
