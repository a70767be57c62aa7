"""WACCA rate."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from domain.ratings.bands import first_band
from models import Chart

_RATE_COEFFICIENTS = (
    (990_000, 4.0),
    (980_000, 3.75),
    (970_000, 3.5),
    (960_000, 3.25),
    (950_000, 3.0),
    (940_000, 2.75),
    (920_000, 2.5),
    (900_000, 2.0),
    (850_000, 1.5),
    (800_000, 1.0),
    (700_000, 0.8),
    (600_000, 0.7),
    (500_000, 0.6),
    (400_000, 0.5),
    (300_000, 0.4),
    (1, 0.1),
)


def calculate_rate(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    if not chart.level_num:
        return None
    return round(chart.level_num * first_band(score_data["score"], _RATE_COEFFICIENTS, 0.0), 3)


__all__ = ["calculate_rate"]
