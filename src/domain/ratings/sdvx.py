"""SOUND VOLTEX score rating (VF6)."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from models import Chart

VF6_GRADE_COEFFICIENTS = {
    "PUC": 1.05,
    "S": 1.05,
    "AAA+": 1.02,
    "AAA": 1.0,
    "AA+": 0.97,
    "AA": 0.94,
    "A+": 0.91,
    "A": 0.88,
    "B": 0.85,
    "C": 0.82,
    "D": 0.8,
}

VF6_LAMP_COEFFICIENTS = {
    "PERFECT ULTIMATE CHAIN": 1.1,
    "ULTIMATE CHAIN": 1.05,
    "EXCESSIVE CLEAR": 1.02,
    "CLEAR": 1.0,
    "FAILED": 0.5,
}


def calculate_vf6(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    if not chart.level_num:
        return None

    grade_coefficient = VF6_GRADE_COEFFICIENTS[score_data["grade"]]
    lamp_coefficient = VF6_LAMP_COEFFICIENTS[score_data["lamp"]]
    score_ratio = score_data["score"] / 10_000_000

    return math.floor(chart.level_num * score_ratio * grade_coefficient * lamp_coefficient * 20) / 1000


__all__ = ["VF6_GRADE_COEFFICIENTS", "VF6_LAMP_COEFFICIENTS", "calculate_vf6"]
