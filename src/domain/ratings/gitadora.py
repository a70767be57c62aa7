"""GITADORA skill."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from models import Chart


def calculate_skill(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    if not chart.level_num:
        return None
    return math.floor(chart.level_num * score_data["percent"] * 20) / 100


__all__ = ["calculate_skill"]
