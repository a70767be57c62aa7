"""Estimated standard deviation (ESD) of hit timing from a score percentage.

Hits are modelled as normally distributed around the note with standard
deviation `sd`; each judgement window pays its value. The ESD is the `sd` whose
expected percentage equals the observed one.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from domain.gpt.config import JudgementWindow

MAX_ESD = 200.0
_TOLERANCE = 1e-6
_MAX_ITERATIONS = 100


def expected_percent(windows: Sequence[JudgementWindow], sd: float) -> float:
    """Expected score percentage for hits with standard deviation `sd` (ms)."""
    max_value = windows[0].value
    if sd <= 0:
        return 100.0

    total = 0.0
    inside_previous = 0.0
    for window in windows:
        inside = math.erf(window.ms / (sd * math.sqrt(2)))
        total += (inside - inside_previous) * window.value
        inside_previous = inside
    return 100 * total / max_value


def calculate_esd(windows: Sequence[JudgementWindow], percent: float) -> float:
    """Bisect for the deviation matching `percent`; capped at MAX_ESD."""
    if percent >= 100:
        return 0.0
    if expected_percent(windows, MAX_ESD) >= percent:
        return MAX_ESD

    low, high = 0.0, MAX_ESD
    for _ in range(_MAX_ITERATIONS):
        middle = (low + high) / 2
        if expected_percent(windows, middle) > percent:
            low = middle
        else:
            high = middle
        if high - low < _TOLERANCE:
            break
    return round((low + high) / 2, 4)


__all__ = ["MAX_ESD", "calculate_esd", "expected_percent"]
