"""Step and piecewise-linear lookup helpers shared by rating formulas."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def first_band(value: float, bands: Sequence[tuple[float, T]], default: T) -> T:
    """Return the result of the first band (checked top-down) whose lower bound `value` reaches."""
    for lower_bound, result in bands:
        if value >= lower_bound:
            return result
    return default


def interpolate(value: float, knots: Sequence[tuple[float, float]]) -> float:
    """Linear interpolation between ascending (x, y) knots, clamped at both ends."""
    if value <= knots[0][0]:
        return knots[0][1]
    for (x0, y0), (x1, y1) in zip(knots, knots[1:]):
        if value < x1:
            return y0 + (y1 - y0) * (value - x0) / (x1 - x0)
    return knots[-1][1]


__all__ = ["first_band", "interpolate"]
