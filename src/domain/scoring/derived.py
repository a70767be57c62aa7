"""Catalog of formulas that compute derived metrics from mandatory ones."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from domain.scoring.failures import InternalFailure, InvalidScoreFailure
from models import Chart

DerivedFormula = Callable[[Mapping[str, Any], Chart, Mapping[str, Any], tuple[str, ...]], Any]


def percent_of_notecount(
    values: Mapping[str, Any],
    chart: Chart,
    params: Mapping[str, Any],
    enum_values: tuple[str, ...],
) -> float:
    """`source` as a percentage of notecount * multiplier (e.g. EX score out of 2 per note)."""
    notecount = chart.data.get("notecount")
    if not notecount:
        raise InternalFailure(f"Chart {chart.chart_id} has no notecount, cannot derive percent.")

    maximum = notecount * params.get("multiplier", 1)
    return _percent(values[params.get("source", "score")], maximum)


def percent_of_max(
    values: Mapping[str, Any],
    chart: Chart,
    params: Mapping[str, Any],
    enum_values: tuple[str, ...],
) -> float:
    return _percent(values[params.get("source", "score")], params["max"])


def enum_from_thresholds(
    values: Mapping[str, Any],
    chart: Chart,
    params: Mapping[str, Any],
    enum_values: tuple[str, ...],
) -> str:
    """Pick the highest enum value whose lower boundary the source metric reaches."""
    source_value = values[params["source"]]
    result = enum_values[0]
    for boundary, enum_value in zip(params["boundaries"], enum_values):
        if source_value >= boundary:
            result = enum_value
    return result


def _percent(value: float, maximum: float) -> float:
    percent = 100 * value / maximum
    if percent > 100:
        raise InvalidScoreFailure(f"Score of {value} is greater than the maximum of {maximum}.")
    if percent < 0:
        raise InvalidScoreFailure(f"Score of {value} is negative.")
    return percent


DERIVED_FORMULAS: dict[str, DerivedFormula] = {
    "percent_of_notecount": percent_of_notecount,
    "percent_of_max": percent_of_max,
    "enum_from_thresholds": enum_from_thresholds,
}


__all__ = ["DERIVED_FORMULAS", "DerivedFormula"]
