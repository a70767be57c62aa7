"""beatmania IIDX score ratings: ktLampRating and BPI."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from domain.gpt import registry as gpt_registry
from models import Chart

DEFAULT_BPI_POWER = 1.175
BPI_FLOOR = -15.0

# (minimum lamp, chart.data key holding that lamp's tier value)
_CLEAR_TIERS = (
    ("CLEAR", "ncTier"),
    ("HARD CLEAR", "hcTier"),
    ("EX HARD CLEAR", "exhcTier"),
)


def calculate_kt_lamp_rating(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    """The chart's clear tier for the best lamp reached, falling back to its level."""
    lamp = gpt_registry.get(chart.game, chart.playtype).metric("lamp")
    lamp_index = score_data["lampIndex"]

    if lamp_index < lamp.index_of("CLEAR"):
        return 0.0

    rating = chart.level_num
    for lamp_name, tier_key in _CLEAR_TIERS:
        tier_value = chart.data.get(tier_key)
        if tier_value is not None and lamp_index >= lamp.index_of(lamp_name):
            rating = max(rating, float(tier_value))
    return rating


def calculate_bpi(score_data: Mapping[str, Any], chart: Chart) -> float | None:
    """Beat Performance Index of an EX score.

    0 is the kaiden average, 100 the world record. Charts without kaiden average
    or world record data have no BPI.
    """
    kaiden_average = chart.data.get("kaidenAverage")
    world_record = chart.data.get("worldRecord")
    notecount = chart.data.get("notecount")
    if kaiden_average is None or world_record is None or not notecount:
        return None

    power = chart.data.get("bpiCoefficient") or DEFAULT_BPI_POWER
    if power <= 0:
        power = DEFAULT_BPI_POWER

    max_score = notecount * 2
    score = score_data["score"]

    kaiden_pgf = _pgf(kaiden_average, max_score)
    s_prime = _pgf(score, max_score) / kaiden_pgf
    z_prime = _pgf(world_record, max_score) / kaiden_pgf

    log_z = math.log(z_prime)
    if log_z <= 0:
        return None

    bpi = 100 * (abs(math.log(s_prime)) ** power) / (log_z**power)
    if score < kaiden_average:
        bpi = -bpi

    return round(max(bpi, BPI_FLOOR), 2)


def _pgf(score: float, max_score: float) -> float:
    if score >= max_score:
        return max_score * 0.8
    ratio = score / max_score
    return 1 + (ratio - 0.5) / (1 - ratio)


__all__ = ["calculate_bpi", "calculate_kt_lamp_rating"]
