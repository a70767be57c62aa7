"""Tests for score, session and profile rating algorithms."""

from __future__ import annotations

from typing import Any

import pytest

from domain.gpt import registry as gpt_registry
from domain.ratings import chunithm, gitadora, iidx, popn, sdvx, wacca
from domain.ratings import registry as rating_registry
from domain.ratings.aggregate import best_n_mean, best_n_sum
from domain.ratings.bands import first_band, interpolate
from domain.ratings.protocol import RatingKind
from models import Chart


def _chart(game: str, playtype: str, level_num: float, **data: Any) -> Chart:
    return Chart(
        chart_id=f"{game}-chart",
        song_id=1,
        game=game,
        playtype=playtype,
        difficulty="ANY",
        level=str(level_num),
        level_num=level_num,
        is_primary=True,
        versions=[],
        data=data,
    )


def test_sdvx_vf6() -> None:
    chart = _chart("sdvx", "Single", 18.0)
    score_data = {"score": 9_900_000, "grade": "S", "lamp": "EXCESSIVE CLEAR"}

    assert sdvx.calculate_vf6(score_data, chart) == pytest.approx(0.381)


def test_sdvx_vf6_needs_a_level() -> None:
    chart = _chart("sdvx", "Single", 0.0)
    assert sdvx.calculate_vf6({"score": 9_000_000, "grade": "A+", "lamp": "CLEAR"}, chart) is None


def test_gitadora_skill() -> None:
    assert gitadora.calculate_skill({"percent": 90.0}, _chart("gitadora", "Gita", 8.5)) == pytest.approx(153.0)


def test_wacca_rate_uses_score_band() -> None:
    chart = _chart("wacca", "Single", 13.0)
    assert wacca.calculate_rate({"score": 985_000}, chart) == pytest.approx(48.75)
    assert wacca.calculate_rate({"score": 0}, chart) == 0.0


def test_popn_class_points_clear_bonus() -> None:
    chart = _chart("popn", "9B", 40.0)
    assert popn.calculate_class_points({"score": 98_000, "lamp": "CLEAR"}, chart) == pytest.approx(73.71)
    assert popn.calculate_class_points({"score": 98_000, "lamp": "FAILED"}, chart) == pytest.approx(73.16)


def test_chunithm_rating_offsets() -> None:
    chart = _chart("chunithm", "Single", 14.0)
    assert chunithm.calculate_rating({"score": 1_007_500}, chart) == pytest.approx(16.0)
    assert chunithm.calculate_rating({"score": 975_000}, chart) == pytest.approx(14.0)
    assert chunithm.calculate_rating({"score": 400_000}, chart) == 0.0


def test_iidx_lamp_rating_uses_tiers() -> None:
    chart = _chart("iidx", "SP", 12.0, ncTier=11.8, hcTier=12.4)
    lamp = gpt_registry.get("iidx", "SP").metric("lamp")

    assert iidx.calculate_kt_lamp_rating({"lampIndex": lamp.index_of("HARD CLEAR")}, chart) == pytest.approx(12.4)
    assert iidx.calculate_kt_lamp_rating({"lampIndex": lamp.index_of("CLEAR")}, chart) == pytest.approx(12.0)
    assert iidx.calculate_kt_lamp_rating({"lampIndex": lamp.index_of("FAILED")}, chart) == 0.0


def test_iidx_bpi() -> None:
    chart = _chart("iidx", "SP", 12.0, notecount=1000, kaidenAverage=1600, worldRecord=1900)

    assert iidx.calculate_bpi({"score": 1900}, chart) == pytest.approx(100.0)
    assert iidx.calculate_bpi({"score": 1600}, chart) == pytest.approx(0.0)
    assert iidx.calculate_bpi({"score": 1400}, chart) < 0


def test_iidx_bpi_without_chart_data_is_none() -> None:
    chart = _chart("iidx", "SP", 12.0, notecount=1000)
    assert iidx.calculate_bpi({"score": 1900}, chart) is None


def test_aggregates_take_best_n() -> None:
    assert best_n_sum(2)([1.0, 5.0, 3.0]) == pytest.approx(8.0)
    assert best_n_mean(2)([1.0, 5.0, 3.0]) == pytest.approx(4.0)
    assert best_n_mean(20)([2.0]) == pytest.approx(2.0)
    assert best_n_sum(2)([]) is None


def test_band_helpers() -> None:
    bands = ((10, "high"), (5, "mid"))
    assert first_band(12, bands, "low") == "high"
    assert first_band(5, bands, "low") == "mid"
    assert first_band(1, bands, "low") == "low"

    knots = ((0.0, 0.0), (10.0, 100.0))
    assert interpolate(-1.0, knots) == 0.0
    assert interpolate(2.5, knots) == pytest.approx(25.0)
    assert interpolate(11.0, knots) == 100.0


@pytest.mark.parametrize("config", gpt_registry.get_all(), ids=lambda config: config.name)
def test_every_gpt_declares_registered_algorithms(config) -> None:
    rating_registry.validate_gpt_config(config)


def test_aggregate_reads_its_source_score_algorithm() -> None:
    profile = rating_registry.get("popn", RatingKind.PROFILE, "naiveClassPoints")
    assert profile.source_score_alg == "classPoints"

    session = rating_registry.get("iidx", RatingKind.SESSION, "BPI")
    assert session.source_score_alg == "BPI"


def test_unknown_algorithm_raises_key_error() -> None:
    with pytest.raises(KeyError, match="ktLampRating"):
        rating_registry.get("iidx", RatingKind.SCORE, "notARating")


def test_duplicate_registration_is_rejected() -> None:
    existing = rating_registry.get("sdvx", RatingKind.SCORE, "VF6")
    with pytest.raises(ValueError, match="Duplicate"):
        rating_registry.register(existing)
