"""Tests for score hydration and score IDs."""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from conftest import NOW, add_chart, add_song, seed_iidx_catalog
from domain.common import DryScore
from domain.gpt import registry as gpt_registry
from domain.scoring.esd import MAX_ESD
from domain.scoring.failures import InternalFailure, InvalidScoreFailure
from domain.scoring.hydrate import hydrate_score
from domain.scoring.score_id import create_score_id
from models import Song


def _song(session: Session, song_id: int) -> Song:
    song = session.get(Song, song_id)
    assert song is not None
    return song


def _dry_score(score: int = 1800, lamp: str = "HARD CLEAR", **optional: object) -> DryScore:
    return DryScore(
        game="iidx",
        import_type="file/batch-manual",
        service="test",
        score_data={"score": score, "lamp": lamp, "judgements": {"pgreat": 800}, "optional": dict(optional)},
        time_achieved=NOW,
    )


def test_hydrate_fills_derived_metrics_and_indexes(session: Session) -> None:
    chart = seed_iidx_catalog(session)[0]

    document = hydrate_score(1, _dry_score(bp=12), chart, _song(session, chart.song_id), "R1", now=NOW)

    assert document.score_data["percent"] == pytest.approx(90.0)
    assert document.score_data["grade"] == "AAA"
    assert document.score_data["lampIndex"] == 5
    assert document.score_data["gradeIndex"] == 7
    assert document.score_data["judgements"] == {"pgreat": 800}
    assert document.score_data["optional"] == {"bp": 12, "gauge": None, "comboBreak": None, "gaugeHistory": None}
    assert document.score_data["esd"] > 0
    assert document.calculated_data == {"ktLampRating": pytest.approx(11.0)}
    assert document.time_added == NOW
    assert document.chart_id == chart.chart_id
    assert document.song_id == chart.song_id


def test_hydrate_key_set_matches_gpt(session: Session) -> None:
    chart = seed_iidx_catalog(session)[0]
    config = gpt_registry.get("iidx", "SP")

    document = hydrate_score(1, _dry_score(), chart, _song(session, chart.song_id), "R1", now=NOW)

    expected = {metric.name for metric in config.scored_metrics()}
    expected |= {f"{metric.name}Index" for metric in config.enum_metrics()}
    expected |= {"esd", "judgements", "optional"}
    assert set(document.score_data) == expected


def test_hydrate_is_deterministic(session: Session) -> None:
    chart = seed_iidx_catalog(session)[1]
    song = _song(session, chart.song_id)

    first = hydrate_score(1, _dry_score(), chart, song, "R1", now=NOW)
    second = hydrate_score(1, _dry_score(), chart, song, "R1", now=NOW)

    assert first == second


def test_hydrate_rejects_score_above_maximum(session: Session) -> None:
    chart = seed_iidx_catalog(session)[0]

    with pytest.raises(InvalidScoreFailure):
        hydrate_score(1, _dry_score(score=2001), chart, _song(session, chart.song_id), "R1", now=NOW)


def test_hydrate_without_notecount_is_internal_failure(session: Session) -> None:
    song = add_song(session, game="iidx", title="No Notes", song_id=50)
    chart = add_chart(session, song=song, chart_id="iidx-no-notes", playtype="SP", difficulty="ANOTHER")

    with pytest.raises(InternalFailure, match="notecount"):
        hydrate_score(1, _dry_score(), chart, song, "R1", now=NOW)


def test_score_id_ignores_time_and_service() -> None:
    config = gpt_registry.get("iidx", "SP")
    first = create_score_id(config, 1, "chart", _dry_score())
    other_service = DryScore(
        game="iidx",
        import_type="api/kai-iidx",
        service="FLO",
        score_data=_dry_score().score_data,
        time_achieved=None,
    )

    assert first.startswith("R")
    assert first == create_score_id(config, 1, "chart", other_service)
    assert first != create_score_id(config, 2, "chart", _dry_score())
    assert first != create_score_id(config, 1, "chart", _dry_score(score=1801))


@pytest.mark.parametrize(
    ("game", "playtype", "difficulty", "score", "lamp", "percent"),
    [
        ("sdvx", "Single", "EXH", 9_500_000, "CLEAR", 95.0),
        ("museca", "Single", "Red", 900_000, "CLEAR", 90.0),
        ("popn", "9B", "EX", 85_000, "CLEAR", 85.0),
    ],
)
def test_hydrate_esd_from_score_percent(
    session: Session, game: str, playtype: str, difficulty: str, score: int, lamp: str, percent: float
) -> None:
    song = add_song(session, game=game, title="Song", song_id=60)
    chart = add_chart(session, song=song, chart_id=f"{game}-chart", playtype=playtype, difficulty=difficulty)
    dry_score = DryScore(
        game=game,
        import_type="file/batch-manual",
        service="test",
        score_data={"score": score, "lamp": lamp, "judgements": {}, "optional": {}},
        time_achieved=NOW,
    )

    document = hydrate_score(1, dry_score, chart, song, "R1", now=NOW)

    assert document.score_data["percent"] == pytest.approx(percent)
    assert 0 < document.score_data["esd"] < MAX_ESD
