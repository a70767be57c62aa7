"""Tests for import parsers and score converters."""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from conftest import NOW, add_chart, add_song, batch_manual_payload, iidx_score, seed_iidx_catalog
from domain.classes.values import IIDXDans
from domain.scoring.converters import registry as converter_registry
from domain.scoring.converters.base import ImportParseError
from domain.scoring.converters.batch_manual import convert_batch_manual, parse_batch_manual
from domain.scoring.converters.cg_museca import convert_cg_museca, format_cg_service, get_museca_lamp
from domain.scoring.converters.eamusement_csv import COLUMN_COUNT, convert_eamusement_csv, parse_eamusement_csv
from domain.scoring.converters.kai import convert_kai_iidx
from domain.scoring.failures import InvalidScoreFailure, SongOrChartNotFoundFailure
from models import Chart, Song


def _convert_one(session: Session, payload: dict) -> object:
    parsed = parse_batch_manual(payload, {})
    return convert_batch_manual(session, parsed.entries[0], parsed.context, "file/batch-manual")


def test_registry_lists_every_import_type() -> None:
    assert [descriptor.import_type for descriptor in converter_registry.get_all()] == [
        "api/cg-museca",
        "api/kai-iidx",
        "api/kai-sdvx",
        "file/batch-manual",
        "file/eamusement-iidx-csv",
    ]
    with pytest.raises(KeyError, match="file/batch-manual"):
        converter_registry.get("file/unknown")


def test_batch_manual_matches_on_title(session: Session) -> None:
    charts = seed_iidx_catalog(session)

    converted = _convert_one(
        session,
        batch_manual_payload([iidx_score("aa", 1500, "HARD CLEAR", timeAchieved=1714564800000, optional={"bp": 4})]),
    )

    assert converted.chart is charts[1]
    assert converted.song.title == "AA"
    assert converted.dry_score.service == "test"
    assert converted.dry_score.time_achieved == NOW
    assert converted.dry_score.score_data == {
        "score": 1500,
        "lamp": "HARD CLEAR",
        "judgements": {},
        "optional": {"bp": 4},
    }


def test_batch_manual_matches_on_in_game_id_and_version(session: Session) -> None:
    charts = seed_iidx_catalog(session)
    score = iidx_score("1003", 1200, "CLEAR")
    score["matchType"] = "inGameID"

    converted = _convert_one(session, batch_manual_payload([score], version="31"))

    assert converted.chart is charts[2]


def test_batch_manual_unknown_song(session: Session) -> None:
    seed_iidx_catalog(session)

    with pytest.raises(SongOrChartNotFoundFailure):
        _convert_one(session, batch_manual_payload([iidx_score("Not A Song", 1500, "CLEAR")]))


def test_batch_manual_invalid_lamp(session: Session) -> None:
    seed_iidx_catalog(session)

    with pytest.raises(InvalidScoreFailure, match="lamp"):
        _convert_one(session, batch_manual_payload([iidx_score("AA", 1500, "SUPER CLEAR")]))


def test_batch_manual_unknown_optional_metric(session: Session) -> None:
    seed_iidx_catalog(session)

    with pytest.raises(InvalidScoreFailure, match="fast"):
        _convert_one(session, batch_manual_payload([iidx_score("AA", 1500, "CLEAR", optional={"fast": 1})]))


def test_batch_manual_parses_classes() -> None:
    payload = batch_manual_payload([])
    payload["classes"] = {"dan": "KAIDEN"}

    parsed = parse_batch_manual(payload, {})

    assert parsed.classes == {"dan": int(IIDXDans.KAIDEN)}
    assert parsed.classes_playtype == "SP"


@pytest.mark.parametrize(
    ("meta", "classes"),
    [
        ({"game": "iidx", "playtype": "Triple"}, None),
        ({"version": "1"}, None),
        ({}, {"dan": "DAN_11"}),
        ({}, {"vfClass": "CYAN_I"}),
    ],
)
def test_batch_manual_rejects_bad_documents(meta: dict, classes: dict | None) -> None:
    payload = batch_manual_payload([], **meta)
    if classes is not None:
        payload["classes"] = classes

    with pytest.raises(ImportParseError):
        parse_batch_manual(payload, {})


def test_batch_manual_rejects_non_document() -> None:
    with pytest.raises(ImportParseError):
        parse_batch_manual([1, 2, 3], {})


def test_museca_lamps_and_services() -> None:
    assert get_museca_lamp(1_000_000, 0) == "PERFECT CONNECT ALL"
    assert get_museca_lamp(950_000, 0) == "CONNECT ALL"
    assert get_museca_lamp(850_000, 3) == "CLEAR"
    assert get_museca_lamp(700_000, 3) == "FAILED"
    assert format_cg_service("gan") == "GAN"
    assert format_cg_service("other") == "OTHER"


def test_cg_museca_converts(session: Session) -> None:
    song = add_song(session, game="museca", title="Museca Song", song_id=10)
    chart = add_chart(
        session,
        song=song,
        chart_id="museca-red",
        playtype="Single",
        difficulty="Red",
        in_game_id=5,
        versions=["1.5-b"],
    )
    data = {
        "internalId": 5,
        "difficulty": 2,
        "version": 2,
        "score": 950_000,
        "critical": 900,
        "near": 10,
        "error": 0,
        "maxChain": 910,
        "dateTime": "2024-05-01T12:00:00Z",
    }

    converted = convert_cg_museca(session, data, {"service": "nag"}, "api/cg-museca")

    assert converted.chart is chart
    assert converted.dry_score.service == "NAG"
    assert converted.dry_score.time_achieved == NOW
    assert converted.dry_score.score_data["lamp"] == "CONNECT ALL"
    assert converted.dry_score.score_data["judgements"] == {"critical": 900, "near": 10, "miss": 0}


def test_cg_museca_unknown_version(session: Session) -> None:
    data = {
        "internalId": 5,
        "difficulty": 2,
        "version": 9,
        "score": 950_000,
        "critical": 900,
        "near": 10,
        "error": 0,
        "maxChain": 910,
        "dateTime": "2024-05-01T12:00:00Z",
    }
    with pytest.raises(InvalidScoreFailure, match="Version"):
        convert_cg_museca(session, data, {}, "api/cg-museca")


def test_kai_parser_requires_known_service() -> None:
    descriptor = converter_registry.get("api/kai-iidx")

    with pytest.raises(ImportParseError, match="KAI service"):
        descriptor.parse([], {"service": "XYZ"})
    assert descriptor.parse([{}], {"service": "FLO"}).entries == [{}]


def test_kai_iidx_converts(session: Session) -> None:
    charts = seed_iidx_catalog(session)
    data = {
        "music_id": 1001,
        "play_style": "SINGLE",
        "difficulty": "ANOTHER",
        "version_played": 30,
        "lamp": 5,
        "ex_score": 1500,
        "miss_count": -1,
        "timestamp": "2024-05-01T12:00:00+00:00",
    }

    converted = convert_kai_iidx(session, data, {"service": "FLO"}, "api/kai-iidx")

    assert converted.chart is charts[0]
    assert converted.dry_score.score_data["lamp"] == "HARD CLEAR"
    assert converted.dry_score.score_data["optional"] == {}
    assert converted.dry_score.time_achieved == NOW


def test_kai_iidx_invalid_payload(session: Session) -> None:
    with pytest.raises(InvalidScoreFailure, match="Invalid payload"):
        convert_kai_iidx(session, {"music_id": 1001}, {"service": "FLO"}, "api/kai-iidx")


def _csv(*rows: list[str]) -> str:
    header = ",".join(f"col{index}" for index in range(COLUMN_COUNT))
    return "\n".join([header, *(",".join(row) for row in rows)])


def _csv_row(
    title: str, another: list[str], timestamp: str = "2024-05-01 21:00", version: str = "31"
) -> list[str]:
    unplayed = ["0", "0", "0", "0", "---", "NO PLAY", "---"]
    return [version, title, "Genre", "Artist", "3", *unplayed, *unplayed, *unplayed, *another, *unplayed, timestamp]


def test_eamusement_csv_parses_played_difficulties() -> None:
    raw = _csv(_csv_row("AA", ["12", "1500", "600", "300", "5", "HARD CLEAR", "AA"]))

    parsed = parse_eamusement_csv(raw, {"playtype": "SP"})

    assert parsed.game == "iidx"
    assert parsed.context == {"playtype": "SP", "service": "e-amusement"}
    assert len(parsed.entries) == 1
    assert parsed.entries[0]["difficulty"] == "ANOTHER"


def test_eamusement_csv_converts(session: Session) -> None:
    charts = seed_iidx_catalog(session)
    parsed = parse_eamusement_csv(
        _csv(_csv_row("AA", ["12", "1500", "600", "300", "---", "HARD CLEAR", "AA"])),
        {"playtype": "SP"},
    )

    converted = convert_eamusement_csv(session, parsed.entries[0], parsed.context, "file/eamusement-iidx-csv")

    assert converted.chart is charts[1]
    assert converted.dry_score.time_achieved == NOW
    assert converted.dry_score.score_data["judgements"] == {"pgreat": 600, "great": 300}
    assert converted.dry_score.score_data["optional"] == {}


def _convert_csv_row(session: Session, row: list[str]) -> object:
    parsed = parse_eamusement_csv(_csv(row), {"playtype": "SP"})
    return convert_eamusement_csv(session, parsed.entries[0], parsed.context, "file/eamusement-iidx-csv")


def test_eamusement_csv_translates_full_combo(session: Session) -> None:
    seed_iidx_catalog(session)

    full_combo = ["12", "2000", "1000", "0", "0", "FULLCOMBO CLEAR", "MAX"]

    converted = _convert_csv_row(session, _csv_row("AA", full_combo))

    assert converted.dry_score.score_data["lamp"] == "FULL COMBO"


def test_eamusement_csv_rejects_unknown_lamp(session: Session) -> None:
    seed_iidx_catalog(session)

    with pytest.raises(InvalidScoreFailure, match="lamp"):
        _convert_csv_row(session, _csv_row("AA", ["12", "1500", "600", "300", "5", "SUPER CLEAR", "AA"]))


def _add_infinitas_chart(session: Session) -> Chart:
    song = session.get(Song, 2)
    assert song is not None
    return add_chart(
        session,
        song=song,
        chart_id="iidx-sp-a-2-inf",
        playtype="SP",
        difficulty="ANOTHER",
        level_num=12.0,
        versions=["inf"],
        is_primary=False,
        data={"notecount": 1000},
    )


@pytest.mark.parametrize(
    ("version", "expected"),
    [("inf", "iidx-sp-a-2-inf"), ("31", "iidx-sp-a-2"), ("", "iidx-sp-a-2")],
)
def test_eamusement_csv_resolves_chart_by_version(session: Session, version: str, expected: str) -> None:
    seed_iidx_catalog(session)
    _add_infinitas_chart(session)
    another = ["12", "1500", "600", "300", "5", "HARD CLEAR", "AA"]

    converted = _convert_csv_row(session, _csv_row("AA", another, version=version))

    assert converted.chart.chart_id == expected


def test_batch_manual_title_match_uses_version(session: Session) -> None:
    seed_iidx_catalog(session)
    chart = _add_infinitas_chart(session)

    converted = _convert_one(session, batch_manual_payload([iidx_score("AA", 1500, "CLEAR")], version="inf"))

    assert converted.chart is chart


@pytest.mark.parametrize(
    ("raw", "context"),
    [
        ("", {"playtype": "SP"}),
        ("a,b,c", {"playtype": "SP"}),
        (_csv(), {"playtype": "Triple"}),
    ],
)
def test_eamusement_csv_rejects_bad_files(raw: str, context: dict) -> None:
    with pytest.raises(ImportParseError):
        parse_eamusement_csv(raw, context)
