"""api/kai-iidx and api/kai-sdvx: scores from KAI-based link services."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from domain.common import ConvertedScore, DryScore
from domain.gpt import registry as gpt_registry
from domain.scoring.converters.base import (
    ImportParseError,
    ImportTypeDescriptor,
    ParsedImport,
    build_score_data,
    json_entries_parser,
    resolve_song,
    to_naive_utc,
    validate_payload,
)
from domain.scoring.failures import InvalidScoreFailure, SongOrChartNotFoundFailure
from repositories.catalog import find_chart_on_in_game_id_version

KAI_SERVICES = ("EAG", "FLO", "MIN")

IIDX_LAMPS = (
    "NO PLAY",
    "FAILED",
    "ASSIST CLEAR",
    "EASY CLEAR",
    "CLEAR",
    "HARD CLEAR",
    "EX HARD CLEAR",
    "FULL COMBO",
)
IIDX_PLAYTYPES = {"SINGLE": "SP", "DOUBLE": "DP"}

SDVX_DIFFICULTIES = ("NOV", "ADV", "EXH", "ANY_INF", "MXM")
SDVX_VERSIONS = {1: "booth", 2: "inf", 3: "gw", 4: "heaven", 5: "vivid", 6: "exceed"}
# clear_type 0 is a play without a clear
SDVX_LAMPS = ("FAILED", "CLEAR", "EXCESSIVE CLEAR", "ULTIMATE CHAIN", "PERFECT ULTIMATE CHAIN")


class KaiIIDXScore(BaseModel):
    music_id: int
    play_style: Literal["SINGLE", "DOUBLE"]
    difficulty: Literal["BEGINNER", "NORMAL", "HYPER", "ANOTHER", "LEGGENDARIA"]
    version_played: int
    lamp: int = Field(ge=0, le=7)
    ex_score: int
    miss_count: int | None = None
    fast_count: int | None = None
    slow_count: int | None = None
    timestamp: datetime


class KaiSDVXScore(BaseModel):
    music_id: int
    music_difficulty: int = Field(ge=0, le=4)
    played_version: int
    clear_type: int = Field(ge=0, le=4)
    score: int
    max_chain: int
    critical: int
    near: int
    error: int | None = None
    early: int | None = None
    late: int | None = None
    gauge_type: int = Field(ge=0, le=3)
    gauge_rate: int
    timestamp: datetime


def kai_parser(game: str):
    parse_entries = json_entries_parser(game)

    def parse(raw_input: Any, context: Mapping[str, Any]) -> ParsedImport:
        service = context.get("service")
        if service not in KAI_SERVICES:
            raise ImportParseError(f"Invalid KAI service {service!r}, expected one of {', '.join(KAI_SERVICES)}.")
        return parse_entries(raw_input, context)

    return parse


def convert_kai_iidx(
    session: Session,
    data: Any,
    context: Mapping[str, Any],
    import_type: str,
) -> ConvertedScore:
    payload = validate_payload(KaiIIDXScore, data)
    playtype = IIDX_PLAYTYPES[payload.play_style]
    config = gpt_registry.get("iidx", playtype)

    if payload.difficulty not in config.difficulties.order:
        raise InvalidScoreFailure(f"Unsupported difficulty {payload.difficulty}.")

    version = str(payload.version_played)
    if version not in config.supported_versions:
        raise InvalidScoreFailure(f"Unknown/Unsupported Game Version {payload.version_played}.")

    chart = find_chart_on_in_game_id_version(
        session, "iidx", payload.music_id, playtype, payload.difficulty, version
    )
    if chart is None:
        raise SongOrChartNotFoundFailure(
            f"Could not find chart with songID {payload.music_id} "
            f"({playtype} {payload.difficulty} - Version {version})"
        )
    song = resolve_song(session, chart)

    bp = None if payload.miss_count is None or payload.miss_count == -1 else payload.miss_count
    score_data = build_score_data(
        config,
        {"score": payload.ex_score, "lamp": IIDX_LAMPS[payload.lamp]},
        optional={"bp": bp},
    )

    dry_score = DryScore(
        game="iidx",
        import_type=import_type,
        service=str(context["service"]),
        score_data=score_data,
        time_achieved=to_naive_utc(payload.timestamp),
        score_meta={},
    )
    return ConvertedScore(song=song, chart=chart, dry_score=dry_score)


def convert_kai_sdvx(
    session: Session,
    data: Any,
    context: Mapping[str, Any],
    import_type: str,
) -> ConvertedScore:
    payload = validate_payload(KaiSDVXScore, data)
    config = gpt_registry.get("sdvx", "Single")

    difficulty = SDVX_DIFFICULTIES[payload.music_difficulty]
    version = SDVX_VERSIONS.get(payload.played_version)
    if version is None:
        raise InvalidScoreFailure(f"Unknown/Unsupported Game Version {payload.played_version}.")

    chart = find_chart_on_in_game_id_version(session, "sdvx", payload.music_id, "Single", difficulty, version)
    if chart is None:
        raise SongOrChartNotFoundFailure(
            f"Could not find chart with songID {payload.music_id} ({difficulty} - Version {version})"
        )
    song = resolve_song(session, chart)

    score_data = build_score_data(
        config,
        {"score": payload.score, "lamp": SDVX_LAMPS[payload.clear_type]},
        judgements={"critical": payload.critical, "near": payload.near, "miss": payload.error},
        optional={
            "maxCombo": payload.max_chain,
            "fast": payload.early,
            "slow": payload.late,
            "gauge": payload.gauge_rate,
        },
    )

    dry_score = DryScore(
        game="sdvx",
        import_type=import_type,
        service=str(context["service"]),
        score_data=score_data,
        time_achieved=to_naive_utc(payload.timestamp),
        score_meta={},
    )
    return ConvertedScore(song=song, chart=chart, dry_score=dry_score)


KAI_IIDX_DESCRIPTOR = ImportTypeDescriptor(
    import_type="api/kai-iidx",
    parse=kai_parser("iidx"),
    convert=convert_kai_iidx,
)

KAI_SDVX_DESCRIPTOR = ImportTypeDescriptor(
    import_type="api/kai-sdvx",
    parse=kai_parser("sdvx"),
    convert=convert_kai_sdvx,
)


__all__ = [
    "KAI_IIDX_DESCRIPTOR",
    "KAI_SDVX_DESCRIPTOR",
    "KaiIIDXScore",
    "KaiSDVXScore",
    "convert_kai_iidx",
    "convert_kai_sdvx",
]
