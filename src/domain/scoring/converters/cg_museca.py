"""api/cg-museca: MÚSECA scores from a CG link service."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel
from sqlalchemy.orm import Session

from domain.common import ConvertedScore, DryScore
from domain.gpt import registry as gpt_registry
from domain.scoring.converters.base import (
    ImportTypeDescriptor,
    build_score_data,
    json_entries_parser,
    resolve_song,
    to_naive_utc,
    validate_payload,
)
from domain.scoring.failures import InvalidScoreFailure, SongOrChartNotFoundFailure
from repositories.catalog import find_chart_on_in_game_id_version

IMPORT_TYPE = "api/cg-museca"

DIFFICULTIES = {0: "Green", 1: "Yellow", 2: "Red"}
VERSIONS = {2: "1.5-b"}
SERVICES = {"dev": "CG Dev", "gan": "GAN", "nag": "NAG"}


class CGMusecaScore(BaseModel):
    internalId: int
    difficulty: int
    version: int
    score: int
    critical: int
    near: int
    error: int
    maxChain: int
    dateTime: datetime


def get_museca_lamp(score: int, error: int) -> str:
    if score == 1_000_000:
        return "PERFECT CONNECT ALL"
    if error == 0:
        return "CONNECT ALL"
    if score >= 800_000:
        return "CLEAR"
    return "FAILED"


def format_cg_service(service: str) -> str:
    return SERVICES.get(service.lower(), service.upper())


def convert_cg_museca(
    session: Session,
    data: Any,
    context: Mapping[str, Any],
    import_type: str,
) -> ConvertedScore:
    payload = validate_payload(CGMusecaScore, data)
    config = gpt_registry.get("museca", "Single")

    difficulty = DIFFICULTIES.get(payload.difficulty)
    if difficulty is None:
        raise InvalidScoreFailure(f"Invalid difficulty of {payload.difficulty} - Could not convert.")

    version = VERSIONS.get(payload.version)
    if version is None:
        raise InvalidScoreFailure(f"Unknown/Unsupported Game Version {payload.version}.")

    chart = find_chart_on_in_game_id_version(
        session, "museca", payload.internalId, "Single", difficulty, version
    )
    if chart is None:
        raise SongOrChartNotFoundFailure(
            f"Could not find chart with songID {payload.internalId} ({difficulty} - Version {version})"
        )
    song = resolve_song(session, chart)

    score_data = build_score_data(
        config,
        {"score": payload.score, "lamp": get_museca_lamp(payload.score, payload.error)},
        judgements={"critical": payload.critical, "near": payload.near, "miss": payload.error},
        optional={"maxCombo": payload.maxChain},
    )

    dry_score = DryScore(
        game="museca",
        import_type=import_type,
        service=format_cg_service(str(context.get("service", "dev"))),
        score_data=score_data,
        time_achieved=to_naive_utc(payload.dateTime),
        comment=None,
        score_meta={},
    )
    return ConvertedScore(song=song, chart=chart, dry_score=dry_score)


DESCRIPTOR = ImportTypeDescriptor(
    import_type=IMPORT_TYPE,
    parse=json_entries_parser("museca"),
    convert=convert_cg_museca,
)


__all__ = ["CGMusecaScore", "DESCRIPTOR", "convert_cg_museca", "get_museca_lamp"]
