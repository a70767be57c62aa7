"""file/batch-manual: a generic JSON batch of scores, optionally with class values."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.orm import Session

from domain.common import ConvertedScore, DryScore
from domain.gpt import registry as gpt_registry
from domain.gpt.config import DifficultyType, GPTConfig
from domain.scoring.converters.base import (
    ImportParseError,
    ImportTypeDescriptor,
    ParsedImport,
    build_score_data,
    ensure_json_storable,
    from_unix_ms,
    resolve_song,
    validate_payload,
)
from domain.scoring.failures import InvalidScoreFailure, SongOrChartNotFoundFailure
from models import Chart, Song
from repositories.catalog import (
    find_chart_on_in_game_id_version,
    find_chart_with_difficulty,
    find_song_on_id,
    find_song_on_title,
)

IMPORT_TYPE = "file/batch-manual"


class BatchManualMeta(BaseModel):
    game: str
    playtype: str
    service: str = Field(min_length=1, max_length=60)
    version: str | None = None


class BatchManualDocument(BaseModel):
    meta: BatchManualMeta
    scores: list[dict[str, Any]]
    classes: dict[str, str] | None = None


class BatchManualScore(BaseModel):
    """One score. Every field not declared here is read as a mandatory metric."""

    model_config = ConfigDict(extra="allow")

    matchType: Literal["inGameID", "tachiSongID", "songTitle"]
    identifier: str
    difficulty: str | None = None
    timeAchieved: int | None = None
    comment: str | None = Field(default=None, max_length=240)
    judgements: dict[str, int | None] = Field(default_factory=dict)
    optional: dict[str, Any] = Field(default_factory=dict)
    scoreMeta: dict[str, Any] = Field(default_factory=dict)


def parse_batch_manual(raw_input: Any, context: Mapping[str, Any]) -> ParsedImport:
    try:
        document = BatchManualDocument.model_validate(raw_input)
    except ValidationError as exc:
        raise ImportParseError(f"Invalid batch-manual document: {exc.errors()[0]['msg']}") from exc

    meta = document.meta
    if not gpt_registry.is_supported(meta.game, meta.playtype):
        raise ImportParseError(f"Unsupported game/playtype {meta.game} {meta.playtype}.")
    config = gpt_registry.get(meta.game, meta.playtype)

    if meta.version is not None and meta.version not in config.supported_versions:
        raise ImportParseError(f"Unsupported version {meta.version} for {config.name}.")

    return ParsedImport(
        game=meta.game,
        entries=list(document.scores),
        context={
            "game": meta.game,
            "playtype": meta.playtype,
            "service": meta.service,
            "version": meta.version,
        },
        classes=_parse_classes(config, document.classes or {}),
        classes_playtype=meta.playtype,
    )


def _parse_classes(config: GPTConfig, raw_classes: Mapping[str, str]) -> dict[str, int]:
    classes: dict[str, int] = {}
    for class_set, class_name in raw_classes.items():
        class_config = config.supported_classes.get(class_set)
        if class_config is None or not class_config.can_be_batch_manual_submitted:
            raise ImportParseError(f"Class '{class_set}' cannot be submitted for {config.name}.")
        try:
            classes[class_set] = class_config.value_of(class_name)
        except KeyError as exc:
            raise ImportParseError(f"Invalid value {class_name!r} for class '{class_set}'.") from exc
    return classes


def convert_batch_manual(
    session: Session,
    data: Any,
    context: Mapping[str, Any],
    import_type: str,
) -> ConvertedScore:
    payload = validate_payload(BatchManualScore, data)
    game = str(context["game"])
    playtype = str(context["playtype"])
    config = gpt_registry.get(game, playtype)

    if payload.matchType not in config.supported_match_types:
        raise InvalidScoreFailure(f"Match type {payload.matchType} is not supported for {config.name}.")

    difficulty = payload.difficulty or config.difficulties.default
    if difficulty is None or (
        config.difficulties.type is DifficultyType.FIXED and difficulty not in config.difficulties.order
    ):
        raise InvalidScoreFailure(f"Invalid difficulty {payload.difficulty!r} for {config.name}.")

    song, chart = _resolve_chart(session, config, payload, difficulty, context.get("version"))

    score_data = build_score_data(
        config,
        payload.model_extra or {},
        judgements=payload.judgements,
        optional=payload.optional,
    )
    ensure_json_storable(payload.scoreMeta, "scoreMeta")

    dry_score = DryScore(
        game=game,
        import_type=import_type,
        service=str(context["service"]),
        score_data=score_data,
        time_achieved=_time_achieved(payload.timeAchieved),
        comment=payload.comment,
        score_meta=dict(payload.scoreMeta),
    )
    return ConvertedScore(song=song, chart=chart, dry_score=dry_score)


def _time_achieved(value: int | None) -> datetime | None:
    if value is None:
        return None
    try:
        return from_unix_ms(value)
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidScoreFailure("Invalid timeAchieved, expected unix milliseconds.") from exc


def _resolve_chart(
    session: Session,
    config: GPTConfig,
    payload: BatchManualScore,
    difficulty: str,
    version: str | None,
) -> tuple[Song, Chart]:
    not_found = SongOrChartNotFoundFailure(
        f"Could not find chart for {payload.matchType} {payload.identifier} "
        f"({config.playtype} {difficulty})."
    )

    if payload.matchType == "inGameID":
        try:
            in_game_id = int(payload.identifier)
        except ValueError as exc:
            raise InvalidScoreFailure(f"Invalid inGameID {payload.identifier!r}.") from exc
        chart = find_chart_on_in_game_id_version(
            session, config.game, in_game_id, config.playtype, difficulty, version
        )
        if chart is None:
            raise not_found
        return resolve_song(session, chart), chart

    if payload.matchType == "tachiSongID":
        try:
            song_id = int(payload.identifier)
        except ValueError as exc:
            raise InvalidScoreFailure(f"Invalid song ID {payload.identifier!r}.") from exc
        song = find_song_on_id(session, config.game, song_id)
    else:
        song = find_song_on_title(session, config.game, payload.identifier)

    if song is None:
        raise not_found
    chart = find_chart_with_difficulty(session, config.game, song.id, config.playtype, difficulty, version)
    if chart is None:
        raise not_found
    return song, chart


DESCRIPTOR = ImportTypeDescriptor(
    import_type=IMPORT_TYPE,
    parse=parse_batch_manual,
    convert=convert_batch_manual,
)


__all__ = ["BatchManualScore", "DESCRIPTOR", "convert_batch_manual", "parse_batch_manual"]
