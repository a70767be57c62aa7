"""Shared pieces of every import type: descriptor, payload validation and metric checks."""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from domain.common import ConvertedScore
from domain.gpt.config import GPTConfig, MetricConfig, MetricType
from domain.scoring.failures import InternalFailure, InvalidScoreFailure
from models import Chart, Song
from repositories.catalog import find_song_on_id

PayloadT = TypeVar("PayloadT", bound=BaseModel)

# integers past this lose precision once a rating formula turns them into floats
MAX_METRIC_MAGNITUDE = 2**53


@dataclass(frozen=True)
class ParsedImport:
    """What a parser hands to the importer: one game, its entries and shared context."""

    game: str
    entries: list[Any]
    context: dict[str, Any] = field(default_factory=dict)
    # class values submitted alongside the scores, for one playtype
    classes: dict[str, int] = field(default_factory=dict)
    classes_playtype: str | None = None


ParseFn = Callable[[Any, Mapping[str, Any]], ParsedImport]
ConvertFn = Callable[[Session, Any, Mapping[str, Any], str], ConvertedScore]


@dataclass(frozen=True)
class ImportTypeDescriptor:
    import_type: str
    parse: ParseFn
    convert: ConvertFn


class ImportParseError(ValueError):
    """The whole payload is unusable; nothing from it is imported."""


def json_entries_parser(game: str) -> ParseFn:
    """Parser for API import types whose payload is already a list of score objects."""

    def parse(raw_input: Any, context: Mapping[str, Any]) -> ParsedImport:
        if not isinstance(raw_input, list):
            raise ImportParseError(f"Expected a list of scores, got {type(raw_input).__name__}.")
        return ParsedImport(game=game, entries=list(raw_input), context=dict(context))

    return parse


def validate_payload(model: type[PayloadT], data: Any) -> PayloadT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise InvalidScoreFailure(f"Invalid payload: {details}", data=data) from exc


def build_score_data(
    config: GPTConfig,
    metrics: Mapping[str, Any],
    *,
    judgements: Mapping[str, int | None] | None = None,
    optional: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Validate converter output against the GPT and shape it as dry scoreData."""
    unknown = set(metrics) - set(config.mandatory_metrics)
    if unknown:
        raise InvalidScoreFailure(f"Unexpected metrics {sorted(unknown)} for {config.name}.")

    score_data: dict[str, Any] = {}
    for name, metric in config.mandatory_metrics.items():
        value = metrics.get(name)
        if value is None:
            raise InvalidScoreFailure(f"Missing mandatory metric '{name}'.")
        score_data[name] = _check_metric_value(metric, value)

    score_data["judgements"] = {}
    for name, value in (judgements or {}).items():
        if name not in config.ordered_judgements:
            raise InvalidScoreFailure(f"Unknown judgement '{name}' for {config.name}.")
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_METRIC_MAGNITUDE:
            raise InvalidScoreFailure(f"Invalid value of {value} for judgement '{name}'.")
        score_data["judgements"][name] = value

    score_data["optional"] = {}
    for name, value in (optional or {}).items():
        metric = config.additional_metrics.get(name)
        if metric is None:
            raise InvalidScoreFailure(f"Unknown optional metric '{name}' for {config.name}.")
        if value is None:
            continue
        score_data["optional"][name] = _check_metric_value(metric, value)

    return score_data


def _check_metric_value(metric: MetricConfig, value: Any) -> Any:
    if metric.type is MetricType.ENUM:
        if value not in metric.values:
            raise InvalidScoreFailure(f"Invalid {metric.name} of {value}.")
        return value

    if metric.type is MetricType.GRAPH:
        if not isinstance(value, list):
            raise InvalidScoreFailure(f"Expected {metric.name} to be a list.")
        ensure_json_storable(value, metric.name)
        return value

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidScoreFailure(f"Expected {metric.name} to be a number, got {value!r}.")
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidScoreFailure(f"Invalid {metric.name} of {value}.")
    if isinstance(value, int) and abs(value) > MAX_METRIC_MAGNITUDE:
        raise InvalidScoreFailure(f"Invalid {metric.name}, the value is out of range.")
    if metric.type is MetricType.INTEGER and isinstance(value, float) and not value.is_integer():
        raise InvalidScoreFailure(f"Expected {metric.name} to be an integer, got {value}.")

    minimum = metric.params.get("min")
    maximum = metric.params.get("max")
    if minimum is not None and value < minimum:
        raise InvalidScoreFailure(f"Invalid {metric.name} of {value}, expected at least {minimum}.")
    if maximum is not None and value > maximum:
        raise InvalidScoreFailure(f"Invalid {metric.name} of {value}, expected at most {maximum}.")

    return int(value) if metric.type is MetricType.INTEGER else value


def resolve_song(session: Session, chart: Chart) -> Song:
    """The song a chart belongs to. A missing song means the catalog is out of sync."""
    song = find_song_on_id(session, chart.game, chart.song_id)
    if song is None:
        raise InternalFailure(f"Song-Chart desync with song ID {chart.song_id} ({chart.game}).")
    return song


def ensure_json_storable(value: Any, label: str) -> None:
    """Reject values the JSON columns cannot hold, such as NaN or huge integers."""
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise InvalidScoreFailure(f"Invalid {label}, it cannot be stored as JSON.") from exc
    if _has_huge_int(value):
        raise InvalidScoreFailure(f"Invalid {label}, a number in it is out of range.")


def _has_huge_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return abs(value) > MAX_METRIC_MAGNITUDE
    if isinstance(value, dict):
        return any(_has_huge_int(item) for item in value.values())
    if isinstance(value, list):
        return any(_has_huge_int(item) for item in value)
    return False


def to_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    try:
        return moment.astimezone(UTC).replace(tzinfo=None)
    except OverflowError as exc:
        raise InvalidScoreFailure(f"Time achieved {moment.isoformat()} is out of range.") from exc


def from_unix_ms(value: int | float) -> datetime:
    return datetime.fromtimestamp(value / 1000, UTC).replace(tzinfo=None)


__all__ = [
    "ConvertFn",
    "ImportParseError",
    "ImportTypeDescriptor",
    "ParseFn",
    "ParsedImport",
    "build_score_data",
    "ensure_json_storable",
    "from_unix_ms",
    "json_entries_parser",
    "resolve_song",
    "to_naive_utc",
    "validate_payload",
]
