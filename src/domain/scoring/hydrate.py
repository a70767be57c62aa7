"""Turn a dry score into a full score document."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from domain.common import DryScore, ScoreDocument
from domain.gpt import registry as gpt_registry
from domain.gpt.config import GPTConfig
from domain.ratings.protocol import RatingKind
from domain.ratings.registry import algorithms_for
from domain.scoring.derived import DERIVED_FORMULAS
from domain.scoring.esd import calculate_esd
from models import Chart, Song


def hydrate_score(
    user_id: int,
    dry_score: DryScore,
    chart: Chart,
    song: Song,
    score_id: str,
    *,
    now: datetime | None = None,
) -> ScoreDocument:
    """Compute derived metrics, enum indexes, ESD and calculated data. Does not persist."""
    config = gpt_registry.get(chart.game, chart.playtype)
    score_data = hydrate_score_data(config, dry_score.score_data, chart)

    return ScoreDocument(
        score_id=score_id,
        user_id=user_id,
        game=chart.game,
        playtype=chart.playtype,
        song_id=song.id,
        chart_id=chart.chart_id,
        is_primary=chart.is_primary,
        score_data=score_data,
        calculated_data=calculate_score_data(config, score_data, chart),
        time_added=now or datetime.now(UTC).replace(tzinfo=None),
        time_achieved=dry_score.time_achieved,
        service=dry_score.service,
        import_type=dry_score.import_type,
        comment=dry_score.comment,
        highlight=False,
        score_meta=dict(dry_score.score_meta),
    )


def hydrate_score_data(config: GPTConfig, dry_score_data: dict[str, Any], chart: Chart) -> dict[str, Any]:
    metrics: dict[str, Any] = {name: dry_score_data[name] for name in config.mandatory_metrics}

    for metric in config.derived_metrics.values():
        formula = DERIVED_FORMULAS[metric.formula]
        metrics[metric.name] = formula(metrics, chart, metric.params, metric.values)

    score_data: dict[str, Any] = dict(metrics)
    for metric in config.enum_metrics():
        score_data[f"{metric.name}Index"] = metric.index_of(metrics[metric.name])

    score_data["esd"] = calculate_esd(config.esd_windows, metrics["percent"]) if config.esd_windows else None
    score_data["judgements"] = dict(dry_score_data.get("judgements", {}))

    supplied = dry_score_data.get("optional", {})
    score_data["optional"] = {name: supplied.get(name) for name in config.additional_metrics}
    return score_data


def calculate_score_data(config: GPTConfig, score_data: dict[str, Any], chart: Chart) -> dict[str, float]:
    """Every score rating algorithm the GPT declares; algorithms lacking data are left out."""
    calculated: dict[str, float] = {}
    for algorithm in algorithms_for(config, RatingKind.SCORE):
        value = algorithm.calculate(score_data, chart)
        if value is not None:
            calculated[algorithm.name] = value
    return calculated


__all__ = ["calculate_score_data", "hydrate_score", "hydrate_score_data"]
