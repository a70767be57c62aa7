"""Shared types passed between the normalizer, hydrator and importer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from models import Chart, Song

RESERVED_SCORE_DATA_KEYS = frozenset({"esd", "judgements", "optional"})


@dataclass(frozen=True)
class DryScore:
    """Converter output: mandatory metrics, judgements and supplied additional metrics only."""

    game: str
    import_type: str
    service: str
    score_data: dict[str, Any]
    time_achieved: datetime | None = None
    comment: str | None = None
    score_meta: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConvertedScore:
    song: Song
    chart: Chart
    dry_score: DryScore


@dataclass(frozen=True)
class ScoreDocument:
    """Canonical persisted form of a score."""

    score_id: str
    user_id: int
    game: str
    playtype: str
    song_id: int
    chart_id: str
    is_primary: bool
    score_data: dict[str, Any]
    calculated_data: dict[str, Any]
    time_added: datetime
    time_achieved: datetime | None
    service: str
    import_type: str | None
    comment: str | None = None
    highlight: bool = False
    score_meta: dict[str, Any] = field(default_factory=dict)


__all__ = ["ConvertedScore", "DryScore", "RESERVED_SCORE_DATA_KEYS", "ScoreDocument"]
