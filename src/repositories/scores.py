"""Score persistence and per-chart best lookups."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import asdict
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.common import ScoreDocument
from models import Score
from repositories.base import BaseRepository

SCORE_REPOSITORY = BaseRepository(model=Score, id_column="score_id")


def existing_score_ids(session: Session, score_ids: Iterable[str]) -> set[str]:
    score_ids = list(score_ids)
    if not score_ids:
        return set()
    return set(session.scalars(select(Score.score_id).where(Score.score_id.in_(score_ids))))


def insert_scores(session: Session, documents: Sequence[ScoreDocument]) -> None:
    SCORE_REPOSITORY.insert_many(session, [asdict(document) for document in documents])


def best_metric_per_chart(
    session: Session,
    *,
    user_id: int,
    game: str,
    playtype: str,
    key: str,
    chart_ids: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Best value of a scoreData key per chart. `chart_ids=None` means every chart of the GPT."""
    statement = select(Score.chart_id, Score.score_data).where(
        Score.user_id == user_id,
        Score.game == game,
        Score.playtype == playtype,
    )
    if chart_ids is not None:
        statement = statement.where(Score.chart_id.in_(list(chart_ids)))

    best: dict[str, Any] = {}
    for chart_id, score_data in session.execute(statement):
        value = score_data.get(key)
        if value is None:
            continue
        if chart_id not in best or value > best[chart_id]:
            best[chart_id] = value
    return best


def best_calculated_per_chart(
    session: Session,
    *,
    user_id: int,
    game: str,
    playtype: str,
    alg: str,
) -> dict[str, float]:
    """Best calculatedData value of one algorithm per primary chart."""
    statement = select(Score.chart_id, Score.calculated_data).where(
        Score.user_id == user_id,
        Score.game == game,
        Score.playtype == playtype,
        Score.is_primary.is_(True),
    )

    best: dict[str, float] = {}
    for chart_id, calculated_data in session.execute(statement):
        value = calculated_data.get(alg)
        if value is None:
            continue
        if chart_id not in best or value > best[chart_id]:
            best[chart_id] = value
    return best


def iter_score_batches(session: Session, game: str, playtype: str, *, batch_size: int) -> Iterator[list[Score]]:
    """Every score of a GPT in scoreID order, one batch at a time. Safe to write to between batches."""
    last_score_id: str | None = None
    while True:
        statement = select(Score).where(Score.game == game, Score.playtype == playtype)
        if last_score_id is not None:
            statement = statement.where(Score.score_id > last_score_id)
        batch = list(session.scalars(statement.order_by(Score.score_id).limit(batch_size)))
        if not batch:
            return
        yield batch
        last_score_id = batch[-1].score_id


def users_with_scores(session: Session, game: str, playtype: str) -> list[int]:
    statement = (
        select(Score.user_id)
        .where(Score.game == game, Score.playtype == playtype)
        .distinct()
        .order_by(Score.user_id)
    )
    return list(session.scalars(statement))


__all__ = [
    "SCORE_REPOSITORY",
    "best_calculated_per_chart",
    "best_metric_per_chart",
    "existing_score_ids",
    "insert_scores",
    "iter_score_batches",
    "users_with_scores",
]
