"""Recalculation pipeline for stored scores of one GPT."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from domain.errors import CorruptStateError
from domain.gpt.config import GPTConfig
from domain.scoring.hydrate import calculate_score_data, hydrate_score_data
from domain.scoring.profile import recompute_profile_ratings
from domain.scoring.sessions import calculate_session_data
from models import PlaySession, Score
from repositories.catalog import CHART_REPOSITORY
from repositories.imports import SESSION_REPOSITORY
from repositories.scores import SCORE_REPOSITORY, iter_score_batches, users_with_scores

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecalculateSummary:
    """Outcome for one recalculated GPT."""

    game: str
    playtype: str
    config_file: str
    processed_scores: int
    changed_scores: int
    updated_sessions: int
    updated_profiles: int
    dry_run: bool


def recalculate_scores(
    *,
    session_factory: sessionmaker[Session],
    config: GPTConfig,
    batch_size: int = 5000,
    dry_run: bool = False,
    echo: Callable[[str], None] | None = None,
) -> RecalculateSummary:
    """Re-derive scoreData and calculatedData for every stored score of a GPT.

    Sessions and profile ratings are rebuilt afterwards. Running it twice changes nothing.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be greater than 0")

    processed = 0
    changed = 0

    with session_factory() as session:
        try:
            for batch in iter_score_batches(session, config.game, config.playtype, batch_size=batch_size):
                changed += _recalculate_batch(session, config, batch)
                processed += len(batch)
                session.flush()

                if echo is not None:
                    echo(f"config={config.file_path.name} processed_scores={processed} changed_scores={changed}")

            updated_sessions = _recalculate_sessions(session, config)

            user_ids = users_with_scores(session, config.game, config.playtype)
            for user_id in user_ids:
                recompute_profile_ratings(session, config, user_id)

            if dry_run:
                session.rollback()
            else:
                session.commit()
        except Exception:
            session.rollback()
            raise

    summary = RecalculateSummary(
        game=config.game,
        playtype=config.playtype,
        config_file=config.file_path.name,
        processed_scores=processed,
        changed_scores=changed,
        updated_sessions=updated_sessions,
        updated_profiles=len(user_ids),
        dry_run=dry_run,
    )
    if echo is not None:
        echo(
            f"{'[dry-run] ' if dry_run else ''}completed "
            f"config={summary.config_file} "
            f"game={summary.game} "
            f"playtype={summary.playtype} "
            f"processed_scores={summary.processed_scores} "
            f"changed_scores={summary.changed_scores} "
            f"updated_sessions={summary.updated_sessions} "
            f"updated_profiles={summary.updated_profiles}"
        )
    return summary


def _recalculate_batch(session: Session, config: GPTConfig, batch: list[Score]) -> int:
    charts = {chart.chart_id: chart for chart in CHART_REPOSITORY.get_many(session, {s.chart_id for s in batch})}

    changed = 0
    for score in batch:
        chart = charts.get(score.chart_id)
        if chart is None:
            logger.error("Score %s references chart %s, which doesn't exist.", score.score_id, score.chart_id)
            raise CorruptStateError(f"Score {score.score_id} has no chart.")

        score_data = hydrate_score_data(config, score.score_data, chart)
        calculated_data = calculate_score_data(config, score_data, chart)
        if score_data == score.score_data and calculated_data == score.calculated_data:
            continue

        score.score_data = score_data
        score.calculated_data = calculated_data
        changed += 1
    return changed


def _recalculate_sessions(session: Session, config: GPTConfig) -> int:
    play_sessions = SESSION_REPOSITORY.find(
        session,
        PlaySession.game == config.game,
        PlaySession.playtype == config.playtype,
        order_by=(PlaySession.session_id,),
    )

    updated = 0
    for play_session in play_sessions:
        scores = SCORE_REPOSITORY.get_many(session, play_session.score_ids)
        calculated_data = calculate_session_data(config, [score.calculated_data for score in scores])
        if calculated_data != play_session.calculated_data:
            play_session.calculated_data = calculated_data
            updated += 1
    session.flush()
    return updated


__all__ = ["RecalculateSummary", "recalculate_scores"]
