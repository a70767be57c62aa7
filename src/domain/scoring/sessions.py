"""Group imported scores into play sessions."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from domain.common import ScoreDocument
from domain.gpt.config import GPTConfig
from domain.ratings.protocol import RatingKind
from domain.ratings.registry import algorithms_for
from models import PlaySession
from repositories.counters import get_next_counter_value
from repositories.imports import add_session, find_sessions_overlapping
from repositories.scores import SCORE_REPOSITORY

logger = logging.getLogger(__name__)

SESSION_GAP = timedelta(hours=2)


@dataclass(frozen=True)
class SessionInfo:
    session_id: str
    created: bool


def group_into_sessions(documents: Iterable[ScoreDocument]) -> list[list[ScoreDocument]]:
    """Split scores on gaps longer than two hours. Scores without a timestamp are dropped."""
    timed = sorted(
        (document for document in documents if document.time_achieved is not None),
        key=lambda document: (document.time_achieved, document.score_id),
    )

    groups: list[list[ScoreDocument]] = []
    for document in timed:
        if groups and document.time_achieved - groups[-1][-1].time_achieved <= SESSION_GAP:
            groups[-1].append(document)
        else:
            groups.append([document])
    return groups


def calculate_session_data(config: GPTConfig, calculated: Sequence[Mapping[str, Any]]) -> dict[str, float]:
    """Session algorithms over the calculatedData of the session's scores."""
    session_data: dict[str, float] = {}
    for algorithm in algorithms_for(config, RatingKind.SESSION):
        values = [
            data[algorithm.source_score_alg]
            for data in calculated
            if data.get(algorithm.source_score_alg) is not None
        ]
        value = algorithm.calculate(values)
        if value is not None:
            session_data[algorithm.name] = value
    return session_data


def process_sessions(
    session: Session,
    config: GPTConfig,
    *,
    user_id: int,
    documents: Sequence[ScoreDocument],
    now: datetime | None = None,
) -> list[SessionInfo]:
    """Attach freshly inserted scores to existing sessions or open new ones."""
    now = now or datetime.now(UTC).replace(tzinfo=None)
    infos: list[SessionInfo] = []

    for group in group_into_sessions(documents):
        start = group[0].time_achieved
        end = group[-1].time_achieved
        score_ids = [document.score_id for document in group]

        existing = find_sessions_overlapping(
            session,
            user_id=user_id,
            game=config.game,
            playtype=config.playtype,
            start=start - SESSION_GAP,
            end=end + SESSION_GAP,
        )

        if existing:
            play_session = existing[0]
            play_session.score_ids = [*play_session.score_ids, *score_ids]
            play_session.time_started = min(play_session.time_started, start)
            play_session.time_ended = max(play_session.time_ended, end)
            created = False
        else:
            play_session = PlaySession(
                session_id=f"Q{get_next_counter_value(session, 'sessions')}",
                user_id=user_id,
                game=config.game,
                playtype=config.playtype,
                score_ids=score_ids,
                time_started=start,
                time_ended=end,
                time_inserted=now,
                calculated_data={},
            )
            add_session(session, play_session)
            created = True

        scores = SCORE_REPOSITORY.get_many(session, play_session.score_ids)
        play_session.calculated_data = calculate_session_data(config, [score.calculated_data for score in scores])
        session.flush()

        logger.debug(
            "%s session %s for user=%s with %s scores",
            "Created" if created else "Extended",
            play_session.session_id,
            user_id,
            len(score_ids),
        )
        infos.append(SessionInfo(session_id=play_session.session_id, created=created))

    return infos


__all__ = ["SESSION_GAP", "SessionInfo", "calculate_session_data", "group_into_sessions", "process_sessions"]
