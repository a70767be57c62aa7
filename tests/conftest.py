"""Shared fixtures: an in-memory database and recording collaborators."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from datetime import datetime
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory, ensure_schema
from domain.protocol import WebhookEvent
from domain.scoring.importer import import_scores
from models import Chart, Goal, ImportRecord, Milestone, Song

NOW = datetime(2024, 5, 1, 12, 0, 0)


class RecordingWebhooks:
    def __init__(self) -> None:
        self.events: list[WebhookEvent] = []

    def emit(self, event: WebhookEvent) -> None:
        self.events.append(event)


class RecordingNotifications:
    def __init__(self) -> None:
        self.sent: list[tuple[str, list[int], dict[str, Any]]] = []

    def bulk_send(self, message: str, user_ids: Sequence[int], payload: Mapping[str, Any]) -> None:
        self.sent.append((message, list(user_ids), dict(payload)))


@pytest.fixture
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_db_engine("sqlite://")
    ensure_schema(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    with session_factory() as db_session:
        yield db_session


@pytest.fixture
def webhooks() -> RecordingWebhooks:
    return RecordingWebhooks()


@pytest.fixture
def notifications() -> RecordingNotifications:
    return RecordingNotifications()


def add_song(session: Session, *, game: str, title: str, song_id: int, alt_titles: list[str] | None = None) -> Song:
    song = Song(id=song_id, game=game, title=title, artist="Artist", alt_titles=alt_titles or [])
    session.add(song)
    session.flush()
    return song


def add_chart(
    session: Session,
    *,
    song: Song,
    chart_id: str,
    playtype: str,
    difficulty: str,
    level_num: float = 10.0,
    in_game_id: int | None = None,
    versions: list[str] | None = None,
    is_primary: bool = True,
    data: dict[str, Any] | None = None,
) -> Chart:
    chart = Chart(
        chart_id=chart_id,
        song_id=song.id,
        game=song.game,
        playtype=playtype,
        difficulty=difficulty,
        level=str(int(level_num)),
        level_num=level_num,
        is_primary=is_primary,
        in_game_id=in_game_id,
        versions=versions or [],
        data=data or {},
    )
    session.add(chart)
    session.flush()
    return chart


def seed_iidx_catalog(session: Session) -> list[Chart]:
    """Three IIDX SP ANOTHER charts with 1000 notes each."""
    charts = []
    for index, title in enumerate(("5.1.1.", "AA", "Colors"), start=1):
        song = add_song(session, game="iidx", title=title, song_id=index)
        charts.append(
            add_chart(
                session,
                song=song,
                chart_id=f"iidx-sp-a-{index}",
                playtype="SP",
                difficulty="ANOTHER",
                level_num=10.0 + index,
                in_game_id=1000 + index,
                versions=["30", "31"],
                data={"notecount": 1000},
            )
        )
    return charts


def add_goal(
    session: Session,
    *,
    goal_id: str,
    charts: dict[str, Any],
    criteria: dict[str, Any],
    game: str = "iidx",
    playtype: str = "SP",
) -> Goal:
    goal = Goal(goal_id=goal_id, game=game, playtype=playtype, name=f"Goal {goal_id}", charts=charts, criteria=criteria)
    session.add(goal)
    session.flush()
    return goal


def add_milestone(
    session: Session,
    *,
    milestone_id: str,
    goal_ids: list[str],
    criteria: dict[str, Any],
    game: str = "iidx",
    playtype: str = "SP",
) -> Milestone:
    milestone = Milestone(
        milestone_id=milestone_id,
        game=game,
        playtype=playtype,
        name=f"Milestone {milestone_id}",
        desc="",
        milestone_data=[{"title": "Section", "desc": "", "goals": [{"goalID": goal_id} for goal_id in goal_ids]}],
        criteria=criteria,
    )
    session.add(milestone)
    session.flush()
    return milestone


def batch_manual_payload(scores: list[dict[str, Any]], **meta: Any) -> dict[str, Any]:
    return {
        "meta": {"game": "iidx", "playtype": "SP", "service": "test", **meta},
        "scores": scores,
    }


def iidx_score(identifier: str, score: int, lamp: str, **extra: Any) -> dict[str, Any]:
    return {
        "matchType": "songTitle",
        "identifier": identifier,
        "difficulty": "ANOTHER",
        "score": score,
        "lamp": lamp,
        **extra,
    }


def import_iidx_scores(
    session: Session,
    user_id: int,
    scores: list[dict[str, Any]],
    *,
    webhooks: RecordingWebhooks | None = None,
    now: datetime = NOW,
    **document: Any,
) -> ImportRecord:
    payload = batch_manual_payload(scores)
    payload.update(document)
    return import_scores(
        session,
        user_id=user_id,
        import_type="file/batch-manual",
        raw_input=payload,
        webhooks=webhooks or RecordingWebhooks(),
        now=now,
    )
