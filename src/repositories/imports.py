"""Import records and play sessions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from models import ImportRecord, PlaySession
from repositories.base import BaseRepository

IMPORT_REPOSITORY = BaseRepository(model=ImportRecord, id_column="import_id")
SESSION_REPOSITORY = BaseRepository(model=PlaySession, id_column="session_id")

RECENT_IMPORTS_LIMIT = 500


def insert_import(session: Session, record: ImportRecord) -> None:
    session.add(record)
    session.flush()


def get_recent_imports(
    session: Session,
    user_id: int,
    *,
    finished_before: datetime | None = None,
    user_intent: bool | None = None,
    limit: int | None = RECENT_IMPORTS_LIMIT,
) -> list[ImportRecord]:
    """Most recently finished imports first, optionally only those finished at or before a moment."""
    criteria = [ImportRecord.user_id == user_id]
    if finished_before is not None:
        criteria.append(ImportRecord.time_finished <= finished_before)
    if user_intent is not None:
        criteria.append(ImportRecord.user_intent.is_(user_intent))
    return IMPORT_REPOSITORY.find(
        session,
        *criteria,
        order_by=(ImportRecord.time_finished.desc(), ImportRecord.import_id.desc()),
        limit=limit,
    )


def find_sessions_overlapping(
    session: Session,
    *,
    user_id: int,
    game: str,
    playtype: str,
    start: datetime,
    end: datetime,
) -> list[PlaySession]:
    """Sessions of one GPT whose [timeStarted, timeEnded] intersects [start, end]."""
    return SESSION_REPOSITORY.find(
        session,
        PlaySession.user_id == user_id,
        PlaySession.game == game,
        PlaySession.playtype == playtype,
        PlaySession.time_started <= end,
        PlaySession.time_ended >= start,
        order_by=(PlaySession.time_started,),
    )


def add_session(session: Session, play_session: PlaySession) -> None:
    session.add(play_session)
    session.flush()


__all__ = [
    "IMPORT_REPOSITORY",
    "RECENT_IMPORTS_LIMIT",
    "SESSION_REPOSITORY",
    "add_session",
    "find_sessions_overlapping",
    "get_recent_imports",
    "insert_import",
]
