"""Read-only song and chart lookups."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models import Chart, Song
from repositories.base import BaseRepository

SONG_REPOSITORY = BaseRepository(model=Song, id_column="id")
CHART_REPOSITORY = BaseRepository(model=Chart, id_column="chart_id")

# ids are 32-bit integer columns; anything wider cannot match a row
MAX_CATALOG_ID = 2**31 - 1


def find_song_on_id(session: Session, game: str, song_id: int) -> Song | None:
    if abs(song_id) > MAX_CATALOG_ID:
        return None
    return SONG_REPOSITORY.find_one(session, Song.game == game, Song.id == song_id)


def find_song_on_title(session: Session, game: str, title: str) -> Song | None:
    """Case-insensitive match on the title, then on alternate titles."""
    needle = title.strip().lower()
    song = SONG_REPOSITORY.find_one(session, Song.game == game, func.lower(Song.title) == needle)
    if song is not None:
        return song

    for candidate in session.scalars(select(Song).where(Song.game == game).order_by(Song.id)):
        if any(alt.lower() == needle for alt in candidate.alt_titles):
            return candidate
    return None


def find_chart_with_difficulty(
    session: Session,
    game: str,
    song_id: int,
    playtype: str,
    difficulty: str,
    version: str | None = None,
) -> Chart | None:
    """The chart for a song/playtype/difficulty.

    With a version, a chart that exists in that version wins. Otherwise, or when no chart
    lists the version, the primary chart is returned.
    """
    candidates = CHART_REPOSITORY.find(
        session,
        Chart.game == game,
        Chart.song_id == song_id,
        Chart.playtype == playtype,
        Chart.difficulty == difficulty,
        order_by=(Chart.is_primary.desc(), Chart.chart_id),
    )
    if version is not None:
        for chart in candidates:
            if version in chart.versions:
                return chart
    return next((chart for chart in candidates if chart.is_primary), None)


def find_chart_on_in_game_id_version(
    session: Session,
    game: str,
    in_game_id: int,
    playtype: str,
    difficulty: str,
    version: str | None = None,
) -> Chart | None:
    """Resolve an in-game identifier. Without a version the primary chart wins."""
    if abs(in_game_id) > MAX_CATALOG_ID:
        return None
    candidates = CHART_REPOSITORY.find(
        session,
        Chart.game == game,
        Chart.in_game_id == in_game_id,
        Chart.playtype == playtype,
        Chart.difficulty == difficulty,
        order_by=(Chart.is_primary.desc(), Chart.chart_id),
    )
    if version is None:
        return candidates[0] if candidates else None

    for chart in candidates:
        if version in chart.versions:
            return chart
    return None


def find_charts_for_gpt(session: Session, game: str, playtype: str) -> list[Chart]:
    return CHART_REPOSITORY.find(
        session,
        Chart.game == game,
        Chart.playtype == playtype,
        Chart.is_primary.is_(True),
    )


__all__ = [
    "CHART_REPOSITORY",
    "SONG_REPOSITORY",
    "find_chart_on_in_game_id_version",
    "find_chart_with_difficulty",
    "find_charts_for_gpt",
    "find_song_on_id",
    "find_song_on_title",
]
