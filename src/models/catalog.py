"""songs and charts table models."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType


class Song(Base):
    """One song of one game's catalog."""

    __tablename__ = "songs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    artist: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    alt_titles: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    search_terms: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)


class Chart(Base):
    """One playable chart of a song; `data` holds game-specific extras."""

    __tablename__ = "charts"
    __table_args__ = (
        Index("ix_charts_song_difficulty", "game", "song_id", "playtype", "difficulty"),
        Index("ix_charts_in_game_id", "game", "in_game_id", "playtype", "difficulty"),
    )

    chart_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    song_id: Mapped[int] = mapped_column(ForeignKey("songs.id"), nullable=False)
    game: Mapped[str] = mapped_column(String(32), nullable=False)
    playtype: Mapped[str] = mapped_column(String(16), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(32), nullable=False)
    level: Mapped[str] = mapped_column(String(16), nullable=False, default="?")
    level_num: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    in_game_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    versions: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
