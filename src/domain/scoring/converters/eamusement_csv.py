"""file/eamusement-iidx-csv: the score CSV exported from the e-amusement site."""

from __future__ import annotations

import csv
import io
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.orm import Session

from domain.common import ConvertedScore, DryScore
from domain.gpt import registry as gpt_registry
from domain.scoring.converters.base import (
    ImportParseError,
    ImportTypeDescriptor,
    ParsedImport,
    build_score_data,
    to_naive_utc,
)
from domain.scoring.failures import InvalidScoreFailure, SongOrChartNotFoundFailure
from repositories.catalog import find_chart_with_difficulty, find_song_on_title

IMPORT_TYPE = "file/eamusement-iidx-csv"
SERVICE = "e-amusement"

CSV_DIFFICULTIES = ("BEGINNER", "NORMAL", "HYPER", "ANOTHER", "LEGGENDARIA")
# version, title, genre, artist, play count, 7 per difficulty, last played
COLUMN_COUNT = 5 + 7 * len(CSV_DIFFICULTIES) + 1
JST = timezone(timedelta(hours=9))
CSV_LAMPS = {
    "NO PLAY": "NO PLAY",
    "FAILED": "FAILED",
    "ASSIST CLEAR": "ASSIST CLEAR",
    "EASY CLEAR": "EASY CLEAR",
    "CLEAR": "CLEAR",
    "HARD CLEAR": "HARD CLEAR",
    "EX HARD CLEAR": "EX HARD CLEAR",
    "FULLCOMBO CLEAR": "FULL COMBO",
}


def parse_eamusement_csv(raw_input: Any, context: Mapping[str, Any]) -> ParsedImport:
    playtype = context.get("playtype")
    if playtype not in ("SP", "DP"):
        raise ImportParseError(f"Invalid playtype {playtype!r}, expected SP or DP.")

    text = raw_input.decode("utf-8-sig") if isinstance(raw_input, bytes) else str(raw_input)
    rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    if not rows:
        raise ImportParseError("CSV is empty.")

    header, body = rows[0], rows[1:]
    if len(header) != COLUMN_COUNT:
        raise ImportParseError(f"Invalid CSV header, expected {COLUMN_COUNT} columns, got {len(header)}.")

    entries: list[dict[str, Any]] = []
    for line_number, row in enumerate(body, start=2):
        if not row:
            continue
        if len(row) != COLUMN_COUNT:
            raise ImportParseError(f"Invalid CSV row {line_number}, expected {COLUMN_COUNT} columns.")
        entries.extend(_row_entries(row))

    return ParsedImport(
        game="iidx",
        entries=entries,
        context={"playtype": playtype, "service": context.get("service", SERVICE)},
    )


def _row_entries(row: list[str]) -> list[dict[str, Any]]:
    version, title = row[0], row[1]
    timestamp = row[-1]

    entries = []
    for offset, difficulty in enumerate(CSV_DIFFICULTIES):
        level, ex_score, pgreat, great, miss_count, lamp, _dj_level = row[5 + offset * 7 : 12 + offset * 7]
        if difficulty == "BEGINNER" or level in ("", "0"):
            continue
        if lamp == "NO PLAY" and ex_score in ("", "0"):
            continue
        entries.append(
            {
                "title": title,
                "version": version,
                "difficulty": difficulty,
                "exScore": ex_score,
                "pgreat": pgreat,
                "great": great,
                "missCount": miss_count,
                "lamp": lamp,
                "timestamp": timestamp,
            }
        )
    return entries


def convert_eamusement_csv(
    session: Session,
    data: Any,
    context: Mapping[str, Any],
    import_type: str,
) -> ConvertedScore:
    playtype = str(context["playtype"])
    config = gpt_registry.get("iidx", playtype)

    song = find_song_on_title(session, "iidx", data["title"])
    if song is None:
        raise SongOrChartNotFoundFailure(f"Could not find song with title {data['title']}.")
    chart = find_chart_with_difficulty(
        session, "iidx", song.id, playtype, data["difficulty"], data["version"] or None
    )
    if chart is None:
        raise SongOrChartNotFoundFailure(
            f"Could not find chart for {data['title']} ({playtype} {data['difficulty']})."
        )

    score_data = build_score_data(
        config,
        {"score": _parse_int(data["exScore"], "EX score"), "lamp": _parse_lamp(data["lamp"])},
        judgements={
            "pgreat": _parse_int(data["pgreat"], "PGreat"),
            "great": _parse_int(data["great"], "Great"),
        },
        optional={"bp": None if data["missCount"] == "---" else _parse_int(data["missCount"], "miss count")},
    )

    dry_score = DryScore(
        game="iidx",
        import_type=import_type,
        service=str(context["service"]),
        score_data=score_data,
        time_achieved=_parse_timestamp(data["timestamp"]),
        score_meta={},
    )
    return ConvertedScore(song=song, chart=chart, dry_score=dry_score)


def _parse_int(value: str, label: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise InvalidScoreFailure(f"Invalid {label} of {value!r}.") from exc


def _parse_lamp(value: str) -> str:
    lamp = CSV_LAMPS.get(value)
    if lamp is None:
        raise InvalidScoreFailure(f"Invalid lamp {value!r}.")
    return lamp


def _parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d %H:%M")
    except ValueError as exc:
        raise InvalidScoreFailure(f"Invalid timestamp {value!r}.") from exc
    return to_naive_utc(parsed.replace(tzinfo=JST))


DESCRIPTOR = ImportTypeDescriptor(
    import_type=IMPORT_TYPE,
    parse=parse_eamusement_csv,
    convert=convert_eamusement_csv,
)


__all__ = ["DESCRIPTOR", "convert_eamusement_csv", "parse_eamusement_csv"]
