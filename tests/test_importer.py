"""Tests for the import orchestrator."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import (
    NOW,
    RecordingWebhooks,
    add_chart,
    add_song,
    batch_manual_payload,
    iidx_score,
    import_iidx_scores,
    seed_iidx_catalog,
)
from domain.classes.values import IIDXDans, SDVXVFClasses
from domain.protocol import WebhookEventType
from domain.scoring.converters.base import ImportParseError
from domain.scoring.importer import import_scores
from models import Chart, PlaySession, Score
from repositories.game_stats import get_stats
from repositories.imports import IMPORT_REPOSITORY


def _unix_ms(delta: timedelta) -> int:
    return int((NOW + delta - datetime(1970, 1, 1)).total_seconds() * 1000)


def test_import_stores_scores_and_reports_failures(session: Session) -> None:
    seed_iidx_catalog(session)

    record = import_iidx_scores(
        session,
        1,
        [
            iidx_score("5.1.1.", 1500, "HARD CLEAR"),
            iidx_score("AA", 1600, "CLEAR"),
            iidx_score("Unknown Song", 1600, "CLEAR"),
            iidx_score("Colors", 1600, "MEGA CLEAR"),
        ],
    )

    assert record.import_id == "I1"
    assert record.playtypes == ["SP"]
    assert len(record.score_ids) == 2
    assert [error["type"] for error in record.errors] == ["SongOrChartNotFound", "InvalidScore"]
    assert record.time_started == NOW
    assert record.time_finished == NOW
    assert IMPORT_REPOSITORY.get(session, "I1") is record

    stored = session.scalars(select(Score).order_by(Score.chart_id)).all()
    assert [score.chart_id for score in stored] == ["iidx-sp-a-1", "iidx-sp-a-2"]
    assert stored[0].score_data["lampIndex"] == 5
    assert stored[0].import_type == "file/batch-manual"


def test_reimporting_reports_existing_scores(session: Session) -> None:
    seed_iidx_catalog(session)
    scores = [iidx_score("5.1.1.", 1500, "HARD CLEAR")]

    first = import_iidx_scores(session, 1, scores)
    second = import_iidx_scores(session, 1, scores)

    assert second.import_id == "I2"
    assert second.score_ids == []
    assert [error["type"] for error in second.errors] == ["ScoreExists"]
    assert first.score_ids[0] in second.errors[0]["message"]
    assert len(session.scalars(select(Score)).all()) == 1


def test_duplicates_inside_one_import(session: Session) -> None:
    seed_iidx_catalog(session)
    score = iidx_score("5.1.1.", 1500, "HARD CLEAR")

    record = import_iidx_scores(session, 1, [score, dict(score)])

    assert len(record.score_ids) == 1
    assert [error["type"] for error in record.errors] == ["ScoreExists"]


def test_same_play_for_two_users_is_two_scores(session: Session) -> None:
    seed_iidx_catalog(session)
    score = iidx_score("5.1.1.", 1500, "HARD CLEAR")

    first = import_iidx_scores(session, 1, [score])
    second = import_iidx_scores(session, 2, [score])

    assert first.score_ids != second.score_ids
    assert second.errors == []


def test_catalog_desync_is_internal_error(session: Session, caplog: pytest.LogCaptureFixture) -> None:
    seed_iidx_catalog(session)
    session.add(
        Chart(
            chart_id="iidx-orphan",
            song_id=999,
            game="iidx",
            playtype="SP",
            difficulty="ANOTHER",
            level="12",
            level_num=12.0,
            is_primary=True,
            in_game_id=5000,
            versions=[],
            data={"notecount": 1000},
        )
    )
    session.flush()
    orphan = iidx_score("5000", 1500, "CLEAR")
    orphan["matchType"] = "inGameID"

    with caplog.at_level(logging.CRITICAL):
        record = import_iidx_scores(session, 1, [orphan, iidx_score("AA", 1500, "CLEAR")])

    assert [error["type"] for error in record.errors] == ["InternalError"]
    assert len(record.score_ids) == 1
    assert "Song-Chart desync" in caplog.text


def test_out_of_range_values_only_fail_their_entry(session: Session) -> None:
    seed_iidx_catalog(session)
    huge_id = iidx_score("9" * 30, 1500, "CLEAR")
    huge_id["matchType"] = "inGameID"

    record = import_iidx_scores(
        session,
        1,
        [
            iidx_score("5.1.1.", 10**400, "HARD CLEAR"),
            iidx_score("AA", 1500, "CLEAR", timeAchieved=10**20),
            iidx_score("AA", 1400, "CLEAR", judgements={"pgreat": 10**30}),
            iidx_score("AA", 1300, "CLEAR", scoreMeta={"seed": 10**5000}),
            huge_id,
            iidx_score("Colors", 1500, "HARD CLEAR"),
        ],
    )

    assert [error["type"] for error in record.errors] == [
        "InvalidScore",
        "InvalidScore",
        "InvalidScore",
        "InvalidScore",
        "SongOrChartNotFound",
    ]
    assert len(record.score_ids) == 1
    assert [score.chart_id for score in session.scalars(select(Score)).all()] == ["iidx-sp-a-3"]


def test_unknown_import_type_raises_before_writing(session: Session) -> None:
    with pytest.raises(KeyError):
        import_scores(session, user_id=1, import_type="file/nope", raw_input={}, now=NOW)
    assert IMPORT_REPOSITORY.count(session) == 0


def test_unparseable_payload_raises_before_writing(session: Session) -> None:
    with pytest.raises(ImportParseError):
        import_scores(
            session,
            user_id=1,
            import_type="file/batch-manual",
            raw_input={"meta": {"game": "iidx"}},
            now=NOW,
        )

    seed_iidx_catalog(session)
    assert import_iidx_scores(session, 1, [iidx_score("AA", 1500, "CLEAR")]).import_id == "I1"


def test_sessions_split_on_two_hour_gaps(session: Session) -> None:
    seed_iidx_catalog(session)

    record = import_iidx_scores(
        session,
        1,
        [
            iidx_score("5.1.1.", 1500, "HARD CLEAR", timeAchieved=_unix_ms(timedelta(hours=-5))),
            iidx_score("AA", 1500, "CLEAR", timeAchieved=_unix_ms(timedelta(hours=-4))),
            iidx_score("Colors", 1500, "CLEAR", timeAchieved=_unix_ms(timedelta(hours=-1))),
            iidx_score("Colors", 1400, "FAILED"),
        ],
    )

    assert record.created_sessions == ["Q1", "Q2"]
    assert record.updated_sessions == []
    first, second = session.scalars(select(PlaySession).order_by(PlaySession.session_id)).all()
    assert len(first.score_ids) == 2
    assert first.time_started == NOW - timedelta(hours=5)
    assert first.time_ended == NOW - timedelta(hours=4)
    assert first.calculated_data["ktLampRating"] == pytest.approx((11.0 + 12.0) / 2)
    assert len(second.score_ids) == 1

    later = import_iidx_scores(
        session,
        1,
        [iidx_score("AA", 1700, "HARD CLEAR", timeAchieved=_unix_ms(timedelta(minutes=30)))],
    )

    assert later.created_sessions == []
    assert later.updated_sessions == ["Q2"]
    session.refresh(second)
    assert len(second.score_ids) == 2
    assert second.time_ended == NOW + timedelta(minutes=30)


def test_profile_ratings_use_best_score_per_chart(session: Session) -> None:
    seed_iidx_catalog(session)

    import_iidx_scores(
        session,
        1,
        [
            iidx_score("5.1.1.", 1500, "HARD CLEAR"),
            iidx_score("5.1.1.", 1400, "FAILED"),
            iidx_score("AA", 1500, "CLEAR"),
        ],
    )

    stats = get_stats(session, 1, "iidx", "SP")
    assert stats is not None
    assert stats.ratings == {"ktLampRating": pytest.approx(11.5)}


def test_submitted_classes_are_applied(session: Session, webhooks: RecordingWebhooks) -> None:
    seed_iidx_catalog(session)

    record = import_iidx_scores(session, 1, [], webhooks=webhooks, classes={"dan": "DAN_5"})

    assert record.playtypes == ["SP"]
    assert record.class_deltas == [{"set": "dan", "playtype": "SP", "old": None, "new": int(IIDXDans.DAN_5)}]
    assert [event.type for event in webhooks.events] == [WebhookEventType.CLASS_UPDATE]

    lower = import_iidx_scores(session, 1, [], classes={"dan": "DAN_2"})
    assert lower.class_deltas == []


def test_classes_are_derived_from_profile_ratings(session: Session, webhooks: RecordingWebhooks) -> None:
    song = add_song(session, game="sdvx", title="Sdvx Song", song_id=20)
    add_chart(session, song=song, chart_id="sdvx-exh", playtype="Single", difficulty="EXH", level_num=18.0)
    payload = batch_manual_payload(
        [
            {
                "matchType": "songTitle",
                "identifier": "Sdvx Song",
                "difficulty": "EXH",
                "score": 9_900_000,
                "lamp": "EXCESSIVE CLEAR",
            }
        ],
        game="sdvx",
        playtype="Single",
    )

    record = import_scores(
        session,
        user_id=1,
        import_type="file/batch-manual",
        raw_input=payload,
        webhooks=webhooks,
        now=NOW,
    )

    stats = get_stats(session, 1, "sdvx", "Single")
    assert stats is not None
    assert stats.ratings["VF6"] == pytest.approx(0.381)
    assert record.class_deltas == [
        {"set": "vfClass", "playtype": "Single", "old": None, "new": int(SDVXVFClasses.SIENNA_I)}
    ]
