"""Run one import batch: convert, hydrate, store, then refresh everything derived from scores."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from domain.classes.derivers import derive_classes
from domain.classes.progression import ClassDelta, apply_class_updates
from domain.common import ScoreDocument
from domain.gpt import registry as gpt_registry
from domain.protocol import LoggingWebhookEmitter, WebhookEmitter
from domain.scoring.converters import registry as converter_registry
from domain.scoring.converters.base import ImportTypeDescriptor, ParsedImport
from domain.scoring.failures import ConverterFailure, InternalFailure, ScoreExistsFailure
from domain.scoring.hydrate import hydrate_score
from domain.scoring.profile import recompute_profile_ratings
from domain.scoring.score_id import create_score_id
from domain.scoring.sessions import process_sessions
from domain.targets.goals import goal_result_payload, update_goals_for_user
from domain.targets.milestones import update_milestones_for_user
from models import ImportRecord
from repositories.counters import get_next_counter_value
from repositories.imports import insert_import
from repositories.scores import existing_score_ids, insert_scores

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaytypeOutcome:
    created_sessions: list[str]
    updated_sessions: list[str]
    class_deltas: list[ClassDelta]
    goal_info: list[dict[str, Any]]
    milestone_info: list[dict[str, Any]]


def import_scores(
    session: Session,
    *,
    user_id: int,
    import_type: str,
    raw_input: Any,
    context: Mapping[str, Any] | None = None,
    user_intent: bool = False,
    webhooks: WebhookEmitter | None = None,
    now: datetime | None = None,
) -> ImportRecord:
    """Import one payload for one user and persist the import record.

    Unknown import types raise KeyError and unusable payloads raise ImportParseError before
    anything is written. Problems with single entries end up in the record's `errors`.
    The caller owns the transaction.
    """
    webhooks = webhooks or LoggingWebhookEmitter()
    time_started = now or datetime.now(UTC).replace(tzinfo=None)

    descriptor = converter_registry.get(import_type)
    parsed = descriptor.parse(raw_input, context or {})

    import_id = f"I{get_next_counter_value(session, 'imports')}"
    logger.info(
        "Starting import %s (%s) for user=%s with %s entries",
        import_id,
        import_type,
        user_id,
        len(parsed.entries),
    )

    documents, errors = _convert_entries(
        session,
        descriptor,
        parsed,
        user_id=user_id,
        import_id=import_id,
        now=time_started,
    )

    existing = existing_score_ids(session, [document.score_id for document in documents])
    if existing:
        logger.debug("Skipping %s scores that are already stored", len(existing))
    for document in documents:
        if document.score_id in existing:
            errors.append(_error_payload(ScoreExistsFailure(f"Score {document.score_id} already exists.")))
    documents = [document for document in documents if document.score_id not in existing]
    insert_scores(session, documents)

    by_playtype: dict[str, list[ScoreDocument]] = defaultdict(list)
    for document in documents:
        by_playtype[document.playtype].append(document)

    playtypes = set(by_playtype)
    if parsed.classes and parsed.classes_playtype is not None:
        playtypes.add(parsed.classes_playtype)

    record = ImportRecord(
        import_id=import_id,
        user_id=user_id,
        import_type=import_type,
        game=parsed.game,
        playtypes=sorted(playtypes),
        score_ids=[document.score_id for document in documents],
        errors=errors,
        class_deltas=[],
        goal_info=[],
        milestone_info=[],
        created_sessions=[],
        updated_sessions=[],
        time_started=time_started,
        time_finished=time_started,
        user_intent=user_intent,
    )

    for playtype in sorted(playtypes):
        submitted = parsed.classes if playtype == parsed.classes_playtype else {}
        outcome = _process_playtype(
            session,
            webhooks,
            game=parsed.game,
            playtype=playtype,
            user_id=user_id,
            documents=by_playtype.get(playtype, []),
            submitted_classes=submitted,
            now=time_started,
        )
        record.created_sessions = [*record.created_sessions, *outcome.created_sessions]
        record.updated_sessions = [*record.updated_sessions, *outcome.updated_sessions]
        record.class_deltas = [
            *record.class_deltas,
            *(
                {"set": delta.class_set, "playtype": playtype, "old": delta.old, "new": delta.new}
                for delta in outcome.class_deltas
            ),
        ]
        record.goal_info = [*record.goal_info, *outcome.goal_info]
        record.milestone_info = [*record.milestone_info, *outcome.milestone_info]

    record.time_finished = now or datetime.now(UTC).replace(tzinfo=None)
    insert_import(session, record)

    logger.info(
        "Finished import %s: scores=%s errors=%s sessions=%s",
        import_id,
        len(record.score_ids),
        len(record.errors),
        len(record.created_sessions) + len(record.updated_sessions),
    )
    return record


def _convert_entries(
    session: Session,
    descriptor: ImportTypeDescriptor,
    parsed: ParsedImport,
    *,
    user_id: int,
    import_id: str,
    now: datetime,
) -> tuple[list[ScoreDocument], list[dict[str, Any]]]:
    documents: list[ScoreDocument] = []
    errors: list[dict[str, Any]] = []
    seen: set[str] = set()

    for index, entry in enumerate(parsed.entries):
        try:
            converted = descriptor.convert(session, entry, parsed.context, descriptor.import_type)
            chart = converted.chart
            config = gpt_registry.get(chart.game, chart.playtype)
            score_id = create_score_id(config, user_id, chart.chart_id, converted.dry_score)
            if score_id in seen:
                raise ScoreExistsFailure(f"Score {score_id} appears more than once in this import.")
            document = hydrate_score(user_id, converted.dry_score, chart, converted.song, score_id, now=now)
        except InternalFailure as exc:
            logger.critical("Import %s entry %s failed internally: %s", import_id, index, exc.message)
            errors.append(_error_payload(exc))
            continue
        except ConverterFailure as exc:
            logger.debug("Import %s entry %s rejected (%s): %s", import_id, index, exc.failure_type, exc.message)
            errors.append(_error_payload(exc))
            continue

        seen.add(score_id)
        documents.append(document)

    return documents, errors


def _process_playtype(
    session: Session,
    webhooks: WebhookEmitter,
    *,
    game: str,
    playtype: str,
    user_id: int,
    documents: Sequence[ScoreDocument],
    submitted_classes: Mapping[str, int],
    now: datetime,
) -> PlaytypeOutcome:
    config = gpt_registry.get(game, playtype)

    sessions = process_sessions(session, config, user_id=user_id, documents=documents, now=now)

    stats = recompute_profile_ratings(session, config, user_id)
    classes = derive_classes(game, stats.ratings)
    classes.update(submitted_classes)
    class_deltas = apply_class_updates(session, webhooks, config, user_id=user_id, classes=classes, now=now)

    goal_updates = update_goals_for_user(session, webhooks, user_id=user_id, game=game, playtype=playtype, now=now)
    milestone_updates = update_milestones_for_user(
        session,
        webhooks,
        user_id=user_id,
        game=game,
        playtype=playtype,
        now=now,
    )

    return PlaytypeOutcome(
        created_sessions=[info.session_id for info in sessions if info.created],
        updated_sessions=[info.session_id for info in sessions if not info.created],
        class_deltas=class_deltas,
        goal_info=[
            {
                "goalID": update.goal_id,
                "old": goal_result_payload(update.old),
                "new": goal_result_payload(update.new),
            }
            for update in goal_updates
        ],
        milestone_info=[
            {
                "milestoneID": update.milestone_id,
                "old": update.old_progress,
                "new": update.new_progress,
                "achieved": update.achieved,
            }
            for update in milestone_updates
        ],
    )


def _error_payload(failure: ConverterFailure) -> dict[str, Any]:
    return {"type": failure.failure_type, "message": failure.message}


__all__ = ["PlaytypeOutcome", "import_scores"]
