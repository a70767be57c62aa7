"""Class progression: store class values and record every change."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from domain.gpt.config import GPTConfig
from domain.protocol import WebhookEmitter, WebhookEvent, WebhookEventType
from repositories.game_stats import (
    add_class_achievement,
    add_class_value,
    get_or_create_stats,
    get_stats,
    raise_class_value,
    replace_class_value,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassDelta:
    class_set: str
    old: int | None
    new: int


def update_class_if_greater(
    session: Session,
    webhooks: WebhookEmitter,
    *,
    user_id: int,
    game: str,
    playtype: str,
    class_set: str,
    class_value: int,
    now: datetime | None = None,
) -> bool | None:
    """Store a class value unless the user already has an equal or better one.

    Returns None when the user had no value for this class set (it is stored),
    False when the stored value is not lower (nothing changes) and True when a
    lower value was replaced.
    """
    stats = get_stats(session, user_id, game, playtype)
    if stats is None:
        stats = get_or_create_stats(session, user_id, game, playtype)
        logger.info("Created new player gamestats for user=%s %s %s", user_id, game, playtype)

    old_value = stats.classes.get(class_set)
    if old_value is None:
        add_class_value(session, stats, class_set, class_value)
        result: bool | None = None
    elif class_value <= old_value:
        return False
    elif raise_class_value(session, stats, class_set, class_value):
        result = True
    else:
        # raised by someone else between the read and the conditional write
        return False

    _record_change(
        session,
        webhooks,
        user_id=user_id,
        game=game,
        playtype=playtype,
        class_set=class_set,
        old_value=old_value,
        new_value=class_value,
        now=now,
    )
    return result


def set_class(
    session: Session,
    webhooks: WebhookEmitter,
    *,
    user_id: int,
    game: str,
    playtype: str,
    class_set: str,
    class_value: int,
    now: datetime | None = None,
) -> bool:
    """Store a downgradable class value. Returns whether anything changed."""
    stats = get_or_create_stats(session, user_id, game, playtype)
    old_value = stats.classes.get(class_set)

    if old_value is None:
        add_class_value(session, stats, class_set, class_value)
    elif not replace_class_value(session, stats, class_set, class_value):
        return False

    _record_change(
        session,
        webhooks,
        user_id=user_id,
        game=game,
        playtype=playtype,
        class_set=class_set,
        old_value=old_value,
        new_value=class_value,
        now=now,
    )
    return True


def apply_class_updates(
    session: Session,
    webhooks: WebhookEmitter,
    config: GPTConfig,
    *,
    user_id: int,
    classes: Mapping[str, int],
    now: datetime | None = None,
) -> list[ClassDelta]:
    """Apply class values for one GPT; downgradable classes are set, others only go up."""
    stats = get_stats(session, user_id, config.game, config.playtype)
    current = {} if stats is None else stats.classes

    deltas: list[ClassDelta] = []
    for class_set, class_value in classes.items():
        class_config = config.supported_classes.get(class_set)
        if class_config is None:
            raise ValueError(f"{config.name} does not support class '{class_set}'")

        old_value = current.get(class_set)
        kwargs = dict(
            user_id=user_id,
            game=config.game,
            playtype=config.playtype,
            class_set=class_set,
            class_value=class_value,
            now=now,
        )
        if class_config.downgradable:
            changed = set_class(session, webhooks, **kwargs)
        else:
            changed = update_class_if_greater(session, webhooks, **kwargs) is not False

        if changed:
            deltas.append(ClassDelta(class_set=class_set, old=old_value, new=class_value))
    return deltas


def _record_change(
    session: Session,
    webhooks: WebhookEmitter,
    *,
    user_id: int,
    game: str,
    playtype: str,
    class_set: str,
    old_value: int | None,
    new_value: int,
    now: datetime | None,
) -> None:
    add_class_achievement(
        session,
        user_id=user_id,
        game=game,
        playtype=playtype,
        class_set=class_set,
        old_value=old_value,
        new_value=new_value,
        time_achieved=now or datetime.now(UTC).replace(tzinfo=None),
    )
    webhooks.emit(
        WebhookEvent(
            type=WebhookEventType.CLASS_UPDATE,
            content={
                "userID": user_id,
                "new": new_value,
                "old": old_value,
                "set": class_set,
                "game": game,
                "playtype": playtype,
            },
        )
    )


__all__ = ["ClassDelta", "apply_class_updates", "set_class", "update_class_if_greater"]
