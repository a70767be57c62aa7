"""Tests for class progression and class achievements."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import NOW, RecordingWebhooks
from domain.classes.progression import apply_class_updates, set_class, update_class_if_greater
from domain.classes.values import IIDXDans, SDVXVFClasses
from domain.gpt import registry as gpt_registry
from domain.protocol import WebhookEventType
from models import ClassAchievement
from repositories.game_stats import get_stats


def _update(session: Session, webhooks: RecordingWebhooks, value: IIDXDans) -> bool | None:
    return update_class_if_greater(
        session,
        webhooks,
        user_id=1,
        game="iidx",
        playtype="SP",
        class_set="dan",
        class_value=int(value),
        now=NOW,
    )


def test_update_class_if_greater_sequence(session: Session, webhooks: RecordingWebhooks) -> None:
    assert _update(session, webhooks, IIDXDans.DAN_5) is None
    assert _update(session, webhooks, IIDXDans.DAN_3) is False
    assert _update(session, webhooks, IIDXDans.DAN_5) is False
    assert _update(session, webhooks, IIDXDans.DAN_8) is True

    stats = get_stats(session, 1, "iidx", "SP")
    assert stats is not None
    assert stats.classes == {"dan": int(IIDXDans.DAN_8)}


def test_class_changes_are_recorded(session: Session, webhooks: RecordingWebhooks) -> None:
    _update(session, webhooks, IIDXDans.DAN_5)
    _update(session, webhooks, IIDXDans.DAN_3)
    _update(session, webhooks, IIDXDans.DAN_8)

    achievements = session.scalars(select(ClassAchievement).order_by(ClassAchievement.id)).all()
    assert [(row.class_old_value, row.class_value) for row in achievements] == [
        (None, int(IIDXDans.DAN_5)),
        (int(IIDXDans.DAN_5), int(IIDXDans.DAN_8)),
    ]
    assert achievements[0].time_achieved == NOW

    assert [event.type for event in webhooks.events] == [WebhookEventType.CLASS_UPDATE] * 2
    assert webhooks.events[1].content == {
        "userID": 1,
        "new": int(IIDXDans.DAN_8),
        "old": int(IIDXDans.DAN_5),
        "set": "dan",
        "game": "iidx",
        "playtype": "SP",
    }


def test_set_class_allows_downgrades(session: Session, webhooks: RecordingWebhooks) -> None:
    kwargs = dict(user_id=2, game="sdvx", playtype="Single", class_set="vfClass", now=NOW)

    assert set_class(session, webhooks, class_value=int(SDVXVFClasses.CYAN_II), **kwargs) is True
    assert set_class(session, webhooks, class_value=int(SDVXVFClasses.CYAN_I), **kwargs) is True
    assert set_class(session, webhooks, class_value=int(SDVXVFClasses.CYAN_I), **kwargs) is False

    stats = get_stats(session, 2, "sdvx", "Single")
    assert stats is not None
    assert stats.classes == {"vfClass": int(SDVXVFClasses.CYAN_I)}
    assert len(webhooks.events) == 2


def test_apply_class_updates_reports_deltas(session: Session, webhooks: RecordingWebhooks) -> None:
    config = gpt_registry.get("iidx", "SP")

    first = apply_class_updates(session, webhooks, config, user_id=3, classes={"dan": int(IIDXDans.DAN_1)}, now=NOW)
    lower = apply_class_updates(session, webhooks, config, user_id=3, classes={"dan": int(IIDXDans.KYU_1)}, now=NOW)
    higher = apply_class_updates(session, webhooks, config, user_id=3, classes={"dan": int(IIDXDans.DAN_2)}, now=NOW)

    assert [(delta.class_set, delta.old, delta.new) for delta in first] == [("dan", None, int(IIDXDans.DAN_1))]
    assert lower == []
    assert [(delta.old, delta.new) for delta in higher] == [(int(IIDXDans.DAN_1), int(IIDXDans.DAN_2))]


def test_apply_class_updates_rejects_unknown_class_set(session: Session, webhooks: RecordingWebhooks) -> None:
    config = gpt_registry.get("iidx", "SP")

    with pytest.raises(ValueError, match="vfClass"):
        apply_class_updates(session, webhooks, config, user_id=4, classes={"vfClass": 3}, now=NOW)
