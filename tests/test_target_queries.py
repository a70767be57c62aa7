"""Tests for goal and milestone lookup queries."""

from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from conftest import NOW, add_goal, add_milestone, seed_iidx_catalog
from domain.errors import CorruptStateError
from domain.targets.goals import subscribe_to_goal
from models import MilestoneSet
from repositories.targets import (
    get_child_milestones,
    get_most_subscribed_goals,
    get_parent_milestone_sets,
    search_milestones,
)


def _seed(session: Session) -> None:
    seed_iidx_catalog(session)
    for index in (1, 2):
        add_goal(
            session,
            goal_id=f"hc-{index}",
            charts={"type": "single", "data": f"iidx-sp-a-{index}"},
            criteria={"key": "lamp", "value": 5, "mode": "single"},
        )
    add_milestone(session, milestone_id="first", goal_ids=["hc-1", "hc-2"], criteria={"type": "all"})
    add_milestone(session, milestone_id="second", goal_ids=["hc-1", "hc-2"], criteria={"type": "all"})


def _add_set(session: Session, set_id: str, milestones: list[str]) -> MilestoneSet:
    milestone_set = MilestoneSet(set_id=set_id, game="iidx", playtype="SP", name=set_id, desc="", milestones=milestones)
    session.add(milestone_set)
    session.flush()
    return milestone_set


def test_child_milestones_keep_set_order(session: Session) -> None:
    _seed(session)
    milestone_set = _add_set(session, "set", ["second", "first"])

    children = get_child_milestones(session, milestone_set)

    assert [milestone.milestone_id for milestone in children] == ["second", "first"]


def test_missing_child_milestone_is_corrupt(session: Session) -> None:
    _seed(session)
    milestone_set = _add_set(session, "set", ["first", "deleted"])

    with pytest.raises(CorruptStateError):
        get_child_milestones(session, milestone_set)


def test_parent_sets_of_a_milestone(session: Session) -> None:
    _seed(session)
    _add_set(session, "a", ["first"])
    _add_set(session, "b", ["second"])
    _add_set(session, "c", ["second", "first"])
    first = search_milestones(session, game="iidx", playtype="SP", search="milestone first")[0]

    assert [milestone_set.set_id for milestone_set in get_parent_milestone_sets(session, first)] == ["a", "c"]


def test_most_subscribed_goals(session: Session) -> None:
    _seed(session)
    charts = {"type": "single", "data": "iidx-sp-a-3"}
    criteria = {"key": "lamp", "value": 4, "mode": "single"}
    popular = add_goal(session, goal_id="popular", charts=charts, criteria=criteria)
    niche = add_goal(session, goal_id="niche", charts=charts, criteria=criteria)
    for user_id in (1, 2, 3):
        subscribe_to_goal(session, user_id, popular, now=NOW)
    subscribe_to_goal(session, 1, niche, now=NOW)

    ranked = get_most_subscribed_goals(session, game="iidx", playtype="SP")

    assert [(entry.target.goal_id, entry.subscriptions) for entry in ranked] == [("popular", 3), ("niche", 1)]
    assert get_most_subscribed_goals(session, game="iidx", playtype="DP") == []
