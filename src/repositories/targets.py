"""Goal, milestone and subscription persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from domain.errors import CorruptStateError
from models import Goal, GoalSubscription, Milestone, MilestoneSet, MilestoneSubscription
from repositories.base import BaseRepository

logger = logging.getLogger(__name__)

GOAL_REPOSITORY = BaseRepository(model=Goal, id_column="goal_id")
GOAL_SUB_REPOSITORY = BaseRepository(model=GoalSubscription, id_column="id")
MILESTONE_REPOSITORY = BaseRepository(model=Milestone, id_column="milestone_id")
MILESTONE_SUB_REPOSITORY = BaseRepository(model=MilestoneSubscription, id_column="id")
MILESTONE_SET_REPOSITORY = BaseRepository(model=MilestoneSet, id_column="set_id")

RECENT_TARGETS_LIMIT = 100
POPULAR_TARGETS_LIMIT = 100
SEARCH_LIMIT = 50


@dataclass(frozen=True)
class SubscribedCount:
    """A target and how many users are subscribed to it."""

    target: Any
    subscriptions: int


def get_goal_sub(session: Session, user_id: int, goal_id: str) -> GoalSubscription | None:
    return GOAL_SUB_REPOSITORY.find_one(
        session,
        GoalSubscription.user_id == user_id,
        GoalSubscription.goal_id == goal_id,
    )


def get_goal_subs_for_goals(session: Session, user_id: int, goal_ids: list[str]) -> dict[str, GoalSubscription]:
    if not goal_ids:
        return {}
    subs = GOAL_SUB_REPOSITORY.find(
        session,
        GoalSubscription.user_id == user_id,
        GoalSubscription.goal_id.in_(goal_ids),
    )
    return {sub.goal_id: sub for sub in subs}


def get_milestone_sub(session: Session, user_id: int, milestone_id: str) -> MilestoneSubscription | None:
    return MILESTONE_SUB_REPOSITORY.find_one(
        session,
        MilestoneSubscription.user_id == user_id,
        MilestoneSubscription.milestone_id == milestone_id,
    )


def get_unachieved_goal_subs(session: Session, user_id: int, game: str, playtype: str) -> list[GoalSubscription]:
    return GOAL_SUB_REPOSITORY.find(
        session,
        GoalSubscription.user_id == user_id,
        GoalSubscription.game == game,
        GoalSubscription.playtype == playtype,
        GoalSubscription.achieved.is_(False),
        order_by=(GoalSubscription.goal_id,),
    )


def get_unachieved_milestone_subs(
    session: Session, user_id: int, game: str, playtype: str
) -> list[MilestoneSubscription]:
    return MILESTONE_SUB_REPOSITORY.find(
        session,
        MilestoneSubscription.user_id == user_id,
        MilestoneSubscription.game == game,
        MilestoneSubscription.playtype == playtype,
        MilestoneSubscription.achieved.is_(False),
        order_by=(MilestoneSubscription.milestone_id,),
    )


def fetch_goals_exactly(session: Session, goal_ids: list[str], *, error: str) -> dict[str, Goal]:
    """Fetch parent goals in one query; any missing goal means the subscriptions point nowhere."""
    wanted = set(goal_ids)
    goals = GOAL_REPOSITORY.get_many(session, wanted)
    if len(goals) != len(wanted):
        logger.error(
            "Found %s goals when looking for parents of %s subscriptions. This mismatch implies a state desync.",
            len(goals),
            len(wanted),
        )
        raise CorruptStateError(error)
    return {goal.goal_id: goal for goal in goals}


def fetch_milestones_exactly(session: Session, milestone_ids: list[str], *, error: str) -> dict[str, Milestone]:
    wanted = set(milestone_ids)
    milestones = MILESTONE_REPOSITORY.get_many(session, wanted)
    if len(milestones) != len(wanted):
        logger.error(
            "Found %s milestones when looking for parents of %s subscriptions. This mismatch implies a state desync.",
            len(milestones),
            len(wanted),
        )
        raise CorruptStateError(error)
    return {milestone.milestone_id: milestone for milestone in milestones}


def get_recently_achieved_goals(
    session: Session, *, user_id: int, game: str, playtype: str, limit: int = RECENT_TARGETS_LIMIT
) -> tuple[list[Goal], list[GoalSubscription]]:
    subs = GOAL_SUB_REPOSITORY.find(
        session,
        GoalSubscription.user_id == user_id,
        GoalSubscription.game == game,
        GoalSubscription.playtype == playtype,
        GoalSubscription.was_instantly_achieved.is_(False),
        GoalSubscription.achieved.is_(True),
        order_by=(GoalSubscription.time_achieved.desc(),),
        limit=limit,
    )
    goals = fetch_goals_exactly(session, [sub.goal_id for sub in subs], error="Failed to fetch goals.")
    return [goals[sub.goal_id] for sub in subs], subs


def get_recently_interacted_goals(
    session: Session, *, user_id: int, game: str, playtype: str, limit: int = RECENT_TARGETS_LIMIT
) -> tuple[list[Goal], list[GoalSubscription]]:
    subs = GOAL_SUB_REPOSITORY.find(
        session,
        GoalSubscription.user_id == user_id,
        GoalSubscription.game == game,
        GoalSubscription.playtype == playtype,
        GoalSubscription.was_instantly_achieved.is_(False),
        GoalSubscription.achieved.is_(False),
        GoalSubscription.last_interaction.is_not(None),
        order_by=(GoalSubscription.last_interaction.desc(),),
        limit=limit,
    )
    goals = fetch_goals_exactly(session, [sub.goal_id for sub in subs], error="Failed to fetch goals.")
    return [goals[sub.goal_id] for sub in subs], subs


def get_recently_achieved_milestones(
    session: Session, *, user_id: int, game: str, playtype: str, limit: int = RECENT_TARGETS_LIMIT
) -> tuple[list[Milestone], list[MilestoneSubscription]]:
    subs = MILESTONE_SUB_REPOSITORY.find(
        session,
        MilestoneSubscription.user_id == user_id,
        MilestoneSubscription.game == game,
        MilestoneSubscription.playtype == playtype,
        MilestoneSubscription.was_instantly_achieved.is_(False),
        MilestoneSubscription.achieved.is_(True),
        order_by=(MilestoneSubscription.time_achieved.desc(),),
        limit=limit,
    )
    milestones = fetch_milestones_exactly(
        session, [sub.milestone_id for sub in subs], error="Failed to fetch milestones."
    )
    return [milestones[sub.milestone_id] for sub in subs], subs


def get_recently_interacted_milestones(
    session: Session, *, user_id: int, game: str, playtype: str, limit: int = RECENT_TARGETS_LIMIT
) -> tuple[list[Milestone], list[MilestoneSubscription]]:
    subs = MILESTONE_SUB_REPOSITORY.find(
        session,
        MilestoneSubscription.user_id == user_id,
        MilestoneSubscription.game == game,
        MilestoneSubscription.playtype == playtype,
        MilestoneSubscription.was_instantly_achieved.is_(False),
        MilestoneSubscription.achieved.is_(False),
        MilestoneSubscription.last_interaction.is_not(None),
        order_by=(MilestoneSubscription.last_interaction.desc(),),
        limit=limit,
    )
    milestones = fetch_milestones_exactly(
        session, [sub.milestone_id for sub in subs], error="Failed to fetch milestones."
    )
    return [milestones[sub.milestone_id] for sub in subs], subs


def get_most_subscribed_goals(
    session: Session, *, game: str, playtype: str, limit: int = POPULAR_TARGETS_LIMIT
) -> list[SubscribedCount]:
    subscriptions = func.count(GoalSubscription.id).label("subscriptions")
    statement = (
        select(Goal, subscriptions)
        .join(GoalSubscription, GoalSubscription.goal_id == Goal.goal_id)
        .where(GoalSubscription.game == game, GoalSubscription.playtype == playtype)
        .group_by(Goal.goal_id)
        .order_by(subscriptions.desc(), Goal.goal_id)
        .limit(limit)
    )
    return [SubscribedCount(target=goal, subscriptions=count) for goal, count in session.execute(statement)]


def get_most_subscribed_milestones(
    session: Session, *, game: str, playtype: str, limit: int = POPULAR_TARGETS_LIMIT
) -> list[SubscribedCount]:
    subscriptions = func.count(MilestoneSubscription.id).label("subscriptions")
    statement = (
        select(Milestone, subscriptions)
        .join(MilestoneSubscription, MilestoneSubscription.milestone_id == Milestone.milestone_id)
        .where(MilestoneSubscription.game == game, MilestoneSubscription.playtype == playtype)
        .group_by(Milestone.milestone_id)
        .order_by(subscriptions.desc(), Milestone.milestone_id)
        .limit(limit)
    )
    return [
        SubscribedCount(target=milestone, subscriptions=count) for milestone, count in session.execute(statement)
    ]


def get_child_milestones(session: Session, milestone_set: MilestoneSet) -> list[Milestone]:
    """Milestones of a set, in the set's order."""
    milestones = {
        milestone.milestone_id: milestone
        for milestone in MILESTONE_REPOSITORY.get_many(session, milestone_set.milestones)
    }
    if len(milestones) != len(set(milestone_set.milestones)):
        logger.error(
            "Expected to find %s milestones in the database, but only found %s. set=%s",
            len(milestone_set.milestones),
            len(milestones),
            milestone_set.set_id,
        )
        raise CorruptStateError("Failed to retrieve milestone sets' children.")
    return [milestones[milestone_id] for milestone_id in milestone_set.milestones]


def get_parent_milestone_sets(session: Session, milestone: Milestone) -> list[MilestoneSet]:
    # membership lives in a JSON list, so the filter runs here
    candidates = MILESTONE_SET_REPOSITORY.find(
        session,
        MilestoneSet.game == milestone.game,
        MilestoneSet.playtype == milestone.playtype,
        order_by=(MilestoneSet.set_id,),
    )
    return [milestone_set for milestone_set in candidates if milestone.milestone_id in milestone_set.milestones]


def get_subscribed_milestones_with_goal(session: Session, user_id: int, goal_id: str) -> list[Milestone]:
    """Milestones the user is subscribed to that contain this goal."""
    statement = (
        select(Milestone)
        .join(MilestoneSubscription, MilestoneSubscription.milestone_id == Milestone.milestone_id)
        .where(MilestoneSubscription.user_id == user_id)
        .order_by(Milestone.milestone_id)
    )
    # goal membership lives in the sections' JSON
    return [
        milestone
        for milestone in session.scalars(statement)
        if any(goal_ref["goalID"] == goal_id for section in milestone.milestone_data for goal_ref in section["goals"])
    ]


def search_milestones(
    session: Session, *, game: str, playtype: str, search: str, limit: int = SEARCH_LIMIT
) -> list[Milestone]:
    pattern = f"%{search.strip().lower()}%"
    return MILESTONE_REPOSITORY.find(
        session,
        Milestone.game == game,
        Milestone.playtype == playtype,
        or_(func.lower(Milestone.name).like(pattern), func.lower(Milestone.desc).like(pattern)),
        order_by=(Milestone.name, Milestone.milestone_id),
        limit=limit,
    )


__all__ = [
    "GOAL_REPOSITORY",
    "GOAL_SUB_REPOSITORY",
    "MILESTONE_REPOSITORY",
    "MILESTONE_SET_REPOSITORY",
    "MILESTONE_SUB_REPOSITORY",
    "SubscribedCount",
    "fetch_goals_exactly",
    "fetch_milestones_exactly",
    "get_child_milestones",
    "get_goal_sub",
    "get_goal_subs_for_goals",
    "get_milestone_sub",
    "get_most_subscribed_goals",
    "get_most_subscribed_milestones",
    "get_parent_milestone_sets",
    "get_recently_achieved_goals",
    "get_recently_achieved_milestones",
    "get_recently_interacted_goals",
    "get_recently_interacted_milestones",
    "get_subscribed_milestones_with_goal",
    "get_unachieved_goal_subs",
    "get_unachieved_milestone_subs",
    "search_milestones",
]
