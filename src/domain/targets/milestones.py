"""Milestone evaluation, subscriptions and reconciliation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from domain.errors import CorruptStateError
from domain.protocol import (
    NotificationSender,
    SubscribeFailReason,
    WebhookEmitter,
    WebhookEvent,
    WebhookEventType,
)
from domain.targets.goals import EvaluatedGoal, evaluate_goal_for_user, subscribe_to_goal
from models import Goal, Milestone, MilestoneSubscription
from repositories.targets import (
    GOAL_REPOSITORY,
    MILESTONE_REPOSITORY,
    MILESTONE_SUB_REPOSITORY,
    fetch_milestones_exactly,
    get_goal_subs_for_goals,
    get_milestone_sub,
    get_unachieved_milestone_subs,
)

logger = logging.getLogger(__name__)

MILESTONE_CHANGED = "MILESTONE_CHANGED"


@dataclass(frozen=True)
class MilestoneGoalResult:
    goal_id: str
    result: EvaluatedGoal


@dataclass(frozen=True)
class MilestoneProgress:
    goals: list[Goal]
    goal_results: list[MilestoneGoalResult]
    achieved: bool
    progress: int
    out_of: int


@dataclass(frozen=True)
class MilestoneSubscriptionResult:
    milestone_sub: MilestoneSubscription
    goals: list[Goal]
    goal_results: list[MilestoneGoalResult] = field(default_factory=list)


@dataclass(frozen=True)
class MilestoneUpdate:
    milestone_id: str
    old_progress: int
    new_progress: int
    achieved: bool


def get_goal_ids_from_milestone(milestone: Milestone) -> list[str]:
    """Goal IDs of every section, flattened in order."""
    return [goal_ref["goalID"] for section in milestone.milestone_data for goal_ref in section["goals"]]


def get_goals_in_milestone(session: Session, milestone: Milestone) -> list[Goal]:
    goal_ids = get_goal_ids_from_milestone(milestone)
    goals = GOAL_REPOSITORY.get_many(session, goal_ids)

    if len(goals) != len(goal_ids):
        logger.error(
            "Milestone %s has %s goals registered, but we could only find %s in the database?",
            milestone.name,
            len(goal_ids),
            len(goals),
        )
        raise CorruptStateError("Milestone is corrupt. Not the right amount of goals in db?")

    if len(goal_ids) < 2:
        logger.error("Milestone %s resolves to less than 2 goals. Isn't a valid milestone?", milestone.name)
        raise CorruptStateError("Milestone is corrupt. Doesn't have enough goals.")

    by_id = {goal.goal_id: goal for goal in goals}
    return [by_id[goal_id] for goal_id in goal_ids]


def calculate_milestone_out_of(milestone: Milestone) -> int:
    """How many goals must be achieved for the milestone to count as achieved."""
    criteria_type = milestone.criteria.get("type")
    if criteria_type == "all":
        return len(get_goal_ids_from_milestone(milestone))

    if criteria_type == "total":
        value = milestone.criteria.get("value")
        if value is None:
            raise CorruptStateError(
                f"Invalid milestone {milestone.milestone_id} - total and null are not compatible."
            )
        return int(value)

    raise CorruptStateError(
        f"Invalid milestone.criteria.type of {criteria_type} -- milestoneID {milestone.milestone_id}"
    )


def evaluate_milestone_progress(session: Session, user_id: int, milestone: Milestone) -> MilestoneProgress:
    """Progress of a user on a milestone, whether or not they are subscribed.

    Subscribed users are read from their goal subscriptions; everyone else is evaluated fresh.
    """
    goals = get_goals_in_milestone(session, milestone)
    subscribed = get_milestone_sub(session, user_id, milestone.milestone_id) is not None

    goal_results: list[MilestoneGoalResult] = []
    if subscribed:
        goal_subs = get_goal_subs_for_goals(session, user_id, [goal.goal_id for goal in goals])
        for goal in goals:
            goal_sub = goal_subs.get(goal.goal_id)
            if goal_sub is None:
                logger.error(
                    "User %s has a corrupt subscription to milestone '%s', They do not have all the goals "
                    "in this milestone assigned.",
                    user_id,
                    milestone.name,
                )
                raise CorruptStateError("User has corrupt subscription to milestone. Cannot calculate.")
            result = EvaluatedGoal(
                achieved=goal_sub.achieved,
                progress=goal_sub.progress,
                out_of=goal_sub.out_of,
                progress_human=goal_sub.progress_human,
                out_of_human=goal_sub.out_of_human,
            )
            goal_results.append(MilestoneGoalResult(goal_id=goal.goal_id, result=result))
    else:
        for goal in goals:
            try:
                result = evaluate_goal_for_user(session, goal, user_id)
            except CorruptStateError as exc:
                logger.error(
                    "Failed to calculate %s result for goal '%s'. Is the goal valid? milestone=%s",
                    user_id,
                    goal.name,
                    milestone.milestone_id,
                )
                raise CorruptStateError("Goal inside milestone is corrupt.") from exc
            goal_results.append(MilestoneGoalResult(goal_id=goal.goal_id, result=result))

    progress = sum(1 for entry in goal_results if entry.result.achieved)
    out_of = calculate_milestone_out_of(milestone)
    return MilestoneProgress(
        goals=goals,
        goal_results=goal_results,
        achieved=progress >= out_of,
        progress=progress,
        out_of=out_of,
    )


def subscribe_to_milestone(
    session: Session,
    user_id: int,
    milestone: Milestone,
    cancel_if_achieved: bool = True,
    *,
    now: datetime | None = None,
) -> MilestoneSubscriptionResult | SubscribeFailReason:
    """Subscribe a user to a milestone and every goal inside it.

    Goal subscriptions are written before the milestone subscription row.
    """
    if get_milestone_sub(session, user_id, milestone.milestone_id) is not None:
        return SubscribeFailReason.ALREADY_SUBSCRIBED

    result = evaluate_milestone_progress(session, user_id, milestone)
    if result.achieved and cancel_if_achieved:
        return SubscribeFailReason.ALREADY_ACHIEVED

    now = now or datetime.now(UTC).replace(tzinfo=None)
    for goal in result.goals:
        # already subscribed goals are fine
        subscribe_to_goal(session, user_id, goal, False, now=now)

    milestone_sub = MilestoneSubscription(
        user_id=user_id,
        milestone_id=milestone.milestone_id,
        game=milestone.game,
        playtype=milestone.playtype,
        progress=result.progress,
        achieved=result.achieved,
        was_instantly_achieved=result.achieved,
        last_interaction=None,
        time_set=now,
        time_achieved=now if result.achieved else None,
    )
    session.add(milestone_sub)
    session.flush()

    logger.info("User %s subscribed to '%s'.", user_id, milestone.name)
    return MilestoneSubscriptionResult(
        milestone_sub=milestone_sub,
        goals=result.goals,
        goal_results=result.goal_results,
    )


def unsubscribe_from_milestone(session: Session, user_id: int, milestone_id: str) -> int:
    """Remove the milestone subscription. Goal subscriptions are kept."""
    return MILESTONE_SUB_REPOSITORY.delete_where(
        session,
        MilestoneSubscription.user_id == user_id,
        MilestoneSubscription.milestone_id == milestone_id,
    )


def update_milestone_subscriptions(
    session: Session,
    milestone_id: str,
    notifications: NotificationSender,
    *,
    now: datetime | None = None,
) -> int:
    """Make sure every subscriber of a milestone is subscribed to all of its current goals.

    Removed goals keep their subscriptions. A deleted milestone loses all its subscribers.
    Returns how many goal subscriptions were created (or milestone subscriptions removed).
    """
    logger.info("Received update-subscribe call to milestone %s.", milestone_id)

    subscriptions = MILESTONE_SUB_REPOSITORY.find(
        session,
        MilestoneSubscription.milestone_id == milestone_id,
        order_by=(MilestoneSubscription.user_id,),
    )
    milestone = MILESTONE_REPOSITORY.get(session, milestone_id)

    if milestone is None:
        logger.info(
            "Milestone %s has been deleted. Unsubscribing %s users.",
            milestone_id,
            len(subscriptions),
        )
        return sum(unsubscribe_from_milestone(session, sub.user_id, milestone_id) for sub in subscriptions)

    goals = get_goals_in_milestone(session, milestone)

    created = 0
    for subscription in subscriptions:
        for goal in goals:
            outcome = subscribe_to_goal(session, subscription.user_id, goal, False, now=now)
            if outcome is not SubscribeFailReason.ALREADY_SUBSCRIBED:
                created += 1

    if created:
        logger.info("Updating subscriptions for '%s' resulted in %s updates.", milestone.name, created)
        notifications.bulk_send(
            f"The milestone '{milestone.name}' has changed, You have been automatically subscribed to some new goals.",
            [subscription.user_id for subscription in subscriptions],
            {"type": MILESTONE_CHANGED, "content": {"milestoneID": milestone_id}},
        )
    return created


def update_milestones_for_user(
    session: Session,
    webhooks: WebhookEmitter,
    *,
    user_id: int,
    game: str,
    playtype: str,
    now: datetime | None = None,
) -> list[MilestoneUpdate]:
    """Refresh unachieved milestone subscriptions from the user's goal subscriptions."""
    subscriptions = get_unachieved_milestone_subs(session, user_id, game, playtype)
    if not subscriptions:
        return []

    milestones = fetch_milestones_exactly(
        session,
        [sub.milestone_id for sub in subscriptions],
        error="Failed to fetch milestones.",
    )
    now = now or datetime.now(UTC).replace(tzinfo=None)

    updates: list[MilestoneUpdate] = []
    for subscription in subscriptions:
        milestone = milestones[subscription.milestone_id]
        result = evaluate_milestone_progress(session, user_id, milestone)
        if result.progress == subscription.progress and not result.achieved:
            continue

        old_progress = subscription.progress
        subscription.progress = result.progress
        subscription.last_interaction = now
        if result.achieved:
            subscription.achieved = True
            subscription.time_achieved = now
            webhooks.emit(
                WebhookEvent(
                    type=WebhookEventType.MILESTONE_ACHIEVED,
                    content=_achieved_payload(user_id, milestone, old_progress, result),
                )
            )
        updates.append(
            MilestoneUpdate(
                milestone_id=milestone.milestone_id,
                old_progress=old_progress,
                new_progress=result.progress,
                achieved=result.achieved,
            )
        )

    session.flush()
    return updates


def _achieved_payload(
    user_id: int, milestone: Milestone, old_progress: int, result: MilestoneProgress
) -> dict[str, Any]:
    return {
        "userID": user_id,
        "milestoneID": milestone.milestone_id,
        "old": {"progress": old_progress, "outOf": result.out_of, "achieved": False},
        "new": {"progress": result.progress, "outOf": result.out_of, "achieved": True},
        "game": milestone.game,
        "playtype": milestone.playtype,
    }


__all__ = [
    "MilestoneGoalResult",
    "MilestoneProgress",
    "MilestoneSubscriptionResult",
    "MilestoneUpdate",
    "calculate_milestone_out_of",
    "evaluate_milestone_progress",
    "get_goal_ids_from_milestone",
    "get_goals_in_milestone",
    "subscribe_to_milestone",
    "unsubscribe_from_milestone",
    "update_milestone_subscriptions",
    "update_milestones_for_user",
]
