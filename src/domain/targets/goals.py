"""Goal evaluation and goal subscriptions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from domain.errors import CorruptStateError
from domain.gpt import registry as gpt_registry
from domain.gpt.config import GPTConfig, MetricConfig, MetricGroup, MetricType
from domain.protocol import (
    SubscribeFailReason,
    UnsubscribeFailReason,
    WebhookEmitter,
    WebhookEvent,
    WebhookEventType,
)
from models import Goal, GoalSubscription
from repositories.catalog import CHART_REPOSITORY, find_charts_for_gpt
from repositories.scores import best_metric_per_chart
from repositories.targets import (
    GOAL_SUB_REPOSITORY,
    fetch_goals_exactly,
    get_goal_sub,
    get_subscribed_milestones_with_goal,
    get_unachieved_goal_subs,
)

logger = logging.getLogger(__name__)

NO_DATA = "NO DATA"


@dataclass(frozen=True)
class EvaluatedGoal:
    achieved: bool
    progress: float | None
    out_of: float
    progress_human: str
    out_of_human: str


@dataclass(frozen=True)
class GoalUpdate:
    """A subscription whose progress moved during re-evaluation."""

    goal_id: str
    old: EvaluatedGoal
    new: EvaluatedGoal


def evaluate_goal_for_user(session: Session, goal: Goal, user_id: int) -> EvaluatedGoal:
    """Evaluate a goal against the user's current scores. Touches no subscription.

    Raises CorruptStateError when the goal points at charts or metrics that don't exist.
    """
    config = gpt_registry.get(goal.game, goal.playtype)
    metric = _criteria_metric(config, goal)
    chart_ids = _goal_chart_ids(session, goal)

    # enums are compared on their rank
    key = f"{metric.name}Index" if metric.type is MetricType.ENUM else metric.name
    best = best_metric_per_chart(
        session,
        user_id=user_id,
        game=goal.game,
        playtype=goal.playtype,
        key=key,
        chart_ids=chart_ids,
    )

    criteria = goal.criteria
    target = criteria["value"]
    mode = criteria["mode"]

    if mode == "single":
        progress = max(best.values()) if best else None
        return EvaluatedGoal(
            achieved=progress is not None and progress >= target,
            progress=progress,
            out_of=target,
            progress_human=NO_DATA if progress is None else format_metric_value(metric, progress),
            out_of_human=format_metric_value(metric, target),
        )

    achieved_charts = sum(1 for value in best.values() if value >= target)
    if mode == "absolute":
        out_of = criteria["countNum"]
    elif mode == "proportion":
        if chart_ids is None:
            chart_ids = [chart.chart_id for chart in find_charts_for_gpt(session, goal.game, goal.playtype)]
        out_of = math.floor(criteria["countNum"] * len(chart_ids))
    else:
        logger.error("Goal %s has an unknown criteria mode %r.", goal.goal_id, mode)
        raise CorruptStateError(f"Invalid goal criteria mode of {mode}.")

    return EvaluatedGoal(
        achieved=achieved_charts >= out_of,
        progress=achieved_charts,
        out_of=out_of,
        progress_human=str(achieved_charts),
        out_of_human=str(out_of),
    )


def format_metric_value(metric: MetricConfig, value: Any) -> str:
    if metric.type is MetricType.ENUM:
        return metric.values[int(value)]
    if metric.name == "percent":
        return f"{value:.2f}%"
    if metric.type is MetricType.INTEGER:
        return str(int(value))
    return f"{value:.2f}"


def subscribe_to_goal(
    session: Session,
    user_id: int,
    goal: Goal,
    cancel_if_achieved: bool = True,
    *,
    now: datetime | None = None,
) -> GoalSubscription | SubscribeFailReason:
    if get_goal_sub(session, user_id, goal.goal_id) is not None:
        return SubscribeFailReason.ALREADY_SUBSCRIBED

    result = evaluate_goal_for_user(session, goal, user_id)
    if result.achieved and cancel_if_achieved:
        return SubscribeFailReason.ALREADY_ACHIEVED

    now = now or datetime.now(UTC).replace(tzinfo=None)
    subscription = GoalSubscription(
        user_id=user_id,
        goal_id=goal.goal_id,
        game=goal.game,
        playtype=goal.playtype,
        achieved=result.achieved,
        was_instantly_achieved=result.achieved,
        progress=result.progress,
        out_of=result.out_of,
        progress_human=result.progress_human,
        out_of_human=result.out_of_human,
        last_interaction=None,
        time_set=now,
        time_achieved=now if result.achieved else None,
    )
    session.add(subscription)
    session.flush()

    logger.info("User %s subscribed to goal '%s'.", user_id, goal.name)
    return subscription


def unsubscribe_from_goal(session: Session, user_id: int, goal_id: str) -> int | UnsubscribeFailReason:
    """Delete the user's subscription to a goal, returning how many rows went.

    A goal inside a milestone the user is subscribed to stays subscribed.
    """
    parents = get_subscribed_milestones_with_goal(session, user_id, goal_id)
    if parents:
        logger.info(
            "User %s tried to unsubscribe from goal %s, which is part of milestones %s.",
            user_id,
            goal_id,
            [milestone.milestone_id for milestone in parents],
        )
        return UnsubscribeFailReason.PART_OF_SUBSCRIBED_MILESTONE

    return GOAL_SUB_REPOSITORY.delete_where(
        session,
        GoalSubscription.user_id == user_id,
        GoalSubscription.goal_id == goal_id,
    )


def update_goals_for_user(
    session: Session,
    webhooks: WebhookEmitter,
    *,
    user_id: int,
    game: str,
    playtype: str,
    now: datetime | None = None,
) -> list[GoalUpdate]:
    """Re-evaluate every unachieved goal subscription of a user on one GPT."""
    subscriptions = get_unachieved_goal_subs(session, user_id, game, playtype)
    if not subscriptions:
        return []

    goals = fetch_goals_exactly(session, [sub.goal_id for sub in subscriptions], error="Failed to fetch goals.")
    now = now or datetime.now(UTC).replace(tzinfo=None)

    updates: list[GoalUpdate] = []
    for subscription in subscriptions:
        old = _from_subscription(subscription)
        new = evaluate_goal_for_user(session, goals[subscription.goal_id], user_id)
        if new == old:
            continue

        subscription.progress = new.progress
        subscription.out_of = new.out_of
        subscription.progress_human = new.progress_human
        subscription.out_of_human = new.out_of_human
        subscription.last_interaction = now
        if new.achieved:
            subscription.achieved = True
            subscription.time_achieved = now
        updates.append(GoalUpdate(goal_id=subscription.goal_id, old=old, new=new))

    session.flush()

    achieved = [update for update in updates if update.new.achieved]
    if achieved:
        webhooks.emit(
            WebhookEvent(
                type=WebhookEventType.GOALS_ACHIEVED,
                content={
                    "userID": user_id,
                    "game": game,
                    "goals": [
                        {
                            "goalID": update.goal_id,
                            "old": goal_result_payload(update.old),
                            "new": goal_result_payload(update.new),
                            "playtype": playtype,
                        }
                        for update in achieved
                    ],
                },
            )
        )
    return updates


def goal_result_payload(result: EvaluatedGoal) -> dict[str, Any]:
    return {
        "achieved": result.achieved,
        "progress": result.progress,
        "outOf": result.out_of,
        "progressHuman": result.progress_human,
        "outOfHuman": result.out_of_human,
    }


def _from_subscription(subscription: GoalSubscription) -> EvaluatedGoal:
    return EvaluatedGoal(
        achieved=subscription.achieved,
        progress=subscription.progress,
        out_of=subscription.out_of,
        progress_human=subscription.progress_human,
        out_of_human=subscription.out_of_human,
    )


def _criteria_metric(config: GPTConfig, goal: Goal) -> MetricConfig:
    key = goal.criteria.get("key")
    try:
        metric = config.metric(key)
    except KeyError as exc:
        logger.error("Goal %s references unknown metric %r for %s.", goal.goal_id, key, config.name)
        raise CorruptStateError(f"Goal {goal.goal_id} has an invalid criteria key.") from exc

    if metric.group is MetricGroup.ADDITIONAL:
        logger.error("Goal %s uses additional metric %r, which is never compared.", goal.goal_id, key)
        raise CorruptStateError(f"Goal {goal.goal_id} has an invalid criteria key.")
    return metric


def _goal_chart_ids(session: Session, goal: Goal) -> list[str] | None:
    """Chart IDs a goal is about, or None for every chart of the GPT."""
    charts_type = goal.charts.get("type")
    if charts_type == "any":
        return None

    if charts_type == "single":
        chart_ids = [goal.charts["data"]]
    elif charts_type == "multi":
        chart_ids = list(goal.charts["data"])
    else:
        logger.error("Goal %s has an unknown charts type %r.", goal.goal_id, charts_type)
        raise CorruptStateError(f"Invalid goal charts type of {charts_type}.")

    found = CHART_REPOSITORY.get_many(session, chart_ids)
    if len(found) != len(set(chart_ids)):
        logger.error(
            "Goal %s references %s charts, but only %s exist.",
            goal.goal_id,
            len(set(chart_ids)),
            len(found),
        )
        raise CorruptStateError(f"Goal {goal.goal_id} references charts that don't exist.")
    return chart_ids


__all__ = [
    "EvaluatedGoal",
    "GoalUpdate",
    "evaluate_goal_for_user",
    "format_metric_value",
    "goal_result_payload",
    "subscribe_to_goal",
    "unsubscribe_from_goal",
    "update_goals_for_user",
]
