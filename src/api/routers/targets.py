"""A user's goals and milestones on one GPT."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query

from api.dependencies import GPT, DbSession
from api.responses import bad_request, not_found, ok
from api.routers.milestones import resolve_milestone
from domain.protocol import SubscribeFailReason
from domain.targets.milestones import subscribe_to_milestone, unsubscribe_from_milestone
from repositories.targets import (
    get_recently_achieved_goals,
    get_recently_achieved_milestones,
    get_recently_interacted_goals,
    get_recently_interacted_milestones,
)

router = APIRouter(prefix="/api/v1/users/{user_id}/games/{game}/{playtype}/targets", tags=["targets"])

_SUBSCRIBE_FAILURES = {
    SubscribeFailReason.ALREADY_SUBSCRIBED: "You are already subscribed to this milestone.",
    SubscribeFailReason.ALREADY_ACHIEVED: "You have already achieved this milestone.",
}


@router.get("/recently-achieved")
def recently_achieved(user_id: int, config: GPT, session: DbSession) -> dict[str, Any]:
    goals, goal_subs = get_recently_achieved_goals(
        session, user_id=user_id, game=config.game, playtype=config.playtype
    )
    milestones, milestone_subs = get_recently_achieved_milestones(
        session, user_id=user_id, game=config.game, playtype=config.playtype
    )
    return ok(
        f"Returned {user_id}'s recently achieved targets.",
        _targets_body(goals, goal_subs, milestones, milestone_subs),
    )


@router.get("/recently-raised")
def recently_raised(user_id: int, config: GPT, session: DbSession) -> dict[str, Any]:
    """Targets whose progress moved recently, excluding achieved ones."""
    goals, goal_subs = get_recently_interacted_goals(
        session, user_id=user_id, game=config.game, playtype=config.playtype
    )
    milestones, milestone_subs = get_recently_interacted_milestones(
        session, user_id=user_id, game=config.game, playtype=config.playtype
    )
    return ok(
        f"Returned {user_id}'s recently raised targets.",
        _targets_body(goals, goal_subs, milestones, milestone_subs),
    )


@router.put("/milestones/{milestone_id}")
def subscribe(
    user_id: int,
    milestone_id: str,
    config: GPT,
    session: DbSession,
    cancel_if_achieved: Annotated[bool, Query(alias="cancelIfAchieved")] = True,
) -> dict[str, Any]:
    milestone = resolve_milestone(session, config.game, config.playtype, milestone_id)

    result = subscribe_to_milestone(session, user_id, milestone, cancel_if_achieved)
    if isinstance(result, SubscribeFailReason):
        raise bad_request(_SUBSCRIBE_FAILURES[result])

    session.commit()
    return ok(
        f"Subscribed to {milestone.name}.",
        {
            "milestoneSub": result.milestone_sub.as_dict(),
            "goals": [goal.as_dict() for goal in result.goals],
        },
    )


@router.delete("/milestones/{milestone_id}")
def unsubscribe(user_id: int, milestone_id: str, config: GPT, session: DbSession) -> dict[str, Any]:
    milestone = resolve_milestone(session, config.game, config.playtype, milestone_id)

    if not unsubscribe_from_milestone(session, user_id, milestone.milestone_id):
        raise not_found(f"You are not subscribed to {milestone.name}.")

    session.commit()
    return ok(f"Unsubscribed from {milestone.name}.", {})


def _targets_body(goals, goal_subs, milestones, milestone_subs) -> dict[str, Any]:
    return {
        "goals": [goal.as_dict() for goal in goals],
        "goalSubs": [sub.as_dict() for sub in goal_subs],
        "milestones": [milestone.as_dict() for milestone in milestones],
        "milestoneSubs": [sub.as_dict() for sub in milestone_subs],
    }


__all__ = ["router"]
