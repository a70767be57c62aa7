"""Milestones of one GPT."""

from __future__ import annotations

from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Query
from sqlalchemy.orm import Session

from api.dependencies import GPT, DbSession
from api.responses import bad_request, not_found, ok
from domain.targets.milestones import MilestoneProgress, evaluate_milestone_progress, get_goals_in_milestone
from models import Milestone, MilestoneSubscription
from repositories.game_stats import get_stats
from repositories.targets import (
    MILESTONE_REPOSITORY,
    MILESTONE_SUB_REPOSITORY,
    get_most_subscribed_milestones,
    get_parent_milestone_sets,
    search_milestones,
)

router = APIRouter(prefix="/api/v1/games/{game}/{playtype}/targets/milestones", tags=["milestones"])


def resolve_milestone(session: Session, game: str, playtype: str, milestone_id: str) -> Milestone:
    milestone = MILESTONE_REPOSITORY.find_one(
        session,
        Milestone.milestone_id == milestone_id,
        Milestone.game == game,
        Milestone.playtype == playtype,
    )
    if milestone is None:
        raise not_found(f"A milestone with ID {milestone_id} doesn't exist.")
    return milestone


def progress_payload(progress: MilestoneProgress) -> dict[str, Any]:
    return {
        "goals": [goal.as_dict() for goal in progress.goals],
        "goalResults": [{"goalID": entry.goal_id, **asdict(entry.result)} for entry in progress.goal_results],
        "achieved": progress.achieved,
        "progress": progress.progress,
        "outOf": progress.out_of,
    }


@router.get("")
def list_milestones(
    config: GPT,
    session: DbSession,
    search: Annotated[str | None, Query()] = None,
) -> dict[str, Any]:
    if search is None:
        raise bad_request("Invalid value for search.")

    milestones = search_milestones(session, game=config.game, playtype=config.playtype, search=search)
    return ok(f"Returned {len(milestones)} milestones.", [milestone.as_dict() for milestone in milestones])


@router.get("/popular")
def popular(config: GPT, session: DbSession) -> dict[str, Any]:
    ranked = get_most_subscribed_milestones(session, game=config.game, playtype=config.playtype)
    return ok(
        f"Returned {len(ranked)} popular milestones.",
        [{**entry.target.as_dict(), "__subscriptions": entry.subscriptions} for entry in ranked],
    )


@router.get("/{milestone_id}")
def detail(milestone_id: str, config: GPT, session: DbSession) -> dict[str, Any]:
    """The milestone, its goals, its subscribers and the sets it belongs to."""
    milestone = resolve_milestone(session, config.game, config.playtype, milestone_id)
    milestone_subs = MILESTONE_SUB_REPOSITORY.find(
        session,
        MilestoneSubscription.milestone_id == milestone.milestone_id,
        order_by=(MilestoneSubscription.user_id,),
    )
    goals = get_goals_in_milestone(session, milestone)
    parent_sets = get_parent_milestone_sets(session, milestone)

    return ok(
        f"Retrieved information about {milestone.name}.",
        {
            "milestone": milestone.as_dict(),
            "milestoneSubs": [sub.as_dict() for sub in milestone_subs],
            "goals": [goal.as_dict() for goal in goals],
            "parentMilestoneSets": [milestone_set.as_dict() for milestone_set in parent_sets],
        },
    )


@router.get("/{milestone_id}/evaluate-for")
def evaluate_for(
    milestone_id: str,
    config: GPT,
    session: DbSession,
    user_id: Annotated[int, Query(alias="userID")],
) -> dict[str, Any]:
    """Evaluate a milestone for a user, subscribed or not."""
    milestone = resolve_milestone(session, config.game, config.playtype, milestone_id)

    if get_stats(session, user_id, config.game, config.playtype) is None:
        raise bad_request(f"The user {user_id} hasn't played {config.name}.")

    progress = evaluate_milestone_progress(session, user_id, milestone)
    return ok(f"Evaluated {milestone.name} for {user_id}.", progress_payload(progress))


__all__ = ["progress_payload", "resolve_milestone", "router"]
