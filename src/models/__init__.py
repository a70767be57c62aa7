"""ORM models."""

from models.base import Base
from models.catalog import Chart, Song
from models.counter import Counter
from models.game_stats import ClassAchievement, UserGameClass, UserGameStats
from models.imports import ImportRecord, PlaySession
from models.score import Score
from models.targets import Goal, GoalSubscription, Milestone, MilestoneSet, MilestoneSubscription

__all__ = [
    "Base",
    "Chart",
    "ClassAchievement",
    "Counter",
    "Goal",
    "GoalSubscription",
    "ImportRecord",
    "Milestone",
    "MilestoneSet",
    "MilestoneSubscription",
    "PlaySession",
    "Score",
    "Song",
    "UserGameClass",
    "UserGameStats",
]
