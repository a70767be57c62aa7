"""Deterministic score identifiers."""

from __future__ import annotations

import hashlib

from domain.common import DryScore
from domain.gpt.config import GPTConfig


def create_score_id(config: GPTConfig, user_id: int, chart_id: str, dry_score: DryScore) -> str:
    """`R` + sha256 over user, chart and mandatory metrics in config order.

    Time achieved is left out so one play imported from two services collides.
    """
    parts = [str(user_id), chart_id]
    parts.extend(str(dry_score.score_data[name]) for name in config.mandatory_metrics)
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return f"R{digest}"


__all__ = ["create_score_id"]
