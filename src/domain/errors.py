"""Errors raised when stored data breaks an invariant."""

from __future__ import annotations


class CorruptStateError(RuntimeError):
    """Stored documents disagree with each other (missing goal, dangling subscription...).

    Never repaired automatically; callers surface it as an internal error.
    """


__all__ = ["CorruptStateError"]
