"""Atomic sequence counters."""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm import Session

from domain.errors import CorruptStateError
from models import Counter


def get_next_counter_value(session: Session, name: str) -> int:
    """Increment a counter in one statement and return the value it held before."""
    new_value = session.execute(
        update(Counter)
        .where(Counter.name == name)
        .values(value=Counter.value + 1)
        .returning(Counter.value)
    ).scalar_one_or_none()

    if new_value is None:
        raise CorruptStateError(f"Could not find counter '{name}'.")
    return new_value - 1


__all__ = ["get_next_counter_value"]
