"""Declarative base and shared column types."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, inspect
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    def as_dict(self) -> dict[str, Any]:
        """Column values keyed by attribute name."""
        return {attr.key: getattr(self, attr.key) for attr in inspect(self).mapper.column_attrs}
