"""Generic persistence scaffold shared by the document repositories."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, delete, func, insert, select
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """Reusable lookups keyed on one identifier column."""

    def __init__(self, *, model: type[ModelT], id_column: str) -> None:
        self.model = model
        self.id_column = id_column

    @property
    def _id(self) -> Any:
        return getattr(self.model, self.id_column)

    def get(self, session: Session, identifier: Any) -> ModelT | None:
        return session.execute(select(self.model).where(self._id == identifier)).scalar_one_or_none()

    def get_many(self, session: Session, identifiers: Iterable[Any]) -> list[ModelT]:
        """Fetch many rows with one IN query. Missing identifiers are silently absent."""
        identifiers = list(identifiers)
        if not identifiers:
            return []
        return list(session.scalars(select(self.model).where(self._id.in_(identifiers))))

    def find(
        self,
        session: Session,
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[ModelT]:
        statement = select(self.model).where(*criteria).order_by(*order_by)
        if limit is not None:
            statement = statement.limit(limit)
        return list(session.scalars(statement))

    def find_one(self, session: Session, *criteria: ColumnElement[bool]) -> ModelT | None:
        return session.scalars(select(self.model).where(*criteria).limit(1)).first()

    def count(self, session: Session, *criteria: ColumnElement[bool]) -> int:
        result = session.scalar(select(func.count()).select_from(self.model).where(*criteria))
        return int(result or 0)

    def insert_many(self, session: Session, rows: Sequence[dict[str, Any]]) -> None:
        """Bulk insert plain row dicts."""
        if not rows:
            return
        session.execute(insert(self.model), list(rows))

    def delete_where(self, session: Session, *criteria: ColumnElement[bool]) -> int:
        result = session.execute(delete(self.model).where(*criteria))
        return int(result.rowcount or 0)


__all__ = ["BaseRepository"]
