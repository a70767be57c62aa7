"""Score import and import history."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import DbSession, Webhooks
from api.responses import bad_request, ok
from domain.scoring.converters import registry as converter_registry
from domain.scoring.converters.base import ImportParseError, from_unix_ms
from domain.scoring.importer import import_scores
from repositories.imports import get_recent_imports

router = APIRouter(prefix="/api/v1/users/{user_id}/imports", tags=["imports"])


class ImportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    import_type: str = Field(alias="importType")
    payload: Any
    context: dict[str, Any] = Field(default_factory=dict)
    user_intent: bool = Field(default=False, alias="userIntent")


@router.post("")
def post_import(user_id: int, request: ImportRequest, session: DbSession, webhooks: Webhooks) -> dict[str, Any]:
    """Import a payload. Entries that fail are listed in the record's errors, the rest are kept."""
    try:
        converter_registry.get(request.import_type)
    except KeyError as exc:
        raise bad_request(f"Unknown import type {request.import_type}.") from exc

    try:
        record = import_scores(
            session,
            user_id=user_id,
            import_type=request.import_type,
            raw_input=request.payload,
            context=request.context,
            user_intent=request.user_intent,
            webhooks=webhooks,
        )
    except ImportParseError as exc:
        raise bad_request(str(exc)) from exc

    session.commit()
    return ok(
        f"Imported {len(record.score_ids)} scores with {len(record.errors)} errors.",
        record.as_dict(),
    )


@router.get("")
def list_imports(
    user_id: int,
    session: DbSession,
    time_finished: Annotated[str | None, Query(alias="timeFinished")] = None,
) -> dict[str, Any]:
    """Up to 500 of the user's most recent imports, finished at or before `timeFinished` (unix ms)."""
    finished_before = None
    if time_finished:
        try:
            finished_before = from_unix_ms(float(time_finished))
        except (ValueError, OverflowError, OSError) as exc:
            raise bad_request("Couldn't read timeFinished as unix milliseconds.") from exc

    imports = get_recent_imports(session, user_id, finished_before=finished_before)
    return ok(f"Found {len(imports)} imports.", [record.as_dict() for record in imports])


@router.get("/with-user-intent")
def list_imports_with_user_intent(user_id: int, session: DbSession) -> dict[str, Any]:
    imports = get_recent_imports(session, user_id, user_intent=True, limit=None)
    return ok(
        f"Found {len(imports)} imports that were made with user-intent.",
        [record.as_dict() for record in imports],
    )


__all__ = ["ImportRequest", "router"]
