"""Request-scoped collaborators."""

from __future__ import annotations

from collections.abc import Generator
from typing import Annotated, Any

from fastapi import Depends, Path, Request
from sqlalchemy.orm import Session

from api.responses import not_found
from domain.gpt import registry as gpt_registry
from domain.gpt.config import GPTConfig
from domain.protocol import NotificationSender, WebhookEmitter


def get_db_session(request: Request) -> Generator[Session, Any, None]:
    """One session per request. Handlers commit what they write."""
    with request.app.state.session_factory() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


def get_webhooks(request: Request) -> WebhookEmitter:
    return request.app.state.webhooks


def get_notifications(request: Request) -> NotificationSender:
    return request.app.state.notifications


def get_gpt_config(game: Annotated[str, Path()], playtype: Annotated[str, Path()]) -> GPTConfig:
    try:
        return gpt_registry.get(game, playtype)
    except KeyError as exc:
        raise not_found(f"Unsupported game/playtype {game} {playtype}.") from exc


DbSession = Annotated[Session, Depends(get_db_session)]
Webhooks = Annotated[WebhookEmitter, Depends(get_webhooks)]
Notifications = Annotated[NotificationSender, Depends(get_notifications)]
GPT = Annotated[GPTConfig, Depends(get_gpt_config)]


__all__ = [
    "DbSession",
    "GPT",
    "Notifications",
    "Webhooks",
    "get_db_session",
    "get_gpt_config",
    "get_notifications",
    "get_webhooks",
]
