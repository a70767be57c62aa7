"""FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from api.responses import ApiError, failure
from api.routers import imports, milestones, targets
from domain.errors import CorruptStateError
from domain.protocol import (
    LoggingNotificationSender,
    LoggingWebhookEmitter,
    NotificationSender,
    WebhookEmitter,
)

logger = logging.getLogger(__name__)


def create_app(
    session_factory: sessionmaker[Session],
    webhooks: WebhookEmitter | None = None,
    notifications: NotificationSender | None = None,
) -> FastAPI:
    app = FastAPI(title="Rhythm Score Tracker")
    app.state.session_factory = session_factory
    app.state.webhooks = webhooks or LoggingWebhookEmitter()
    app.state.notifications = notifications or LoggingNotificationSender()

    app.include_router(imports.router)
    app.include_router(milestones.router)
    app.include_router(targets.router)

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=failure(exc.description))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=failure(f"Invalid request: {details}"))

    @app.exception_handler(CorruptStateError)
    async def handle_corrupt_state(request: Request, exc: CorruptStateError) -> JSONResponse:
        logger.error("Corrupt state while handling %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=failure(f"An internal error has occurred: {exc}"),
        )

    return app


__all__ = ["create_app"]
