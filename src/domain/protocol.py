"""Shared protocols and enums for engine collaborators."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class WebhookEventType(str, Enum):
    """Outbound webhook event kinds."""

    CLASS_UPDATE = "class-update/v1"
    GOALS_ACHIEVED = "goals-achieved/v1"
    MILESTONE_ACHIEVED = "milestone-achieved/v1"
    STATUS = "status/v1"


class SubscribeFailReason(str, Enum):
    """Why a subscription request did not create a subscription."""

    ALREADY_SUBSCRIBED = "ALREADY_SUBSCRIBED"
    ALREADY_ACHIEVED = "ALREADY_ACHIEVED"


class UnsubscribeFailReason(str, Enum):
    """Why an unsubscribe request left the subscription in place."""

    PART_OF_SUBSCRIBED_MILESTONE = "PART_OF_SUBSCRIBED_MILESTONE"


@dataclass(frozen=True)
class WebhookEvent:
    type: WebhookEventType
    content: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class WebhookEmitter(Protocol):
    """Fire-and-forget delivery of webhook events."""

    def emit(self, event: WebhookEvent) -> None: ...


@runtime_checkable
class NotificationSender(Protocol):
    """Delivery of one notification to many users."""

    def bulk_send(self, message: str, user_ids: Sequence[int], payload: Mapping[str, Any]) -> None: ...


class LoggingWebhookEmitter:
    """Default emitter: records events in the log only."""

    def emit(self, event: WebhookEvent) -> None:
        logger.info("webhook event=%s content=%s", event.type.value, event.content)


class LoggingNotificationSender:
    """Default sender: records notifications in the log only."""

    def bulk_send(self, message: str, user_ids: Sequence[int], payload: Mapping[str, Any]) -> None:
        logger.info("notification users=%s message=%r payload=%s", list(user_ids), message, dict(payload))


__all__ = [
    "LoggingNotificationSender",
    "LoggingWebhookEmitter",
    "NotificationSender",
    "SubscribeFailReason",
    "UnsubscribeFailReason",
    "WebhookEmitter",
    "WebhookEvent",
    "WebhookEventType",
]
