"""Score tracking domain modules."""

from domain.common import ConvertedScore, DryScore, ScoreDocument
from domain.errors import CorruptStateError
from domain.protocol import SubscribeFailReason, UnsubscribeFailReason, WebhookEvent, WebhookEventType

__all__ = [
    "ConvertedScore",
    "CorruptStateError",
    "DryScore",
    "ScoreDocument",
    "SubscribeFailReason",
    "UnsubscribeFailReason",
    "WebhookEvent",
    "WebhookEventType",
]
