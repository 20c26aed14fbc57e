"""Analytics webhook events."""

from neuro_core.webhooks.events import (
    EVENT_SOURCE,
    AnalyticsEvent,
    DeliveryResult,
    EventSink,
    EventType,
)

__all__ = [
    "EVENT_SOURCE",
    "EventType",
    "AnalyticsEvent",
    "DeliveryResult",
    "EventSink",
]
