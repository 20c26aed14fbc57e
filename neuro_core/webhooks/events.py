"""
Analytics event sink.

Posts structured session events to a webhook. Delivery is a single attempt with
a short timeout; failures are logged and reported in the DeliveryResult, never
raised.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import httpx
import structlog

from neuro_core.core.tasks import TaskSupervisor

logger = structlog.get_logger(__name__)

EVENT_SOURCE = "meditation_video_interface"


class EventType(str, Enum):
    """Session analytics events."""
    SESSION_STARTED = "meditation_session_started"
    SESSION_ENDED = "meditation_session_ended"
    CHAT_MESSAGE = "chat_message"
    VIDEO_REQUESTED = "video_session_requested"
    VIDEO_COMPLETED = "video_completed"
    VIDEO_FAILED = "video_failed"
    DEMO_VIDEO_PLAYED = "demo_video_played"


@dataclass
class AnalyticsEvent:
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    subject_name: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self, app_version: str) -> Dict[str, Any]:
        payload = {
            **self.data,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "source": EVENT_SOURCE,
            "app_version": app_version,
        }
        if self.subject_name:
            payload["user_name"] = self.subject_name
        return payload


@dataclass
class DeliveryResult:
    """Result of a webhook delivery attempt."""
    success: bool
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    response_time_ms: Optional[int] = None


class EventSink:
    """Fire-and-forget webhook delivery."""

    def __init__(
        self,
        url: Optional[str],
        supervisor: TaskSupervisor,
        timeout: float = 5.0,
        app_version: str = "1.0.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.supervisor = supervisor
        self.timeout = timeout
        self.app_version = app_version
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def emit(
        self,
        event_type: EventType,
        subject_name: Optional[str] = None,
        **data: Any,
    ) -> None:
        """Schedule delivery in the background. No-op when no URL is configured."""
        if not self.enabled:
            return
        event = AnalyticsEvent(event_type=event_type, data=data, subject_name=subject_name)
        self.supervisor.spawn(self.send(event), name=f"webhook:{event_type.value}")

    async def send(self, event: AnalyticsEvent) -> DeliveryResult:
        if not self.enabled:
            return DeliveryResult(success=False, error_message="No webhook URL configured")

        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )

        start_time = time.time()
        try:
            response = await self._http_client.post(
                self.url,
                json=event.to_payload(self.app_version),
            )
        except httpx.TimeoutException:
            logger.warning("webhook_timeout", event_type=event.event_type.value, timeout=self.timeout)
            return DeliveryResult(success=False, error_message="Request timeout")
        except httpx.HTTPError as e:
            logger.warning("webhook_unavailable", event_type=event.event_type.value, error=str(e))
            return DeliveryResult(success=False, error_message=f"Connection error: {e}")

        response_time_ms = int((time.time() - start_time) * 1000)
        if 200 <= response.status_code < 300:
            logger.debug("webhook_delivered", event_type=event.event_type.value)
            return DeliveryResult(
                success=True,
                status_code=response.status_code,
                response_time_ms=response_time_ms,
            )

        logger.warning(
            "webhook_rejected",
            event_type=event.event_type.value,
            status_code=response.status_code,
        )
        return DeliveryResult(
            success=False,
            status_code=response.status_code,
            error_message=f"HTTP {response.status_code}",
            response_time_ms=response_time_ms,
        )

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
