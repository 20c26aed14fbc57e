"""Tavus talking-head video backend."""

from typing import Any, Dict, Optional

import httpx
import structlog

from neuro_core.core.credentials import require_credential
from neuro_core.core.errors import (
    UpstreamServiceError,
    classify_http_error,
    classify_transport_error,
)
from neuro_core.video.base import ConversationSession, JobHandle, VideoBackend

logger = structlog.get_logger(__name__)

PROVIDER = "tavus"


class TavusVideoBackend(VideoBackend):
    """
    Tavus video API client.

    Submissions use ``submit_timeout``; status checks use the shorter
    ``status_timeout``. Jobs are keyed by persona, and by replica when one is
    configured.
    """

    BASE_URL = "https://tavusapi.com/v2"

    def __init__(
        self,
        api_key: str,
        persona_id: str,
        replica_id: Optional[str] = None,
        base_url: str = BASE_URL,
        submit_timeout: float = 60.0,
        status_timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.persona_id = persona_id
        self.replica_id = replica_id or None
        self.base_url = base_url
        self.submit_timeout = submit_timeout
        self.status_timeout = status_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.logger = logger.bind(provider=PROVIDER)

    @property
    def name(self) -> str:
        return PROVIDER

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client. Fails fast on an unusable key."""
        key = require_credential(self.api_key, PROVIDER, min_length=16)
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"x-api-key": key},
                timeout=httpx.Timeout(self.submit_timeout),
                transport=self._transport,
            )
        return self._client

    def _identity(self) -> Dict[str, str]:
        identity = {"persona_id": self.persona_id}
        if self.replica_id:
            identity["replica_id"] = self.replica_id
        return identity

    async def _request(
        self,
        method: str,
        path: str,
        timeout: float,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.request(method, path, timeout=timeout, **kwargs)
        except httpx.HTTPError as e:
            self.logger.warning("tavus_transport_error", path=path, error=str(e))
            raise classify_transport_error(e, PROVIDER) from e

        if response.status_code >= 400:
            self.logger.warning(
                "tavus_api_error",
                path=path,
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise classify_http_error(
                response.status_code,
                response.text,
                PROVIDER,
                retry_after=response.headers.get("Retry-After"),
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamServiceError(
                "Tavus returned a malformed response",
                status_code=response.status_code,
                provider=PROVIDER,
            ) from e

    def _handle(self, data: Dict[str, Any]) -> JobHandle:
        handle = JobHandle.from_response(data)
        if not handle.job_id:
            raise UpstreamServiceError("Tavus response carried no video id", provider=PROVIDER)
        self.logger.info(
            "tavus_job_status",
            job_id=handle.job_id,
            status=handle.status.value,
            vendor_status=handle.vendor_status,
        )
        return handle

    async def submit_script(self, script: str, video_name: Optional[str] = None) -> JobHandle:
        payload = {
            **self._identity(),
            "script": script,
            "video_name": video_name or "Meditation guidance",
        }
        data = await self._request("POST", "/videos", self.submit_timeout, json=payload)
        return self._handle(data)

    async def submit_audio_url(self, audio_url: str, video_name: Optional[str] = None) -> JobHandle:
        payload = {
            **self._identity(),
            "audio_url": audio_url,
            "video_name": video_name or "Meditation guidance",
        }
        data = await self._request("POST", "/videos", self.submit_timeout, json=payload)
        return self._handle(data)

    async def submit_audio_file(
        self,
        audio_data: bytes,
        filename: str = "speech.mp3",
        content_type: str = "audio/mpeg",
    ) -> JobHandle:
        data = await self._request(
            "POST",
            "/videos",
            self.submit_timeout,
            data=self._identity(),
            files={"audio": (filename, audio_data, content_type)},
        )
        return self._handle(data)

    async def get_status(self, job_id: str) -> JobHandle:
        data = await self._request("GET", f"/videos/{job_id}", self.status_timeout)
        handle = JobHandle.from_response(data)
        if not handle.job_id:
            handle.job_id = job_id
        return handle

    async def create_conversation(
        self,
        greeting: Optional[str] = None,
        context: Optional[str] = None,
        persona_id: Optional[str] = None,
    ) -> ConversationSession:
        payload: Dict[str, Any] = {"persona_id": persona_id or self.persona_id}
        if self.replica_id:
            payload["replica_id"] = self.replica_id
        if greeting is not None:
            payload["custom_greeting"] = greeting
        if context:
            payload["conversational_context"] = context

        data = await self._request("POST", "/conversations", self.submit_timeout, json=payload)
        conversation_id = data.get("conversation_id")
        if not conversation_id:
            raise UpstreamServiceError("Tavus response carried no conversation id", provider=PROVIDER)
        return ConversationSession(
            conversation_id=conversation_id,
            conversation_url=data.get("conversation_url"),
            status=data.get("status"),
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
