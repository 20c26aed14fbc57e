"""ElevenLabs text-to-speech backend."""

import time
from typing import List, Optional

import httpx
import structlog

from neuro_core.core.errors import (
    UpstreamServiceError,
    classify_http_error,
    classify_transport_error,
)
from neuro_core.voice.base import (
    SpeechBackend,
    SpeechProvider,
    SynthesisResult,
    TTSConfig,
    Voice,
)

logger = structlog.get_logger(__name__)

PROVIDER = "elevenlabs"


class ElevenLabsSpeechBackend(SpeechBackend):
    """
    ElevenLabs Text-to-Speech backend.

    Returns MP3 bytes. Every request is bounded by ``timeout``; a firing
    timeout surfaces as RequestTimeoutError.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.logger = logger.bind(provider=PROVIDER)

    @property
    def provider(self) -> SpeechProvider:
        return SpeechProvider.ELEVENLABS

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "xi-api-key": self.api_key,
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def synthesize(self, text: str, config: TTSConfig) -> SynthesisResult:
        """Synthesize text to speech using ElevenLabs."""
        start_time = time.monotonic()
        body = {
            "text": text,
            "model_id": config.model,
            "voice_settings": config.voice_settings.to_dict(),
        }

        try:
            client = await self._get_client()
            response = await client.post(
                f"/text-to-speech/{config.voice_id}",
                json=body,
                headers={"Accept": "audio/mpeg"},
            )
        except httpx.HTTPError as e:
            raise classify_transport_error(e, PROVIDER) from e

        if response.status_code != 200:
            raise classify_http_error(
                response.status_code,
                response.text,
                PROVIDER,
                retry_after=response.headers.get("Retry-After"),
            )

        audio_data = response.content
        if not audio_data:
            raise UpstreamServiceError("ElevenLabs returned empty audio", provider=PROVIDER)

        latency_ms = (time.monotonic() - start_time) * 1000
        self.logger.info(
            "speech_synthesized",
            voice_id=config.voice_id,
            characters=len(text),
            size_bytes=len(audio_data),
            latency_ms=round(latency_ms, 1),
        )

        return SynthesisResult(
            audio_data=audio_data,
            content_type=response.headers.get("Content-Type", "audio/mpeg"),
            provider=SpeechProvider.ELEVENLABS,
            voice_id=config.voice_id,
            model=config.model,
            latency_ms=latency_ms,
        )

    async def list_voices(self) -> List[Voice]:
        """Get available voices."""
        try:
            client = await self._get_client()
            response = await client.get("/voices")
        except httpx.HTTPError as e:
            raise classify_transport_error(e, PROVIDER) from e

        if response.status_code != 200:
            raise classify_http_error(response.status_code, response.text, PROVIDER)

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamServiceError("ElevenLabs returned malformed voice list", provider=PROVIDER) from e

        return [
            Voice(
                voice_id=v["voice_id"],
                name=v.get("name", ""),
                category=v.get("category"),
                labels=v.get("labels") or {},
                preview_url=v.get("preview_url"),
            )
            for v in payload.get("voices", [])
            if "voice_id" in v
        ]

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

