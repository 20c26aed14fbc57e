"""
Speech Synthesizer

Turns reply text into audio through the remote speech backend. Two shapes:

- bytes form, for re-upload to the video backend
- URL form, which publishes the bytes to the blob store and falls back to an
  in-process ephemeral reference when the store is missing or failing

Primary-path failures are raised to the caller, which decides whether to fall
back to ``speak_locally``.
"""

import asyncio
from typing import Any, Dict, List, Optional

import structlog

from neuro_core.core.credentials import require_credential
from neuro_core.core.errors import ConfigurationError
from neuro_core.core.logging import preview
from neuro_core.core.tasks import TaskSupervisor
from neuro_core.storage.blobs import BlobStore, EphemeralBlobStore, StoredBlob
from neuro_core.storage.journal import SessionJournal
from neuro_core.storage.records import ArtifactKind, SessionRecord
from neuro_core.voice.base import (
    FALLBACK_CHARS_PER_SECOND,
    PRIMARY_CHARS_PER_SECOND,
    AudioResult,
    LocalSpeechEngine,
    SpeechBackend,
    SpeechProvider,
    TTSConfig,
    Voice,
    estimate_duration,
)

logger = structlog.get_logger(__name__)


class SpeechSynthesizer:
    """Remote speech synthesis with blob publishing and an on-device fallback."""

    def __init__(
        self,
        backend: Optional[SpeechBackend],
        journal: SessionJournal,
        config: Optional[TTSConfig] = None,
        api_key: Optional[str] = None,
        blob_store: Optional[BlobStore] = None,
        local_engine: Optional[LocalSpeechEngine] = None,
        supervisor: Optional[TaskSupervisor] = None,
    ):
        self.backend = backend
        self.journal = journal
        self.config = config or TTSConfig()
        self.api_key = api_key
        self.blob_store = blob_store
        self.local_engine = local_engine
        self.supervisor = supervisor or TaskSupervisor()
        # URL-form audio is played once; only the latest clip is kept in memory
        self.ephemeral_store = EphemeralBlobStore(max_entries=1)
        self.logger = logger.bind(component="speech_synthesizer")

    def _record_metadata(self, as_url: bool) -> Dict[str, Any]:
        return {
            "provider": self.backend.provider.value if self.backend else None,
            "voice_id": self.config.voice_id,
            "model_id": self.config.model,
            "voice_settings": self.config.voice_settings.to_dict(),
            "output": "url" if as_url else "bytes",
            "duration_is_estimate": True,
        }

    async def synthesize(
        self,
        text: str,
        subject_name: Optional[str] = None,
        *,
        as_url: bool = False,
    ) -> AudioResult:
        """Synthesize ``text``. Raises CompanionError subclasses on failure."""
        record = await self.journal.begin(
            ArtifactKind.SPEECH,
            text,
            subject_name=subject_name,
            metadata=self._record_metadata(as_url),
        )

        try:
            if self.backend is None:
                raise ConfigurationError("No speech backend configured")
            require_credential(self.api_key, self.backend.provider.value)
            synthesis = await self.backend.synthesize(text, self.config)
        except Exception as e:
            self.logger.warning(
                "speech_synthesis_failed",
                error=str(e),
                error_type=type(e).__name__,
                text=preview(text),
            )
            await self.journal.fail(record, str(e), metadata={"error_type": type(e).__name__})
            raise

        duration = estimate_duration(text, PRIMARY_CHARS_PER_SECOND)
        result = AudioResult(
            record_id=record.id,
            provider=synthesis.provider,
            content_type=synthesis.content_type,
            estimated_duration=duration,
            size_bytes=synthesis.size_bytes,
        )

        if not as_url:
            result.audio_data = synthesis.audio_data
            await self.journal.complete(
                record,
                duration_seconds=duration,
                size_bytes=synthesis.size_bytes,
                metadata={"latency_ms": round(synthesis.latency_ms, 1)},
            )
            return result

        blob = await self._publish(record, synthesis.audio_data, synthesis.content_type)
        result.url = blob.public_url
        result.is_ephemeral = not self._is_public(blob)
        await self.journal.complete(
            record,
            artifact_url=blob.public_url,
            duration_seconds=duration,
            size_bytes=synthesis.size_bytes,
            metadata={
                "latency_ms": round(synthesis.latency_ms, 1),
                "storage_path": blob.path,
                "storage": "ephemeral" if result.is_ephemeral else "blob_store",
            },
        )
        return result

    async def synthesize_bytes(self, text: str, subject_name: Optional[str] = None) -> AudioResult:
        return await self.synthesize(text, subject_name, as_url=False)

    async def synthesize_url(self, text: str, subject_name: Optional[str] = None) -> AudioResult:
        return await self.synthesize(text, subject_name, as_url=True)

    def _is_public(self, blob: StoredBlob) -> bool:
        return self.blob_store is not None and self.blob_store.is_public and not blob.path.startswith("blob:")

    async def _publish(self, record: SessionRecord, data: bytes, content_type: str) -> StoredBlob:
        filename = f"elevenlabs-{record.id}.mp3"
        if self.blob_store is not None:
            try:
                return await self.blob_store.upload(data, content_type, filename=filename)
            except Exception as e:
                self.logger.warning(
                    "blob_upload_failed",
                    record_id=record.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return await self.ephemeral_store.upload(data, content_type, filename=filename)

    # -------------------------------------------------------------------------
    # On-device fallback
    # -------------------------------------------------------------------------

    def speak_locally(self, text: str, subject_name: Optional[str] = None) -> Optional[asyncio.Task]:
        """
        Fire-and-forget on-device speech.

        Returns the background task so a playback slot can track it, or None
        when no local engine is usable.
        """
        if self.local_engine is None or not self.local_engine.available:
            self.logger.warning("local_speech_unavailable", text=preview(text))
            return None
        return self.supervisor.spawn(self._speak_locally(text, subject_name), name="local_speech")

    async def _speak_locally(self, text: str, subject_name: Optional[str]) -> None:
        record = await self.journal.begin(
            ArtifactKind.SPEECH,
            text,
            subject_name=subject_name,
            metadata={
                "provider": SpeechProvider.LOCAL.value,
                "engine": type(self.local_engine).__name__,
                "output": "device",
                "duration_is_estimate": True,
            },
        )
        try:
            await self.local_engine.speak(text)
        except Exception as e:
            self.logger.warning("local_speech_failed", error=str(e), error_type=type(e).__name__)
            await self.journal.fail(record, str(e))
            return
        await self.journal.complete(
            record,
            duration_seconds=estimate_duration(text, FALLBACK_CHARS_PER_SECOND),
        )

    def stop_local(self) -> None:
        if self.local_engine is not None:
            self.local_engine.stop()

    async def list_voices(self) -> List[Voice]:
        if self.backend is None:
            raise ConfigurationError("No speech backend configured")
        require_credential(self.api_key, self.backend.provider.value)
        return await self.backend.list_voices()
