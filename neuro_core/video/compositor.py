"""
Video Compositor

Submits talking-head video jobs in one of two modes:

- script-driven: the backend synthesizes speech and video from text
- audio-driven: hosted audio URL, or raw bytes as a multipart upload

Every submission returns a JobHandle, even when the backend reports the video
as already complete. Errors are recorded on the session record and re-raised.
"""

from typing import Any, Dict, Optional, Union

import structlog

from neuro_core.core.errors import ValidationError
from neuro_core.core.logging import preview
from neuro_core.storage.blobs import BlobStore
from neuro_core.storage.journal import SessionJournal
from neuro_core.storage.records import ArtifactKind, SessionRecord
from neuro_core.video.base import JobHandle, VideoBackend
from neuro_core.voice.base import AudioResult

logger = structlog.get_logger(__name__)

DEFAULT_MAX_SCRIPT_CHARS = 500

AudioRef = Union[AudioResult, bytes]


def truncate_script(script: str, limit: int = DEFAULT_MAX_SCRIPT_CHARS) -> str:
    return script[:limit]


class VideoCompositor:
    """Submits video jobs and tracks them as session records."""

    def __init__(
        self,
        backend: VideoBackend,
        journal: SessionJournal,
        blob_store: Optional[BlobStore] = None,
        max_script_chars: int = DEFAULT_MAX_SCRIPT_CHARS,
    ):
        self.backend = backend
        self.journal = journal
        self.blob_store = blob_store
        self.max_script_chars = max_script_chars
        self.logger = logger.bind(component="video_compositor", backend=backend.name)

    async def compose_from_text(self, script: str, subject_name: Optional[str] = None) -> JobHandle:
        submitted = truncate_script(script, self.max_script_chars)
        truncated = len(script) > self.max_script_chars
        record = await self.journal.begin(
            ArtifactKind.TALKING_HEAD_VIDEO,
            submitted,
            subject_name=subject_name,
            metadata={
                "mode": "script",
                "backend": self.backend.name,
                "text_truncated": truncated,
                "original_text_length": len(script),
            },
        )
        if truncated:
            self.logger.info(
                "script_truncated",
                original_length=len(script),
                limit=self.max_script_chars,
            )

        return await self._submit(record, lambda: self.backend.submit_script(submitted))

    async def compose_from_audio(
        self,
        audio: AudioRef,
        subject_name: Optional[str] = None,
        source_text: str = "",
    ) -> JobHandle:
        if isinstance(audio, AudioResult):
            audio_data = audio.audio_data
            hosted_url = audio.url if audio.url and not audio.is_ephemeral else None
            content_type = audio.content_type
            speech_record_id: Optional[str] = audio.record_id
        else:
            audio_data = audio
            hosted_url = None
            content_type = "audio/mpeg"
            speech_record_id = None

        metadata: Dict[str, Any] = {
            "backend": self.backend.name,
            "speech_record_id": speech_record_id,
            "original_text_length": len(source_text),
        }
        record = await self.journal.begin(
            ArtifactKind.TALKING_HEAD_VIDEO,
            source_text,
            subject_name=subject_name,
            metadata=metadata,
        )

        if hosted_url is None and audio_data and self.blob_store is not None and self.blob_store.is_public:
            try:
                blob = await self.blob_store.upload(
                    audio_data, content_type, filename=f"video-audio-{record.id}.mp3"
                )
                hosted_url = blob.public_url
            except Exception as e:
                self.logger.warning("audio_upload_failed", error=str(e), error_type=type(e).__name__)

        if hosted_url:
            await self.journal.annotate(record, {"mode": "audio_url", "audio_url": hosted_url})
            return await self._submit(record, lambda: self.backend.submit_audio_url(hosted_url))

        if audio_data:
            await self.journal.annotate(record, {"mode": "audio_upload", "audio_size_bytes": len(audio_data)})
            return await self._submit(
                record,
                lambda: self.backend.submit_audio_file(audio_data, "speech.mp3", content_type),
            )

        error = ValidationError(
            "Audio reference is neither a hosted URL nor raw bytes",
            provider=self.backend.name,
        )
        await self.journal.fail(record, error.message, metadata={"error_type": "ValidationError"})
        raise error

    async def _submit(self, record: SessionRecord, submit) -> JobHandle:
        try:
            handle = await submit()
        except Exception as e:
            self.logger.warning(
                "video_submission_failed",
                record_id=record.id,
                error=str(e),
                error_type=type(e).__name__,
                text=preview(record.source_text),
            )
            await self.journal.fail(record, str(e), metadata={"error_type": type(e).__name__})
            raise

        handle.record_id = record.id
        await self.journal.attach_job(record, handle.job_id)
        self.logger.info(
            "video_submitted",
            record_id=record.id,
            job_id=handle.job_id,
            status=handle.status.value,
        )
        return handle
