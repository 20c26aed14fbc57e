"""
Video Base Types and Interfaces

Job handles, terminal results, and the talking-head video backend interface.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from neuro_core.core.errors import ConfigurationError


# =============================================================================
# Enums
# =============================================================================

class VideoJobStatus(str, Enum):
    """Normalized video job status."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATUSES = frozenset({
    VideoJobStatus.COMPLETED,
    VideoJobStatus.FAILED,
    VideoJobStatus.TIMED_OUT,
})

_COMPLETED_VENDOR_STATUSES = {"ready", "completed", "complete", "done"}
_FAILED_VENDOR_STATUSES = {"failed", "error", "errored", "deleted", "cancelled"}


def normalize_vendor_status(status: Optional[str]) -> VideoJobStatus:
    """Map a vendor status string onto VideoJobStatus. Unknown means processing."""
    value = (status or "").strip().lower()
    if value in _COMPLETED_VENDOR_STATUSES:
        return VideoJobStatus.COMPLETED
    if value in _FAILED_VENDOR_STATUSES:
        return VideoJobStatus.FAILED
    return VideoJobStatus.PROCESSING


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class JobHandle:
    """
    Reference to a vendor video job, as returned by submission or a status check.

    A completed handle without a result URL is not usable; ``is_terminal``
    treats it as still processing.
    """
    job_id: str
    status: VideoJobStatus = VideoJobStatus.PROCESSING
    result_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    size_bytes: Optional[int] = None
    failure_reason: Optional[str] = None
    record_id: Optional[str] = None
    vendor_status: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == VideoJobStatus.COMPLETED and bool(self.result_url)

    @property
    def is_failed(self) -> bool:
        return self.status == VideoJobStatus.FAILED

    @property
    def is_terminal(self) -> bool:
        return self.is_completed or self.is_failed

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "JobHandle":
        vendor_status = data.get("status")
        return cls(
            job_id=str(data.get("video_id") or data.get("id") or ""),
            status=normalize_vendor_status(vendor_status),
            result_url=data.get("video_url") or data.get("download_url") or data.get("hosted_url"),
            duration_seconds=data.get("duration_seconds"),
            size_bytes=data.get("file_size_bytes"),
            failure_reason=data.get("status_details") or data.get("error"),
            vendor_status=vendor_status,
        )


@dataclass
class PipelineJob:
    """In-flight state for one video generation, mutated only by the poller."""
    handle: JobHandle
    status: VideoJobStatus = VideoJobStatus.PROCESSING
    result_url: Optional[str] = None
    failure_reason: Optional[str] = None
    attempts: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def job_id(self) -> str:
        return self.handle.job_id

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def record_attempt(self) -> int:
        self.attempts += 1
        return self.attempts

    def apply(self, snapshot: JobHandle) -> None:
        if snapshot.is_completed:
            self.status = VideoJobStatus.COMPLETED
            self.result_url = snapshot.result_url
        elif snapshot.is_failed:
            self.status = VideoJobStatus.FAILED
            self.failure_reason = snapshot.failure_reason or "Video generation failed"


@dataclass
class TerminalResult:
    """Successful outcome of a video job."""
    job_id: str
    url: str
    status: VideoJobStatus = VideoJobStatus.COMPLETED
    duration_seconds: Optional[float] = None
    size_bytes: Optional[int] = None
    attempts: int = 0
    record_id: Optional[str] = None


@dataclass
class ConversationSession:
    """A live conversational video session."""
    conversation_id: str
    conversation_url: Optional[str] = None
    status: Optional[str] = None


# =============================================================================
# Interface
# =============================================================================

class VideoBackend(ABC):
    """Talking-head video backend."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def submit_script(self, script: str, video_name: Optional[str] = None) -> JobHandle:
        """Backend performs its own speech and video synthesis."""
        pass

    @abstractmethod
    async def submit_audio_url(self, audio_url: str, video_name: Optional[str] = None) -> JobHandle:
        pass

    @abstractmethod
    async def submit_audio_file(
        self,
        audio_data: bytes,
        filename: str = "speech.mp3",
        content_type: str = "audio/mpeg",
    ) -> JobHandle:
        pass

    @abstractmethod
    async def get_status(self, job_id: str) -> JobHandle:
        pass

    async def create_conversation(
        self,
        greeting: Optional[str] = None,
        context: Optional[str] = None,
        persona_id: Optional[str] = None,
    ) -> ConversationSession:
        raise ConfigurationError(f"{self.name} does not support conversations", provider=self.name)

    async def close(self) -> None:
        pass
