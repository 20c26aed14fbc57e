"""
Talking-head video: backend interface, Tavus backend, Video Compositor, and
Completion Poller.
"""

from neuro_core.video.base import (
    ConversationSession,
    JobHandle,
    PipelineJob,
    TerminalResult,
    VideoBackend,
    VideoJobStatus,
    normalize_vendor_status,
)
from neuro_core.video.compositor import VideoCompositor, truncate_script
from neuro_core.video.poller import CompletionPoller
from neuro_core.video.tavus import TavusVideoBackend

__all__ = [
    # Types
    "VideoJobStatus",
    "JobHandle",
    "PipelineJob",
    "TerminalResult",
    "ConversationSession",
    "normalize_vendor_status",
    # Interface
    "VideoBackend",
    # Implementations
    "TavusVideoBackend",
    "VideoCompositor",
    "CompletionPoller",
    "truncate_script",
]
