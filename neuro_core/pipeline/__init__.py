"""
Response pipeline orchestration and user-visible notices.
"""

from neuro_core.pipeline.notices import Notice, NoticeLevel, notice_for_error
from neuro_core.pipeline.orchestrator import (
    DEFAULT_GREETING,
    MessageReply,
    PipelineOrchestrator,
    Presenter,
    build_conversation_context,
    build_orchestrator,
)

__all__ = [
    "PipelineOrchestrator",
    "Presenter",
    "MessageReply",
    "DEFAULT_GREETING",
    "build_conversation_context",
    "build_orchestrator",
    "Notice",
    "NoticeLevel",
    "notice_for_error",
]
