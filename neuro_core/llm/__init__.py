"""
Text generation: backend interface, OpenAI backend, and the Text Responder.
"""

from neuro_core.llm.base import TextGeneration, TextGenerationBackend
from neuro_core.llm.openai import OpenAITextBackend
from neuro_core.llm.responder import (
    CANNED_REPLIES,
    GENERIC_REPLY,
    SYSTEM_PROMPT,
    TextResponder,
    build_system_prompt,
    fallback_reply,
)

__all__ = [
    "TextGeneration",
    "TextGenerationBackend",
    "OpenAITextBackend",
    "TextResponder",
    "SYSTEM_PROMPT",
    "GENERIC_REPLY",
    "CANNED_REPLIES",
    "build_system_prompt",
    "fallback_reply",
]
