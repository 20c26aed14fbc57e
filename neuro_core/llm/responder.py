"""
Text Responder

Turns a user utterance into a reply. The primary path calls a text-generation
backend; any failure (including an unusable credential, which skips the call
entirely) falls back to a deterministic keyword-matched reply. ``respond``
never raises.
"""

from typing import List, Optional, Tuple

import structlog

from neuro_core.core.credentials import credential_problem
from neuro_core.core.errors import ConfigurationError
from neuro_core.core.logging import preview
from neuro_core.llm.base import TextGenerationBackend
from neuro_core.storage.journal import SessionJournal
from neuro_core.storage.records import ArtifactKind

logger = structlog.get_logger(__name__)


SYSTEM_PROMPT = """You are a compassionate AI meditation guide and wellness coach named Danny. Your role is to:

1. Provide personalized meditation guidance and mindfulness techniques
2. Offer emotional support and stress relief strategies
3. Suggest breathing exercises, body scans, and relaxation methods
4. Help users develop a consistent meditation practice
5. Address anxiety, stress, sleep issues, and emotional challenges with empathy

Keep responses:
- Warm, supportive, and non-judgmental
- Practical with actionable advice
- Concise but thorough (2-4 sentences typically)
- Focused on mindfulness and wellness
- Encouraging without being overly enthusiastic"""

EMPTY_REPLY = (
    "I'm here to help with your meditation practice. "
    "Could you tell me more about what you're looking for today?"
)

GENERIC_REPLY = (
    "I'm here to support your wellness journey. "
    "What aspect of meditation or mindfulness would you like to explore today?"
)

# Checked in order; first category with a matching keyword wins.
CANNED_REPLIES: List[Tuple[Tuple[str, ...], str]] = [
    (
        ("stress", "anxious", "anxiety", "worried", "panic"),
        "I understand you're feeling stressed. Let's try a simple breathing exercise: "
        "breathe in for 4 counts, hold for 4, then breathe out for 6. "
        "This can help activate your body's relaxation response.",
    ),
    (
        ("sleep", "insomnia", "tired"),
        "Sleep challenges can be really difficult. Try a body scan meditation before bed - "
        "start at your toes and slowly relax each part of your body as you work your way up. "
        "This helps signal to your mind that it's time to rest.",
    ),
    (
        ("meditation", "meditate", "mindfulness", "mindful"),
        "Meditation is a wonderful practice! Start with just 5 minutes a day focusing on your "
        "breath. When your mind wanders (and it will), gently bring your attention back to "
        "breathing. Consistency matters more than duration.",
    ),
]


def build_system_prompt(subject_name: Optional[str] = None) -> str:
    if subject_name:
        return f"{SYSTEM_PROMPT}\n\nThe user's name is {subject_name}."
    return SYSTEM_PROMPT


def fallback_reply(user_text: str) -> str:
    """Deterministic reply for when the backend is unavailable."""
    lowered = user_text.lower()
    for keywords, reply in CANNED_REPLIES:
        if any(keyword in lowered for keyword in keywords):
            return reply
    return GENERIC_REPLY


class TextResponder:
    """Generates replies with a guaranteed local fallback."""

    def __init__(
        self,
        backend: Optional[TextGenerationBackend],
        journal: SessionJournal,
        api_key: Optional[str] = None,
        key_prefix: Optional[str] = "sk-",
        max_tokens: int = 200,
        temperature: float = 0.7,
    ):
        self.backend = backend
        self.journal = journal
        self.api_key = api_key
        self.key_prefix = key_prefix
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.logger = logger.bind(component="text_responder")

    async def respond(self, user_text: str, subject_name: Optional[str] = None) -> str:
        model = getattr(self.backend, "model", None)
        record = await self.journal.begin(
            ArtifactKind.TEXT_REPLY,
            user_text,
            subject_name=subject_name,
            metadata={
                "model": model,
                "backend": self.backend.name if self.backend else None,
            },
        )

        try:
            generation = await self._generate(user_text, subject_name)
        except Exception as e:
            reply = fallback_reply(user_text)
            self.logger.warning(
                "text_generation_failed",
                error=str(e),
                error_type=type(e).__name__,
                user_text=preview(user_text),
            )
            await self.journal.fail(
                record,
                str(e),
                metadata={
                    "fallback_used": True,
                    "error_type": type(e).__name__,
                    "response_text": reply,
                },
            )
            return reply

        reply = generation.text or EMPTY_REPLY
        await self.journal.complete(
            record,
            metadata={
                "response_text": reply,
                "tokens_used": generation.total_tokens,
                "response_length": len(reply),
                "model_used": generation.model or model,
                "fallback_used": False,
            },
        )
        return reply

    async def _generate(self, user_text: str, subject_name: Optional[str]):
        if self.backend is None:
            raise ConfigurationError("No text-generation backend configured")
        problem = credential_problem(self.api_key, prefix=self.key_prefix)
        if problem:
            raise ConfigurationError(
                f"Text-generation API key is not usable ({problem})",
                provider=self.backend.name,
            )
        return await self.backend.generate(
            system_prompt=build_system_prompt(subject_name),
            user_text=user_text,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
