"""
Voice Base Types and Interfaces

Types shared by the speech backends and the Speech Synthesizer.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# Enums and Constants
# =============================================================================

class SpeechProvider(str, Enum):
    """Speech engines the synthesizer can use."""
    ELEVENLABS = "elevenlabs"
    LOCAL = "local"
    MOCK = "mock"


# Characters per second used for display-only duration estimates.
PRIMARY_CHARS_PER_SECOND = 15.0
FALLBACK_CHARS_PER_SECOND = 10.0

VOICE_PRESETS: Dict[str, str] = {
    "rachel": "21m00Tcm4TlvDq8ikWAM",  # Female, calm
    "domi": "AZnzlk1XvdvUeBnXmlld",  # Female, strong
    "bella": "EXAVITQu4vr4xnSDxMaL",  # Female, soft
    "antoni": "ErXwobaYiN019PkySvjV",  # Male, well-rounded
    "elli": "MF3mGyEYCl7XYWbV9V6O",  # Female, emotional
    "josh": "TxGEqnHWrfWFTfGW9XjX",  # Male, deep
    "arnold": "VR6AewLTigWG4xSOukaG",  # Male, crisp
    "adam": "pNInz6obpgDQGcFmaJgB",  # Male, deep
    "sam": "yoZ06aMxZJJ28mfd3POQ",  # Male, raspy
    "charlie": "IKne3meq5aSn9XLyUdCD",  # Male, casual
}


def resolve_voice_id(voice: str) -> str:
    """Map a preset name such as "charlie" to its voice id. Ids pass through."""
    return VOICE_PRESETS.get(voice.strip().lower(), voice)


def estimate_duration(text: str, chars_per_second: float = PRIMARY_CHARS_PER_SECOND) -> int:
    """
    Rough spoken duration in whole seconds.

    This is a display estimate derived from text length only. It is never
    measured from decoded audio and should not be treated as exact.
    """
    if not text:
        return 0
    return math.ceil(len(text) / chars_per_second)


# =============================================================================
# Configuration Data Classes
# =============================================================================

@dataclass
class VoiceSettings:
    """Voice-quality parameters."""
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.0
    use_speaker_boost: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }


@dataclass
class TTSConfig:
    """Text-to-speech request configuration."""
    voice_id: str = "IKne3meq5aSn9XLyUdCD"
    model: str = "eleven_monolingual_v1"
    voice_settings: VoiceSettings = field(default_factory=VoiceSettings)

    def __post_init__(self) -> None:
        self.voice_id = resolve_voice_id(self.voice_id)


# =============================================================================
# Result Data Classes
# =============================================================================

@dataclass
class SynthesisResult:
    """Raw backend output."""
    audio_data: bytes
    content_type: str = "audio/mpeg"
    provider: SpeechProvider = SpeechProvider.ELEVENLABS
    voice_id: Optional[str] = None
    model: Optional[str] = None
    latency_ms: float = 0.0

    @property
    def size_bytes(self) -> int:
        return len(self.audio_data)


@dataclass
class AudioResult:
    """
    Output of the Speech Synthesizer.

    Exactly one of ``audio_data`` (bytes form) or ``url`` (URL form) is the
    primary payload. ``is_ephemeral`` marks URLs that only resolve inside
    this process.
    """
    record_id: str
    provider: SpeechProvider
    content_type: str = "audio/mpeg"
    audio_data: Optional[bytes] = None
    url: Optional[str] = None
    is_ephemeral: bool = False
    estimated_duration: int = 0
    size_bytes: int = 0

    @property
    def is_url(self) -> bool:
        return self.url is not None


@dataclass
class Voice:
    """A voice offered by the speech backend."""
    voice_id: str
    name: str
    category: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    preview_url: Optional[str] = None


# =============================================================================
# Interfaces
# =============================================================================

class SpeechBackend(ABC):
    """Remote text-to-speech backend."""

    @property
    @abstractmethod
    def provider(self) -> SpeechProvider:
        pass

    @abstractmethod
    async def synthesize(self, text: str, config: TTSConfig) -> SynthesisResult:
        """Raises CompanionError subclasses on failure."""
        pass

    async def list_voices(self) -> List[Voice]:
        return []

    async def close(self) -> None:
        pass


class LocalSpeechEngine(ABC):
    """On-device speech output. Produces sound, not an artifact."""

    @property
    @abstractmethod
    def available(self) -> bool:
        pass

    @abstractmethod
    async def speak(self, text: str) -> None:
        """Speak text aloud and return once speech has finished."""
        pass

    @abstractmethod
    def stop(self) -> None:
        pass
