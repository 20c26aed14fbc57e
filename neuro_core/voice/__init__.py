"""
Voice: speech backend interface, ElevenLabs backend, on-device fallback,
and the Speech Synthesizer.
"""

from neuro_core.voice.base import (
    FALLBACK_CHARS_PER_SECOND,
    PRIMARY_CHARS_PER_SECOND,
    VOICE_PRESETS,
    AudioResult,
    LocalSpeechEngine,
    SpeechBackend,
    SpeechProvider,
    SynthesisResult,
    TTSConfig,
    Voice,
    VoiceSettings,
    estimate_duration,
    resolve_voice_id,
)
from neuro_core.voice.elevenlabs import ElevenLabsSpeechBackend
from neuro_core.voice.local import EspeakSpeechEngine
from neuro_core.voice.synthesizer import SpeechSynthesizer

__all__ = [
    # Types
    "SpeechProvider",
    "VoiceSettings",
    "TTSConfig",
    "SynthesisResult",
    "AudioResult",
    "Voice",
    "VOICE_PRESETS",
    "PRIMARY_CHARS_PER_SECOND",
    "FALLBACK_CHARS_PER_SECOND",
    "estimate_duration",
    "resolve_voice_id",
    # Interfaces
    "SpeechBackend",
    "LocalSpeechEngine",
    # Implementations
    "ElevenLabsSpeechBackend",
    "EspeakSpeechEngine",
    "SpeechSynthesizer",
]
