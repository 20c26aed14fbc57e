"""Configuration for the meditation companion pipeline."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service settings
    service_name: str = "neuro-companion"
    app_version: str = "1.0.0"
    log_level: str = "info"
    log_format: Literal["json", "console"] = "json"

    # Text generation (OpenAI)
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = "gpt-3.5-turbo"
    openai_max_tokens: int = 200
    openai_temperature: float = 0.7
    openai_timeout_seconds: float = 30.0
    subject_name: Optional[str] = Field(
        default=None,
        description="Name used in prompts and records when a call does not pass one",
    )

    # Speech synthesis (ElevenLabs)
    elevenlabs_api_key: str = Field(default="", description="ElevenLabs API key")
    elevenlabs_base_url: str = "https://api.elevenlabs.io/v1"
    elevenlabs_voice_id: str = "IKne3meq5aSn9XLyUdCD"  # Charlie; preset names are accepted too
    elevenlabs_model_id: str = "eleven_monolingual_v1"
    elevenlabs_stability: float = 0.5
    elevenlabs_similarity_boost: float = 0.75
    elevenlabs_style: float = 0.0
    elevenlabs_use_speaker_boost: bool = True
    speech_timeout_seconds: float = 30.0

    # On-device speech fallback
    local_tts_enabled: bool = True
    local_tts_rate: int = 165  # words per minute
    local_tts_pitch: int = 50

    # Talking-head video (Tavus)
    tavus_api_key: str = Field(default="", description="Tavus API key")
    tavus_base_url: str = "https://tavusapi.com/v2"
    tavus_persona_id: str = "p5bf051443c7"
    tavus_replica_id: str = ""
    video_submit_timeout_seconds: float = 60.0
    video_status_timeout_seconds: float = 15.0
    video_max_script_chars: int = 500

    # Completion polling
    poll_interval_seconds: float = 10.0
    poll_max_attempts: int = 60
    poll_backoff_factor: float = 1.2
    poll_backoff_cap_seconds: float = 30.0

    # Persistence (Supabase), both optional
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_records_table: str = "session_records"
    supabase_bucket: str = "audio-files"

    # Analytics webhook
    webhook_url: Optional[str] = None
    webhook_timeout_seconds: float = 5.0

    # Orchestration
    auto_video_enabled: bool = True
    demo_video_url: str = Field(
        default="https://storage.example.com/demo/meditation-intro.mp4",
        description="Static asset used by the manual demo video entry point",
    )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
