"""
Pipeline Orchestrator

Composes the Text Responder, Speech Synthesizer, Video Compositor, and
Completion Poller into the chat flows:

- ``handle_user_message``: text reply now, auto video response in the background
- ``generate_video_response``: speech (bytes) -> audio-driven video -> poll
- ``play_demo_video``: static asset shortcut, kept separate from the pipeline
- ``play_message_audio`` / ``stop_audio``: single-slot playback with on-device
  fallback
- ``start_video_session`` / ``end_video_session``: live conversational video

No method raises a CompanionError to the caller; video-step failures become
notices for the presenter.
"""

import asyncio
from abc import ABC
from dataclasses import dataclass
from typing import Any, List, Optional

import structlog

from neuro_core.config import Settings, get_settings
from neuro_core.core.errors import CompanionError
from neuro_core.core.logging import configure_logging, preview
from neuro_core.core.tasks import TaskSupervisor
from neuro_core.llm.openai import OpenAITextBackend
from neuro_core.llm.responder import TextResponder
from neuro_core.pipeline.notices import Notice, notice_for_error
from neuro_core.playback import AudioPlayer, PlaybackHandle, PlaybackSlot, TaskPlaybackHandle
from neuro_core.storage.analytics import RecordSummary, summarize_records
from neuro_core.storage.blobs import BlobStore, SupabaseBlobStore
from neuro_core.storage.journal import SessionJournal
from neuro_core.storage.records import (
    ArtifactKind,
    InMemoryRecordStore,
    SessionRecordStore,
    SupabaseRecordStore,
)
from neuro_core.video.base import ConversationSession, JobHandle, TerminalResult
from neuro_core.video.compositor import VideoCompositor
from neuro_core.video.poller import CompletionPoller
from neuro_core.video.tavus import TavusVideoBackend
from neuro_core.voice.base import AudioResult, TTSConfig, Voice, VoiceSettings
from neuro_core.voice.elevenlabs import ElevenLabsSpeechBackend
from neuro_core.voice.local import EspeakSpeechEngine
from neuro_core.voice.synthesizer import SpeechSynthesizer
from neuro_core.webhooks.events import EventSink, EventType

logger = structlog.get_logger(__name__)

DEFAULT_GREETING = (
    "Hello, and welcome to your personal meditation space. I'm here as your "
    "meditation guide and wellness coach. How are you feeling today, and what "
    "would you like to explore in your practice?"
)

DEMO_JOB_ID = "demo"


def build_conversation_context(subject_name: Optional[str], context: Optional[str]) -> str:
    prefix = f"You are talking with the user, {subject_name}. Additional context: " if subject_name else ""
    return prefix + (context or "")


class Presenter(ABC):
    """Presentation-layer callbacks. Defaults do nothing."""

    def show_video(self, result: TerminalResult) -> None:
        pass

    def show_progress(self, snapshot: JobHandle) -> None:
        pass

    def show_notice(self, notice: Notice) -> None:
        pass


@dataclass
class MessageReply:
    """Text reply plus the background task producing its video, if any."""
    text: str
    video_task: Optional[asyncio.Task] = None


class PipelineOrchestrator:
    """Owns the pipeline components and the chat-level flows."""

    def __init__(
        self,
        responder: TextResponder,
        synthesizer: SpeechSynthesizer,
        compositor: VideoCompositor,
        poller: CompletionPoller,
        journal: SessionJournal,
        events: EventSink,
        supervisor: TaskSupervisor,
        presenter: Optional[Presenter] = None,
        player: Optional[AudioPlayer] = None,
        auto_video_enabled: bool = True,
        demo_video_url: Optional[str] = None,
        default_subject_name: Optional[str] = None,
    ):
        self.responder = responder
        self.synthesizer = synthesizer
        self.compositor = compositor
        self.poller = poller
        self.journal = journal
        self.events = events
        self.supervisor = supervisor
        self.presenter = presenter or Presenter()
        self.player = player
        self.auto_video_enabled = auto_video_enabled
        self.demo_video_url = demo_video_url
        self.default_subject_name = default_subject_name
        self.playback = PlaybackSlot()
        # Bumped on every play or stop request; stale syntheses must not claim the slot
        self._audio_generation = 0
        self.logger = logger.bind(component="pipeline_orchestrator")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        presenter: Optional[Presenter] = None,
        player: Optional[AudioPlayer] = None,
        record_store: Optional[SessionRecordStore] = None,
        blob_store: Optional[BlobStore] = None,
    ) -> "PipelineOrchestrator":
        """Construct every client once and wire the pipeline."""
        if settings.supabase_configured and (record_store is None or blob_store is None):
            from supabase import create_client

            client = create_client(settings.supabase_url, settings.supabase_key)
            record_store = record_store or SupabaseRecordStore(client, table=settings.supabase_records_table)
            blob_store = blob_store or SupabaseBlobStore(client, bucket=settings.supabase_bucket)

        supervisor = TaskSupervisor()
        journal = SessionJournal(record_store or InMemoryRecordStore())

        text_backend = (
            OpenAITextBackend(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                timeout=settings.openai_timeout_seconds,
            )
            if settings.openai_api_key
            else None
        )
        responder = TextResponder(
            backend=text_backend,
            journal=journal,
            api_key=settings.openai_api_key,
            max_tokens=settings.openai_max_tokens,
            temperature=settings.openai_temperature,
        )

        speech_backend = (
            ElevenLabsSpeechBackend(
                api_key=settings.elevenlabs_api_key,
                base_url=settings.elevenlabs_base_url,
                timeout=settings.speech_timeout_seconds,
            )
            if settings.elevenlabs_api_key
            else None
        )
        synthesizer = SpeechSynthesizer(
            backend=speech_backend,
            journal=journal,
            config=TTSConfig(
                voice_id=settings.elevenlabs_voice_id,
                model=settings.elevenlabs_model_id,
                voice_settings=VoiceSettings(
                    stability=settings.elevenlabs_stability,
                    similarity_boost=settings.elevenlabs_similarity_boost,
                    style=settings.elevenlabs_style,
                    use_speaker_boost=settings.elevenlabs_use_speaker_boost,
                ),
            ),
            api_key=settings.elevenlabs_api_key,
            blob_store=blob_store,
            local_engine=(
                EspeakSpeechEngine(rate=settings.local_tts_rate, pitch=settings.local_tts_pitch)
                if settings.local_tts_enabled
                else None
            ),
            supervisor=supervisor,
        )

        video_backend = TavusVideoBackend(
            api_key=settings.tavus_api_key,
            persona_id=settings.tavus_persona_id,
            replica_id=settings.tavus_replica_id,
            base_url=settings.tavus_base_url,
            submit_timeout=settings.video_submit_timeout_seconds,
            status_timeout=settings.video_status_timeout_seconds,
        )
        compositor = VideoCompositor(
            backend=video_backend,
            journal=journal,
            blob_store=blob_store,
            max_script_chars=settings.video_max_script_chars,
        )
        poller = CompletionPoller(
            backend=video_backend,
            journal=journal,
            interval=settings.poll_interval_seconds,
            max_attempts=settings.poll_max_attempts,
            backoff_factor=settings.poll_backoff_factor,
            backoff_cap=settings.poll_backoff_cap_seconds,
        )
        events = EventSink(
            url=settings.webhook_url,
            supervisor=supervisor,
            timeout=settings.webhook_timeout_seconds,
            app_version=settings.app_version,
        )

        return cls(
            responder=responder,
            synthesizer=synthesizer,
            compositor=compositor,
            poller=poller,
            journal=journal,
            events=events,
            supervisor=supervisor,
            presenter=presenter,
            player=player,
            auto_video_enabled=settings.auto_video_enabled,
            demo_video_url=settings.demo_video_url,
            default_subject_name=settings.subject_name,
        )

    # -------------------------------------------------------------------------
    # Chat flows
    # -------------------------------------------------------------------------

    async def handle_user_message(self, text: str, subject_name: Optional[str] = None) -> MessageReply:
        """Reply to a chat message and start its video response in the background."""
        subject_name = subject_name or self.default_subject_name
        self.events.emit(EventType.CHAT_MESSAGE, subject_name, message_length=len(text))
        reply = await self.responder.respond(text, subject_name)

        video_task = None
        if self.auto_video_enabled:
            video_task = self.supervisor.spawn(
                self.generate_video_response(reply, subject_name),
                name="auto_video_response",
            )
        return MessageReply(text=reply, video_task=video_task)

    async def generate_video_response(
        self,
        text: str,
        subject_name: Optional[str] = None,
    ) -> Optional[TerminalResult]:
        """
        Run speech -> video -> poll for a reply.

        Falls back to script-driven video when speech synthesis fails. Returns
        None after showing a notice if the video step cannot finish.
        """
        subject_name = subject_name or self.default_subject_name
        self.events.emit(EventType.VIDEO_REQUESTED, subject_name, message_length=len(text))
        try:
            handle = await self._submit_video(text, subject_name)
            result = await self.poller.poll_until_done(handle, on_update=self.presenter.show_progress)
        except Exception as e:
            self._report_video_failure(e, text)
            return None

        self.presenter.show_video(result)
        self.events.emit(
            EventType.VIDEO_COMPLETED,
            subject_name,
            job_id=result.job_id,
            video_url=result.url,
            attempts=result.attempts,
        )
        return result

    async def _submit_video(self, text: str, subject_name: Optional[str]) -> JobHandle:
        try:
            audio = await self.synthesizer.synthesize_bytes(text, subject_name)
        except CompanionError as e:
            self.logger.info("video_script_mode_fallback", reason=e.code)
            return await self.compositor.compose_from_text(text, subject_name)
        return await self.compositor.compose_from_audio(audio, subject_name, source_text=text)

    def _report_video_failure(self, error: Exception, text: str) -> None:
        if isinstance(error, CompanionError):
            self.logger.warning("video_response_failed", error=error.message, code=error.code, text=preview(text))
        else:
            self.logger.error("video_response_crashed", error=str(error), exc_info=error)
        notice = notice_for_error(error)
        self.events.emit(EventType.VIDEO_FAILED, error=notice.code)
        try:
            self.presenter.show_notice(notice)
        except Exception as e:
            self.logger.warning("presenter_notice_failed", error=str(e))

    async def play_demo_video(self, text: str = "", subject_name: Optional[str] = None) -> Optional[TerminalResult]:
        """Show the static demo asset without running the pipeline."""
        subject_name = subject_name or self.default_subject_name
        if not self.demo_video_url:
            self.presenter.show_notice(
                Notice(title="Video unavailable", message="No demo video is configured.", code="configuration_error")
            )
            return None

        record = await self.journal.begin(
            ArtifactKind.TALKING_HEAD_VIDEO,
            text,
            subject_name=subject_name,
            metadata={"mode": "demo", "static_asset": True},
        )
        await self.journal.complete(record, artifact_url=self.demo_video_url)
        result = TerminalResult(job_id=DEMO_JOB_ID, url=self.demo_video_url, record_id=record.id)

        self.presenter.show_video(result)
        self.events.emit(EventType.DEMO_VIDEO_PLAYED, subject_name, video_url=self.demo_video_url)
        return result

    # -------------------------------------------------------------------------
    # Audio playback
    # -------------------------------------------------------------------------

    async def play_message_audio(self, text: str, subject_name: Optional[str] = None) -> Optional[AudioResult]:
        """
        Speak a message. Stops whatever is playing first.

        Returns the AudioResult from the speech backend, or None when the
        on-device fallback was used. A request overtaken by a later play or
        stop call never claims the slot.
        """
        subject_name = subject_name or self.default_subject_name
        self.stop_audio()
        generation = self._audio_generation

        try:
            audio = await self.synthesizer.synthesize_url(text, subject_name)
        except Exception as e:
            if generation != self._audio_generation:
                self.logger.info("stale_audio_discarded", fallback=True)
                return None
            self.logger.info("audio_local_fallback", error=str(e))
            task = self.synthesizer.speak_locally(text, subject_name)
            if task is not None:
                self._hold(TaskPlaybackHandle(task, on_stop=self.synthesizer.stop_local))
            return None

        ephemeral_url = audio.url if audio.is_ephemeral else None
        if generation != self._audio_generation:
            self.logger.info("stale_audio_discarded", record_id=audio.record_id)
            self._release_ephemeral(ephemeral_url)
            return audio

        if self.player is None:
            return audio

        source: Any = audio.url
        if ephemeral_url:
            source = self.synthesizer.ephemeral_store.read(ephemeral_url) or audio.url
        self._hold(self.player.start(source), ephemeral_url)
        return audio

    def _hold(self, handle: PlaybackHandle, ephemeral_url: Optional[str] = None) -> None:
        self.playback.claim(lambda: handle)
        self.supervisor.spawn(self._release_when_done(handle, ephemeral_url), name="playback")

    async def _release_when_done(self, handle: PlaybackHandle, ephemeral_url: Optional[str] = None) -> None:
        try:
            await handle.wait()
        finally:
            self.playback.release(handle)
            self._release_ephemeral(ephemeral_url)

    def _release_ephemeral(self, url: Optional[str]) -> None:
        if url:
            self.synthesizer.ephemeral_store.release(url)

    def stop_audio(self) -> None:
        self._audio_generation += 1
        self.playback.stop()
        self.synthesizer.stop_local()

    # -------------------------------------------------------------------------
    # Conversational sessions
    # -------------------------------------------------------------------------

    async def start_video_session(
        self,
        subject_name: Optional[str] = None,
        context: Optional[str] = None,
        greeting: Optional[str] = None,
        persona_id: Optional[str] = None,
    ) -> Optional[ConversationSession]:
        subject_name = subject_name or self.default_subject_name
        try:
            session = await self.compositor.backend.create_conversation(
                greeting=DEFAULT_GREETING if greeting is None else greeting,
                context=build_conversation_context(subject_name, context),
                persona_id=persona_id,
            )
        except Exception as e:
            self.logger.warning(
                "video_session_failed",
                error=str(e),
                code=getattr(e, "code", None),
                error_type=type(e).__name__,
            )
            self.presenter.show_notice(notice_for_error(e))
            return None

        self.events.emit(
            EventType.SESSION_STARTED,
            subject_name,
            conversation_id=session.conversation_id,
            session_type="guided_meditation",
        )
        return session

    def end_video_session(self, conversation_id: str, subject_name: Optional[str] = None, **summary: Any) -> None:
        subject_name = subject_name or self.default_subject_name
        self.events.emit(EventType.SESSION_ENDED, subject_name, conversation_id=conversation_id, **summary)

    # -------------------------------------------------------------------------
    # Catalogue and history
    # -------------------------------------------------------------------------

    async def list_voices(self) -> List[Voice]:
        return await self.synthesizer.list_voices()

    async def record_summary(self, limit: int = 50) -> RecordSummary:
        store = self.journal.store
        if store is None:
            return summarize_records([])
        try:
            records = await store.list_recent(limit)
        except Exception as e:
            self.logger.warning("record_summary_failed", error=str(e))
            records = []
        return summarize_records(records)

    async def aclose(self) -> None:
        self.stop_audio()
        await self.supervisor.cancel_all()
        for component in (
            self.responder.backend,
            self.synthesizer.backend,
            self.compositor.backend,
            self.events,
        ):
            if component is not None:
                await component.close()


def build_orchestrator(
    settings: Optional[Settings] = None,
    presenter: Optional[Presenter] = None,
    player: Optional[AudioPlayer] = None,
) -> PipelineOrchestrator:
    """Configure logging from settings and build a ready orchestrator."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)
    return PipelineOrchestrator.from_settings(settings, presenter=presenter, player=player)
