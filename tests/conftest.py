"""Shared pytest fixtures for testing."""

from typing import Any, Dict, List, Optional

import pytest

from neuro_core.llm.base import TextGeneration, TextGenerationBackend
from neuro_core.storage.journal import SessionJournal
from neuro_core.storage.records import (
    InMemoryRecordStore,
    RecordStatus,
    SessionRecord,
    SessionRecordStore,
)
from neuro_core.video.base import JobHandle, VideoBackend, VideoJobStatus
from neuro_core.voice.base import (
    LocalSpeechEngine,
    SpeechBackend,
    SpeechProvider,
    SynthesisResult,
    TTSConfig,
)

OPENAI_KEY = "sk-test-" + "a" * 40
ELEVENLABS_KEY = "el-test-" + "b" * 32
TAVUS_KEY = "tv-test-" + "c" * 32
AUDIO_BYTES = b"ID3\x04fake-mp3-audio"


# =============================================================================
# Backend Doubles
# =============================================================================


class FakeTextBackend(TextGenerationBackend):
    """Returns a fixed reply or raises a fixed error."""

    def __init__(self, reply: str = "Take a slow breath with me.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.model = "fake-model"
        self.calls: List[Dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def generate(self, system_prompt, user_text, max_tokens, temperature):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_text": user_text,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        return TextGeneration(text=self.reply, total_tokens=42, model=self.model)


class FakeSpeechBackend(SpeechBackend):
    def __init__(self, audio: bytes = AUDIO_BYTES, error: Optional[Exception] = None):
        self.audio = audio
        self.error = error
        self.calls: List[str] = []

    @property
    def provider(self) -> SpeechProvider:
        return SpeechProvider.MOCK

    async def synthesize(self, text: str, config: TTSConfig) -> SynthesisResult:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return SynthesisResult(
            audio_data=self.audio,
            provider=SpeechProvider.MOCK,
            voice_id=config.voice_id,
            model=config.model,
        )


class FakeLocalEngine(LocalSpeechEngine):
    def __init__(self, available: bool = True):
        self._available = available
        self.spoken: List[str] = []
        self.stops = 0

    @property
    def available(self) -> bool:
        return self._available

    async def speak(self, text: str) -> None:
        self.spoken.append(text)

    def stop(self) -> None:
        self.stops += 1


class FakeVideoBackend(VideoBackend):
    """
    Scripted video backend.

    ``statuses`` is consumed one entry per status check; each entry is a
    JobHandle to return or an exception to raise. The last entry repeats.
    """

    def __init__(
        self,
        submit_handle: Optional[JobHandle] = None,
        statuses: Optional[List[Any]] = None,
        submit_error: Optional[Exception] = None,
    ):
        self.submit_handle = submit_handle or JobHandle(job_id="job-1")
        self.statuses = statuses or [JobHandle(job_id="job-1")]
        self.submit_error = submit_error
        self.submissions: List[Dict[str, Any]] = []
        self.status_calls = 0

    @property
    def name(self) -> str:
        return "fake_video"

    async def _submit(self, **payload) -> JobHandle:
        self.submissions.append(payload)
        if self.submit_error is not None:
            raise self.submit_error
        return JobHandle(
            job_id=self.submit_handle.job_id,
            status=self.submit_handle.status,
            result_url=self.submit_handle.result_url,
        )

    async def submit_script(self, script, video_name=None):
        return await self._submit(mode="script", script=script)

    async def submit_audio_url(self, audio_url, video_name=None):
        return await self._submit(mode="audio_url", audio_url=audio_url)

    async def submit_audio_file(self, audio_data, filename="speech.mp3", content_type="audio/mpeg"):
        return await self._submit(mode="audio_upload", audio_data=audio_data, filename=filename)

    async def get_status(self, job_id: str) -> JobHandle:
        index = min(self.status_calls, len(self.statuses) - 1)
        self.status_calls += 1
        entry = self.statuses[index]
        if isinstance(entry, Exception):
            raise entry
        return entry


class FailingRecordStore(SessionRecordStore):
    """Every call raises."""

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise RuntimeError("database unavailable")

    async def create(self, record: SessionRecord) -> SessionRecord:
        self._fail()

    async def update(self, record_id: str, changes: Dict[str, Any]) -> SessionRecord:
        self._fail()

    async def get(self, record_id: str) -> Optional[SessionRecord]:
        self._fail()

    async def get_by_job_id(self, job_id: str) -> Optional[SessionRecord]:
        self._fail()

    async def list_by_user(self, subject_name: str) -> List[SessionRecord]:
        self._fail()

    async def list_by_status(self, status: RecordStatus) -> List[SessionRecord]:
        self._fail()

    async def list_recent(self, limit: int = 50) -> List[SessionRecord]:
        self._fail()


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def completed_handle(job_id: str = "job-1", url: str = "https://cdn.example.com/video.mp4") -> JobHandle:
    return JobHandle(
        job_id=job_id,
        status=VideoJobStatus.COMPLETED,
        result_url=url,
        duration_seconds=12.5,
        size_bytes=2048,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def journal(memory_store) -> SessionJournal:
    return SessionJournal(memory_store)


@pytest.fixture
def failing_store() -> FailingRecordStore:
    return FailingRecordStore()


@pytest.fixture
def degraded_journal(failing_store) -> SessionJournal:
    return SessionJournal(failing_store)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
