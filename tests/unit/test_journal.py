"""Unit tests for the session journal."""

from unittest.mock import AsyncMock

import pytest

from neuro_core.storage.journal import SessionJournal
from neuro_core.storage.records import ArtifactKind, RecordStatus, SessionRecord


class TestSessionJournal:
    """Tests for SessionJournal."""

    @pytest.mark.asyncio
    async def test_begin_uses_store_id(self, journal, memory_store):
        """Test records get the store's identifier."""
        record = await journal.begin(ArtifactKind.TEXT_REPLY, "hello", subject_name="Maya")
        assert not journal.is_local(record)
        assert await memory_store.get(record.id) is not None

    @pytest.mark.asyncio
    async def test_complete_persists(self, journal, memory_store):
        """Test completion reaches the store."""
        record = await journal.begin(ArtifactKind.SPEECH, "hello")
        await journal.complete(record, duration_seconds=1, size_bytes=10)
        stored = await memory_store.get(record.id)
        assert stored.status == RecordStatus.COMPLETED
        assert stored.size_bytes == 10

    @pytest.mark.asyncio
    async def test_degraded_mode_local_id(self, degraded_journal):
        """Test a failing store yields a locally generated id."""
        record = await degraded_journal.begin(ArtifactKind.SPEECH, "hello")
        assert record.id.startswith("local-")
        assert degraded_journal.is_local(record)

    @pytest.mark.asyncio
    async def test_degraded_mode_never_raises(self, degraded_journal, failing_store):
        """Test every lifecycle call survives a failing store."""
        record = await degraded_journal.begin(ArtifactKind.TALKING_HEAD_VIDEO, "hello")
        await degraded_journal.attach_job(record, "job-1")
        await degraded_journal.annotate(record, {"mode": "script"})
        completed = await degraded_journal.complete_by_job_id("job-1", "https://cdn/v.mp4")

        assert completed is record
        assert record.status == RecordStatus.COMPLETED
        assert failing_store.calls == 1

    @pytest.mark.asyncio
    async def test_update_failure_swallowed(self, memory_store):
        """Test update errors are logged, not raised."""
        journal = SessionJournal(memory_store)
        record = await journal.begin(ArtifactKind.SPEECH, "hello")
        memory_store.update = AsyncMock(side_effect=RuntimeError("write failed"))

        await journal.fail(record, "backend down")

        assert record.status == RecordStatus.FAILED
        memory_store.update.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rejected_transition_is_ignored(self, journal):
        """Test a second terminal transition is refused without raising."""
        record = await journal.begin(ArtifactKind.SPEECH, "hello")
        await journal.fail(record, "boom")
        await journal.complete(record)
        assert record.status == RecordStatus.FAILED

    @pytest.mark.asyncio
    async def test_complete_by_job_id_from_store(self, journal, memory_store):
        """Test job-id lookup completes the stored record."""
        record = await journal.begin(ArtifactKind.TALKING_HEAD_VIDEO, "hello")
        await journal.attach_job(record, "job-3")

        completed = await journal.complete_by_job_id("job-3", "https://cdn/v.mp4", duration_seconds=9)

        assert completed.status == RecordStatus.COMPLETED
        stored = await memory_store.get(record.id)
        assert stored.artifact_url == "https://cdn/v.mp4"
        assert stored.duration_seconds == 9

    @pytest.mark.asyncio
    async def test_complete_by_unknown_job(self, journal):
        """Test an unknown job id returns None."""
        assert await journal.complete_by_job_id("nope", "https://cdn/v.mp4") is None

    @pytest.mark.asyncio
    async def test_fail_by_job_id(self, journal, memory_store):
        """Test job-id lookup fails the stored record."""
        record = await journal.begin(ArtifactKind.TALKING_HEAD_VIDEO, "hello")
        await journal.attach_job(record, "job-4")
        await journal.fail_by_job_id("job-4", "timed out")
        stored = await memory_store.get(record.id)
        assert stored.status == RecordStatus.FAILED
        assert stored.metadata["error"] == "timed out"

    @pytest.mark.asyncio
    async def test_no_store(self):
        """Test a journal without a store works locally."""
        journal = SessionJournal(None)
        record = await journal.begin(ArtifactKind.TEXT_REPLY, "hello")
        await journal.complete(record)
        assert record.status == RecordStatus.COMPLETED
        assert journal.is_local(record)

    @pytest.mark.asyncio
    async def test_local_records_leave_no_state(self, degraded_journal):
        """Test degraded-mode bookkeeping is dropped once records finish."""
        for index in range(20):
            record = await degraded_journal.begin(ArtifactKind.TALKING_HEAD_VIDEO, "hello")
            await degraded_journal.attach_job(record, f"job-{index}")
            await degraded_journal.complete_by_job_id(f"job-{index}", "https://cdn.example.com/v.mp4")

        assert degraded_journal._local_jobs == {}
        rebuilt = SessionRecord(kind=ArtifactKind.SPEECH, source_text="hello", id=record.id)
        assert degraded_journal.is_local(rebuilt)
