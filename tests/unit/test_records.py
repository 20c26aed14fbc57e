"""Unit tests for session records, stores, and analytics."""

import pytest

from neuro_core.core.errors import PersistenceError, RecordStateError
from neuro_core.storage.analytics import summarize_records
from neuro_core.storage.records import (
    ArtifactKind,
    InMemoryRecordStore,
    RecordStatus,
    SessionRecord,
    apply_changes,
)


def make_record(kind=ArtifactKind.SPEECH, **kwargs) -> SessionRecord:
    return SessionRecord(kind=kind, source_text="Breathe in slowly", **kwargs)


class TestSessionRecord:
    """Tests for SessionRecord transitions."""

    def test_starts_pending(self):
        """Test new records are pending with no location."""
        record = make_record()
        assert record.status == RecordStatus.PENDING
        assert record.artifact_url is None
        assert not record.is_terminal

    def test_complete(self):
        """Test completing a record sets URL, duration, and size."""
        record = make_record()
        record.complete(artifact_url="https://cdn/a.mp3", duration_seconds=3, size_bytes=100)
        assert record.status == RecordStatus.COMPLETED
        assert record.artifact_url == "https://cdn/a.mp3"
        assert record.size_bytes == 100

    def test_fail_records_reason(self):
        """Test failing a record stores the error."""
        record = make_record()
        record.fail("timeout", metadata={"fallback_used": True})
        assert record.status == RecordStatus.FAILED
        assert record.metadata == {"error": "timeout", "fallback_used": True}

    @pytest.mark.parametrize("finish", ["complete", "fail"])
    def test_terminal_records_reject_transitions(self, finish):
        """Test terminal records never transition again."""
        record = make_record()
        if finish == "complete":
            record.complete()
        else:
            record.fail("boom")
        status = record.status

        with pytest.raises(RecordStateError):
            record.complete()
        with pytest.raises(RecordStateError):
            record.fail("again")
        with pytest.raises(RecordStateError):
            record.attach_job("job-9")
        assert record.status == status

    def test_terminal_records_accept_annotation(self):
        """Test metadata annotation is allowed after completion."""
        record = make_record()
        record.complete()
        record.annotate({"played": True})
        assert record.metadata["played"] is True

    def test_video_completion_requires_url(self):
        """Test a completed video must carry a location."""
        record = make_record(kind=ArtifactKind.TALKING_HEAD_VIDEO)
        with pytest.raises(RecordStateError):
            record.complete()
        assert record.status == RecordStatus.PENDING

    def test_location_requires_completed(self):
        """Test a pending record cannot be built with a location."""
        with pytest.raises(RecordStateError):
            make_record(artifact_url="https://cdn/a.mp3")

    def test_id_assigned_once(self):
        """Test identifiers never change."""
        record = make_record()
        record.assign_id("rec-1")
        with pytest.raises(RecordStateError):
            record.assign_id("rec-2")
        assert record.id == "rec-1"

    def test_row_round_trip(self):
        """Test conversion to and from a store row."""
        record = make_record(subject_name="Maya", id="rec-1")
        record.attach_job("job-1")
        row = record.to_row()
        assert row["artifact_kind"] == "speech"
        assert row["user_name"] == "Maya"

        restored = SessionRecord.from_row(row)
        assert restored.id == "rec-1"
        assert restored.job_id == "job-1"
        assert restored.status == RecordStatus.PENDING


class TestApplyChanges:
    """Tests for apply_changes."""

    def test_cannot_return_to_pending(self):
        """Test completed records never flip back to pending."""
        record = make_record()
        record.complete()
        with pytest.raises(RecordStateError):
            apply_changes(record, {"status": "pending"})
        assert record.status == RecordStatus.COMPLETED

    def test_failed_cannot_complete(self):
        """Test failed records cannot later complete."""
        record = make_record()
        record.fail("boom")
        with pytest.raises(RecordStateError):
            apply_changes(record, {"status": "completed", "artifact_url": "https://x"})

    def test_terminal_metadata_update(self):
        """Test metadata-only changes on a terminal record."""
        record = make_record()
        record.complete()
        apply_changes(record, {"metadata": {"note": "ok"}})
        assert record.metadata["note"] == "ok"

    def test_failed_payload(self):
        """Test a failed payload extracts the error reason."""
        record = make_record()
        apply_changes(record, {"status": "failed", "metadata": {"error": "401", "fallback_used": True}})
        assert record.status == RecordStatus.FAILED
        assert record.metadata["error"] == "401"
        assert record.metadata["fallback_used"] is True


class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore."""

    @pytest.mark.asyncio
    async def test_create_assigns_id(self, memory_store):
        """Test create assigns an identifier."""
        created = await memory_store.create(make_record())
        assert created.id

    @pytest.mark.asyncio
    async def test_returns_copies(self, memory_store):
        """Test callers cannot mutate stored state."""
        created = await memory_store.create(make_record())
        created.metadata["tampered"] = True
        stored = await memory_store.get(created.id)
        assert "tampered" not in stored.metadata

    @pytest.mark.asyncio
    async def test_update_and_lookup_by_job(self, memory_store):
        """Test update by id and lookup by job id."""
        created = await memory_store.create(make_record(kind=ArtifactKind.TALKING_HEAD_VIDEO))
        await memory_store.update(created.id, {"job_id": "job-7", "status": "pending"})
        updated = await memory_store.update(
            created.id,
            {"status": "completed", "artifact_url": "https://cdn/v.mp4"},
        )
        assert updated.status == RecordStatus.COMPLETED

        found = await memory_store.get_by_job_id("job-7")
        assert found.id == created.id
        assert found.artifact_url == "https://cdn/v.mp4"

    @pytest.mark.asyncio
    async def test_update_rejects_regression(self, memory_store):
        """Test the store refuses to move a record back to pending."""
        created = await memory_store.create(make_record())
        await memory_store.update(created.id, {"status": "failed", "metadata": {"error": "x"}})
        with pytest.raises(RecordStateError):
            await memory_store.update(created.id, {"status": "pending"})

    @pytest.mark.asyncio
    async def test_update_missing(self, memory_store):
        """Test updating an unknown id raises PersistenceError."""
        with pytest.raises(PersistenceError):
            await memory_store.update("missing", {"status": "completed"})

    @pytest.mark.asyncio
    async def test_queries(self, memory_store):
        """Test user, status, and recent queries."""
        first = await memory_store.create(make_record(subject_name="Maya"))
        await memory_store.create(make_record(subject_name="Sam"))
        await memory_store.update(first.id, {"status": "completed"})

        assert [r.id for r in await memory_store.list_by_user("Maya")] == [first.id]
        assert len(await memory_store.list_by_status(RecordStatus.PENDING)) == 1
        assert len(await memory_store.list_recent(limit=1)) == 1
        assert await memory_store.ping() is True


class TestSummarizeRecords:
    """Tests for summarize_records."""

    def test_summary(self):
        """Test counts and totals."""
        a = make_record(subject_name="Maya")
        a.complete(duration_seconds=4, size_bytes=1000)
        b = make_record(kind=ArtifactKind.TEXT_REPLY)
        b.fail("boom")

        summary = summarize_records([a, b])

        assert summary.total == 2
        assert summary.by_user == {"Maya": 1, "anonymous": 1}
        assert summary.by_kind == {"speech": 1, "text_reply": 1}
        assert summary.by_status == {"completed": 1, "failed": 1}
        assert summary.total_duration_seconds == 4
        assert summary.total_size_bytes == 1000

    def test_empty(self):
        """Test summary of no records."""
        assert summarize_records([]).total == 0
