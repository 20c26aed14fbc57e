"""
Session journal: best-effort record lifecycle writes.

The journal owns the "persistence never breaks the pipeline" policy. Every
store call is wrapped; failures are logged at warning and swallowed. When the
store cannot create a record, the journal issues a local identifier and keeps
going in degraded mode.
"""

import time
import uuid
from typing import Any, Dict, Optional

import structlog

from neuro_core.core.errors import RecordStateError
from neuro_core.storage.records import (
    ArtifactKind,
    RecordStatus,
    SessionRecord,
    SessionRecordStore,
)

logger = structlog.get_logger(__name__)

LOCAL_ID_PREFIX = "local-"


def generate_local_id() -> str:
    """Timestamp-based id for records the store never saw."""
    return f"{LOCAL_ID_PREFIX}{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class SessionJournal:
    """Writes record transitions to a store without ever raising store errors."""

    def __init__(self, store: Optional[SessionRecordStore] = None):
        self.store = store
        # Pending video records created in degraded mode, keyed by job id
        self._local_jobs: Dict[str, SessionRecord] = {}
        self._logger = logger.bind(component="session_journal")

    def is_local(self, record: SessionRecord) -> bool:
        return bool(record.id) and record.id.startswith(LOCAL_ID_PREFIX)

    async def begin(
        self,
        kind: ArtifactKind,
        source_text: str,
        subject_name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SessionRecord:
        """Create a pending record. Always returns a record with an id."""
        record = SessionRecord(
            kind=kind,
            source_text=source_text,
            subject_name=subject_name,
            metadata=dict(metadata or {}),
        )

        if self.store is not None:
            try:
                stored = await self.store.create(record)
                if stored.id:
                    record.assign_id(stored.id)
                    record.created_at = stored.created_at
                    return record
                self._logger.warning("record_create_returned_no_id", kind=kind.value)
            except Exception as e:
                self._logger.warning(
                    "record_create_failed",
                    kind=kind.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        record.assign_id(generate_local_id())
        self._logger.info("record_degraded_mode", record_id=record.id, kind=kind.value)
        return record

    async def complete(
        self,
        record: SessionRecord,
        artifact_url: Optional[str] = None,
        duration_seconds: Optional[float] = None,
        size_bytes: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SessionRecord:
        try:
            record.complete(
                artifact_url=artifact_url,
                duration_seconds=duration_seconds,
                size_bytes=size_bytes,
                metadata=metadata,
            )
        except RecordStateError as e:
            self._logger.warning("record_transition_rejected", record_id=record.id, error=str(e))
            return record
        if record.job_id:
            self._local_jobs.pop(record.job_id, None)
        await self._push(record)
        return record

    async def fail(
        self,
        record: SessionRecord,
        reason: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SessionRecord:
        try:
            record.fail(reason, metadata=metadata)
        except RecordStateError as e:
            self._logger.warning("record_transition_rejected", record_id=record.id, error=str(e))
            return record
        if record.job_id:
            self._local_jobs.pop(record.job_id, None)
        await self._push(record)
        return record

    async def annotate(self, record: SessionRecord, metadata: Dict[str, Any]) -> SessionRecord:
        record.annotate(metadata)
        await self._push(record)
        return record

    async def attach_job(self, record: SessionRecord, job_id: str) -> SessionRecord:
        try:
            record.attach_job(job_id)
        except RecordStateError as e:
            self._logger.warning("record_transition_rejected", record_id=record.id, error=str(e))
            return record
        if self.is_local(record):
            self._local_jobs[job_id] = record
        await self._push(record)
        return record

    async def complete_by_job_id(
        self,
        job_id: str,
        artifact_url: str,
        duration_seconds: Optional[float] = None,
        size_bytes: Optional[int] = None,
    ) -> Optional[SessionRecord]:
        """Mark the record for a vendor job completed. Returns None if not found."""
        record = await self._find_by_job_id(job_id)
        if record is None or record.status == RecordStatus.COMPLETED:
            return record
        return await self.complete(
            record,
            artifact_url=artifact_url,
            duration_seconds=duration_seconds,
            size_bytes=size_bytes,
        )

    async def fail_by_job_id(self, job_id: str, reason: str) -> Optional[SessionRecord]:
        record = await self._find_by_job_id(job_id)
        if record is None or record.is_terminal:
            return record
        return await self.fail(record, reason)

    async def _find_by_job_id(self, job_id: str) -> Optional[SessionRecord]:
        record = self._local_jobs.get(job_id)
        if record is None and self.store is not None:
            try:
                record = await self.store.get_by_job_id(job_id)
            except Exception as e:
                self._logger.warning("record_lookup_failed", job_id=job_id, error=str(e))
                return None
        if record is None:
            self._logger.info("record_not_found_for_job", job_id=job_id)
        return record

    async def _push(self, record: SessionRecord) -> None:
        if self.store is None or self.is_local(record):
            return
        try:
            await self.store.update(record.id, record.changes())
        except Exception as e:
            self._logger.warning(
                "record_update_failed",
                record_id=record.id,
                status=record.status.value,
                error=str(e),
                error_type=type(e).__name__,
            )
