"""
Session Records

One SessionRecord per generated artifact (text reply, speech clip, talking-head
video). Records move from ``pending`` to exactly one terminal status and are
afterwards immutable except for metadata annotation.
"""

import asyncio
import copy
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog

from neuro_core.core.errors import PersistenceError, RecordStateError

logger = structlog.get_logger(__name__)


# =============================================================================
# Enums
# =============================================================================

class ArtifactKind(str, Enum):
    """Kind of artifact a record describes."""
    SPEECH = "speech"
    TALKING_HEAD_VIDEO = "talking_head_video"
    TEXT_REPLY = "text_reply"


class RecordStatus(str, Enum):
    """Record lifecycle status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# Kinds whose completed records must carry an artifact URL
ADDRESSABLE_KINDS = frozenset({ArtifactKind.TALKING_HEAD_VIDEO})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Record Model
# =============================================================================

@dataclass
class SessionRecord:
    """A generated artifact and its lifecycle."""
    kind: ArtifactKind
    source_text: str
    subject_name: Optional[str] = None
    id: Optional[str] = None
    status: RecordStatus = RecordStatus.PENDING
    artifact_url: Optional[str] = None
    job_id: Optional[str] = None
    duration_seconds: Optional[float] = None
    size_bytes: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.artifact_url and self.status != RecordStatus.COMPLETED:
            raise RecordStateError("artifact_url is only allowed on completed records")

    @property
    def is_terminal(self) -> bool:
        return self.status != RecordStatus.PENDING

    def assign_id(self, record_id: str) -> None:
        if self.id is not None:
            raise RecordStateError(f"Record already has id {self.id}")
        self.id = record_id

    def attach_job(self, job_id: str) -> None:
        if self.is_terminal:
            raise RecordStateError(f"Cannot attach job to {self.status.value} record")
        self.job_id = job_id
        self.updated_at = utcnow()

    def complete(
        self,
        artifact_url: Optional[str] = None,
        duration_seconds: Optional[float] = None,
        size_bytes: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.is_terminal:
            raise RecordStateError(f"Record {self.id} is already {self.status.value}")
        if self.kind in ADDRESSABLE_KINDS and not artifact_url:
            raise RecordStateError(f"Completed {self.kind.value} record requires a URL")
        self.status = RecordStatus.COMPLETED
        self.artifact_url = artifact_url
        if duration_seconds is not None:
            self.duration_seconds = duration_seconds
        if size_bytes is not None:
            self.size_bytes = size_bytes
        if metadata:
            self.metadata.update(metadata)
        self.updated_at = utcnow()

    def fail(self, reason: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        if self.is_terminal:
            raise RecordStateError(f"Record {self.id} is already {self.status.value}")
        self.status = RecordStatus.FAILED
        self.metadata["error"] = reason
        if metadata:
            self.metadata.update(metadata)
        self.updated_at = utcnow()

    def annotate(self, metadata: Dict[str, Any]) -> None:
        self.metadata.update(metadata)
        self.updated_at = utcnow()

    def changes(self) -> Dict[str, Any]:
        """Mutable columns, in the shape accepted by ``update``."""
        return {
            "status": self.status.value,
            "artifact_url": self.artifact_url,
            "job_id": self.job_id,
            "duration_seconds": self.duration_seconds,
            "file_size_bytes": self.size_bytes,
            "metadata": dict(self.metadata),
            "updated_at": self.updated_at.isoformat(),
        }

    def to_row(self) -> Dict[str, Any]:
        row = {
            "user_name": self.subject_name,
            "message_text": self.source_text,
            "artifact_kind": self.kind.value,
            "created_at": self.created_at.isoformat(),
            **self.changes(),
        }
        if self.id is not None:
            row["id"] = self.id
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "SessionRecord":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            kind=ArtifactKind(row["artifact_kind"]),
            source_text=row.get("message_text") or "",
            subject_name=row.get("user_name"),
            status=RecordStatus(row.get("status") or RecordStatus.PENDING.value),
            artifact_url=row.get("artifact_url"),
            job_id=row.get("job_id"),
            duration_seconds=row.get("duration_seconds"),
            size_bytes=row.get("file_size_bytes"),
            metadata=dict(row.get("metadata") or {}),
            created_at=_parse_ts(row.get("created_at")),
            updated_at=_parse_ts(row.get("updated_at")),
        )


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return utcnow()


def apply_changes(record: SessionRecord, changes: Dict[str, Any]) -> None:
    """Apply an update payload to a record, enforcing lifecycle rules."""
    new_status = changes.get("status")
    if new_status is not None:
        new_status = RecordStatus(new_status)

    if record.is_terminal:
        if new_status is not None and new_status != record.status:
            raise RecordStateError(
                f"Record {record.id} is {record.status.value}; cannot become {new_status.value}"
            )
        allowed = {"status", "metadata", "updated_at"}
        for key, value in changes.items():
            if key in allowed:
                continue
            current = record.changes().get(key)
            if value != current:
                raise RecordStateError(f"Record {record.id} is immutable; cannot change {key}")
        if "metadata" in changes:
            record.annotate(changes["metadata"] or {})
        return

    if changes.get("job_id"):
        record.attach_job(changes["job_id"])

    if new_status == RecordStatus.COMPLETED:
        record.complete(
            artifact_url=changes.get("artifact_url"),
            duration_seconds=changes.get("duration_seconds"),
            size_bytes=changes.get("file_size_bytes"),
            metadata=changes.get("metadata"),
        )
    elif new_status == RecordStatus.FAILED:
        metadata = dict(changes.get("metadata") or {})
        reason = metadata.pop("error", "failed")
        record.fail(reason, metadata=metadata)
    else:
        if changes.get("artifact_url"):
            raise RecordStateError("artifact_url is only allowed on completed records")
        if "metadata" in changes:
            record.annotate(changes["metadata"] or {})


# =============================================================================
# Store Interface
# =============================================================================

class SessionRecordStore(ABC):
    """Persistence sink for session records."""

    @abstractmethod
    async def create(self, record: SessionRecord) -> SessionRecord:
        """Persist a new record and return it with an assigned id."""
        pass

    @abstractmethod
    async def update(self, record_id: str, changes: Dict[str, Any]) -> SessionRecord:
        pass

    @abstractmethod
    async def get(self, record_id: str) -> Optional[SessionRecord]:
        pass

    @abstractmethod
    async def get_by_job_id(self, job_id: str) -> Optional[SessionRecord]:
        pass

    @abstractmethod
    async def list_by_user(self, subject_name: str) -> List[SessionRecord]:
        pass

    @abstractmethod
    async def list_by_status(self, status: RecordStatus) -> List[SessionRecord]:
        pass

    @abstractmethod
    async def list_recent(self, limit: int = 50) -> List[SessionRecord]:
        pass

    async def ping(self) -> bool:
        """Connection test."""
        return True


# =============================================================================
# In-Memory Store
# =============================================================================

class InMemoryRecordStore(SessionRecordStore):
    """Process-local store. Returns copies so callers cannot mutate stored state."""

    def __init__(self) -> None:
        self._records: Dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, record: SessionRecord) -> SessionRecord:
        async with self._lock:
            stored = copy.deepcopy(record)
            if stored.id is None:
                stored.assign_id(str(uuid.uuid4()))
            self._records[stored.id] = stored
            return copy.deepcopy(stored)

    async def update(self, record_id: str, changes: Dict[str, Any]) -> SessionRecord:
        async with self._lock:
            record = self._records.get(record_id)
            if record is None:
                raise PersistenceError(f"Record {record_id} not found", provider="memory")
            apply_changes(record, changes)
            return copy.deepcopy(record)

    async def get(self, record_id: str) -> Optional[SessionRecord]:
        record = self._records.get(record_id)
        return copy.deepcopy(record) if record else None

    async def get_by_job_id(self, job_id: str) -> Optional[SessionRecord]:
        matches = [r for r in self._records.values() if r.job_id == job_id]
        if not matches:
            return None
        return copy.deepcopy(max(matches, key=lambda r: r.created_at))

    async def list_by_user(self, subject_name: str) -> List[SessionRecord]:
        return self._sorted(r for r in self._records.values() if r.subject_name == subject_name)

    async def list_by_status(self, status: RecordStatus) -> List[SessionRecord]:
        return self._sorted(r for r in self._records.values() if r.status == status)

    async def list_recent(self, limit: int = 50) -> List[SessionRecord]:
        return self._sorted(self._records.values())[:limit]

    @staticmethod
    def _sorted(records) -> List[SessionRecord]:
        return [
            copy.deepcopy(r)
            for r in sorted(records, key=lambda r: r.created_at, reverse=True)
        ]


# =============================================================================
# Supabase Store
# =============================================================================

class SupabaseRecordStore(SessionRecordStore):
    """
    Supabase (PostgREST) backed record store.

    The supabase client is synchronous; every call runs in a worker thread so
    the event loop is never blocked. Any client failure becomes PersistenceError.
    """

    def __init__(self, client: Any, table: str = "session_records"):
        self._client = client
        self._table = table
        self._logger = logger.bind(store="supabase", table=table)

    @classmethod
    def from_credentials(cls, url: str, key: str, table: str = "session_records") -> "SupabaseRecordStore":
        from supabase import create_client

        return cls(create_client(url, key), table=table)

    async def _execute(self, operation: str, build):
        try:
            response = await asyncio.to_thread(lambda: build(self._client.table(self._table)).execute())
        except Exception as e:
            raise PersistenceError(
                f"Supabase {operation} failed: {e}",
                provider="supabase",
                details={"operation": operation},
            ) from e
        return response.data or []

    async def create(self, record: SessionRecord) -> SessionRecord:
        rows = await self._execute("insert", lambda q: q.insert(record.to_row()))
        if not rows:
            raise PersistenceError("Supabase insert returned no row", provider="supabase")
        return SessionRecord.from_row(rows[0])

    async def update(self, record_id: str, changes: Dict[str, Any]) -> SessionRecord:
        rows = await self._execute("update", lambda q: q.update(changes).eq("id", record_id))
        if not rows:
            raise PersistenceError(f"Record {record_id} not found", provider="supabase")
        return SessionRecord.from_row(rows[0])

    async def get(self, record_id: str) -> Optional[SessionRecord]:
        rows = await self._execute("select", lambda q: q.select("*").eq("id", record_id).limit(1))
        return SessionRecord.from_row(rows[0]) if rows else None

    async def get_by_job_id(self, job_id: str) -> Optional[SessionRecord]:
        rows = await self._execute(
            "select",
            lambda q: q.select("*").eq("job_id", job_id).order("created_at", desc=True).limit(1),
        )
        return SessionRecord.from_row(rows[0]) if rows else None

    async def list_by_user(self, subject_name: str) -> List[SessionRecord]:
        rows = await self._execute(
            "select",
            lambda q: q.select("*").eq("user_name", subject_name).order("created_at", desc=True),
        )
        return [SessionRecord.from_row(row) for row in rows]

    async def list_by_status(self, status: RecordStatus) -> List[SessionRecord]:
        rows = await self._execute(
            "select",
            lambda q: q.select("*").eq("status", status.value).order("created_at", desc=True),
        )
        return [SessionRecord.from_row(row) for row in rows]

    async def list_recent(self, limit: int = 50) -> List[SessionRecord]:
        rows = await self._execute(
            "select",
            lambda q: q.select("*").order("created_at", desc=True).limit(limit),
        )
        return [SessionRecord.from_row(row) for row in rows]

    async def ping(self) -> bool:
        try:
            await self._execute("ping", lambda q: q.select("id").limit(1))
        except PersistenceError as e:
            self._logger.warning("supabase_ping_failed", error=str(e))
            return False
        return True
