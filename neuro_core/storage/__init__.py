"""
Persistence: session records, the best-effort journal, and blob stores.
"""

from neuro_core.storage.analytics import RecordSummary, summarize_records
from neuro_core.storage.blobs import (
    BlobStore,
    EphemeralBlobStore,
    StoredBlob,
    SupabaseBlobStore,
)
from neuro_core.storage.journal import SessionJournal, generate_local_id
from neuro_core.storage.records import (
    ArtifactKind,
    InMemoryRecordStore,
    RecordStatus,
    SessionRecord,
    SessionRecordStore,
    SupabaseRecordStore,
    apply_changes,
)

__all__ = [
    # Records
    "ArtifactKind",
    "RecordStatus",
    "SessionRecord",
    "SessionRecordStore",
    "InMemoryRecordStore",
    "SupabaseRecordStore",
    "apply_changes",
    # Journal
    "SessionJournal",
    "generate_local_id",
    # Blobs
    "BlobStore",
    "StoredBlob",
    "SupabaseBlobStore",
    "EphemeralBlobStore",
    # Analytics
    "RecordSummary",
    "summarize_records",
]
