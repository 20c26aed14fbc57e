"""Aggregate statistics over session records."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable

from neuro_core.storage.records import SessionRecord

ANONYMOUS = "anonymous"


@dataclass
class RecordSummary:
    total: int = 0
    by_user: Dict[str, int] = field(default_factory=dict)
    by_kind: Dict[str, int] = field(default_factory=dict)
    by_status: Dict[str, int] = field(default_factory=dict)
    total_duration_seconds: float = 0.0
    total_size_bytes: int = 0


def summarize_records(records: Iterable[SessionRecord]) -> RecordSummary:
    by_user: Counter = Counter()
    by_kind: Counter = Counter()
    by_status: Counter = Counter()
    total = 0
    duration = 0.0
    size = 0

    for record in records:
        total += 1
        by_user[record.subject_name or ANONYMOUS] += 1
        by_kind[record.kind.value] += 1
        by_status[record.status.value] += 1
        duration += record.duration_seconds or 0.0
        size += record.size_bytes or 0

    return RecordSummary(
        total=total,
        by_user=dict(by_user),
        by_kind=dict(by_kind),
        by_status=dict(by_status),
        total_duration_seconds=duration,
        total_size_bytes=size,
    )
