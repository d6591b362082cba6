from __future__ import annotations

from datetime import date
from threading import Lock
from typing import Protocol

from substitute_planner.domain.core.schema import SubstitutionRecord


class SubstitutionRecordRepository(Protocol):
    def list(self) -> list[SubstitutionRecord]: ...

    def add(self, record: SubstitutionRecord) -> SubstitutionRecord: ...

    def list_for_date(self, on: date) -> list[SubstitutionRecord]: ...

    def list_for_substitute(self, teacher_id: str) -> list[SubstitutionRecord]: ...

    def close(self) -> None: ...


class InMemorySubstitutionRecordRepository:
    """Append-only: records are never updated or removed."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._records: dict[str, SubstitutionRecord] = {}

    def list(self) -> list[SubstitutionRecord]:
        return sorted(self._records.values(), key=lambda record: record.created_at)

    def add(self, record: SubstitutionRecord) -> SubstitutionRecord:
        with self._lock:
            existing = self._records.get(record.id)
            if existing is not None:
                return existing
            self._records[record.id] = record
        return record

    def list_for_date(self, on: date) -> list[SubstitutionRecord]:
        return [record for record in self.list() if record.date == on]

    def list_for_substitute(self, teacher_id: str) -> list[SubstitutionRecord]:
        return [record for record in self.list() if record.substitute_id == teacher_id]

    def close(self) -> None:
        """The store outlives planner sessions; nothing to release."""
