from __future__ import annotations

from datetime import date
from threading import Lock
from typing import Protocol

from substitute_planner.domain.core.schema import AbsenceRecord
from substitute_planner.services.errors import NotFoundError


class AbsenceRepository(Protocol):
    def list(self) -> list[AbsenceRecord]: ...

    def get(self, absence_id: str) -> AbsenceRecord: ...

    def find(self, teacher_id: str, on: date) -> AbsenceRecord | None: ...

    def list_for_date(self, on: date) -> list[AbsenceRecord]: ...

    def save(self, record: AbsenceRecord) -> AbsenceRecord: ...

    def close(self) -> None: ...


class InMemoryAbsenceRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._absences: dict[str, AbsenceRecord] = {}

    def list(self) -> list[AbsenceRecord]:
        return sorted(self._absences.values(), key=lambda absence: (absence.date, absence.teacher_id))

    def get(self, absence_id: str) -> AbsenceRecord:
        absence = self._absences.get(absence_id)
        if absence is None:
            raise NotFoundError("Absence", absence_id)
        return absence

    def find(self, teacher_id: str, on: date) -> AbsenceRecord | None:
        for absence in self._absences.values():
            if absence.teacher_id == teacher_id and absence.date == on:
                return absence
        return None

    def list_for_date(self, on: date) -> list[AbsenceRecord]:
        return [absence for absence in self.list() if absence.date == on]

    def save(self, record: AbsenceRecord) -> AbsenceRecord:
        with self._lock:
            self._absences[record.id] = record
        return record

    def close(self) -> None:
        """The store outlives planner sessions; nothing to release."""
