# domain/assignments/board.py
# The session's only mutable state: who covers which (class, period).

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from substitute_planner.domain.core.schema import AssignmentEntry, ProposedAssignment, SlotKey
from substitute_planner.services.errors import ConflictError, DuplicateAssignmentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchApplyResult:
    applied: Tuple[ProposedAssignment, ...]
    skipped: Tuple[ProposedAssignment, ...]
    conflicts: Tuple[Tuple[ProposedAssignment, str], ...]


class AssignmentBoard:
    """
    SlotKey -> ordered entries. Two invariants hold after every call:
    - a teacher appears at most once per slot;
    - a teacher appears in at most one class per period.
    """

    def __init__(self, entries: Optional[Mapping[SlotKey, Iterable[AssignmentEntry]]] = None) -> None:
        self._slots: Dict[SlotKey, List[AssignmentEntry]] = {}
        for slot, items in (entries or {}).items():
            for entry in items:
                self.assign(slot.class_id, slot.period, entry.teacher_id, entry.reason)

    # ---------- Queries ----------

    def entries(self, class_id: str, period: int) -> Tuple[AssignmentEntry, ...]:
        return tuple(self._slots.get(SlotKey(class_id, period), ()))

    def items(self) -> Iterator[Tuple[SlotKey, Tuple[AssignmentEntry, ...]]]:
        for slot in sorted(self._slots):
            if self._slots[slot]:
                yield slot, tuple(self._slots[slot])

    def is_resolved(self, class_id: str, period: int) -> bool:
        return bool(self._slots.get(SlotKey(class_id, period)))

    def teachers_in_period(self, period: int) -> Dict[str, str]:
        """teacher_id -> class_id for every assignment in `period`."""
        out: Dict[str, str] = {}
        for slot, items in self._slots.items():
            if slot.period != period:
                continue
            for entry in items:
                out.setdefault(entry.teacher_id, slot.class_id)
        return out

    def class_of_teacher(self, teacher_id: str, period: int) -> Optional[str]:
        return self.teachers_in_period(period).get(teacher_id)

    def cover_count(self, teacher_id: str) -> int:
        return sum(
            1 for items in self._slots.values() for entry in items if entry.teacher_id == teacher_id
        )

    def cover_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for items in self._slots.values():
            for entry in items:
                counts[entry.teacher_id] = counts.get(entry.teacher_id, 0) + 1
        return counts

    def __len__(self) -> int:
        return sum(len(items) for items in self._slots.values())

    # ---------- Mutations ----------

    def assign(self, class_id: str, period: int, teacher_id: str, reason: str = "") -> AssignmentEntry:
        slot = SlotKey(class_id, period)
        current = self._slots.get(slot, [])

        if any(e.teacher_id == teacher_id for e in current):
            raise DuplicateAssignmentError(teacher_id, class_id, period)

        elsewhere = self.class_of_teacher(teacher_id, period)
        if elsewhere is not None and elsewhere != class_id:
            raise ConflictError(
                teacher_id,
                period,
                f"Teacher '{teacher_id}' is already covering class '{elsewhere}' in period {period}",
            )

        entry = AssignmentEntry(teacher_id=teacher_id, reason=reason)
        self._slots.setdefault(slot, []).append(entry)
        return entry

    def unassign(self, class_id: str, period: int, teacher_id: str) -> bool:
        slot = SlotKey(class_id, period)
        current = self._slots.get(slot)
        if not current:
            return False

        kept = [e for e in current if e.teacher_id != teacher_id]
        if len(kept) == len(current):
            return False
        if kept:
            self._slots[slot] = kept
        else:
            del self._slots[slot]
        return True

    def apply_batch(self, proposals: Iterable[ProposedAssignment]) -> BatchApplyResult:
        """Duplicates are skipped silently, cross-class conflicts are reported."""
        applied: List[ProposedAssignment] = []
        skipped: List[ProposedAssignment] = []
        conflicts: List[Tuple[ProposedAssignment, str]] = []

        for p in proposals:
            try:
                self.assign(p.class_id, p.period, p.teacher_id, p.reason)
            except DuplicateAssignmentError:
                skipped.append(p)
            except ConflictError as exc:
                logger.warning("Batch proposal rejected: %s", exc)
                conflicts.append((p, str(exc)))
            else:
                applied.append(p)

        return BatchApplyResult(applied=tuple(applied), skipped=tuple(skipped), conflicts=tuple(conflicts))

    def copy(self) -> "AssignmentBoard":
        clone = AssignmentBoard()
        clone._slots = {slot: list(items) for slot, items in self._slots.items()}
        return clone
