# domain/distribution/fair.py
# Rainy-day merge: spread the periods of merged sections evenly over the
# teachers who teach those sections today, never across a conflict.

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.core.schema import ClassItem, ClassType, ProposedAssignment, SlotKey
from substitute_planner.domain.core.timetable import SchoolDay

logger = logging.getLogger(__name__)


@dataclass
class TeacherLoad:
    teacher_id: str
    total_lessons: int
    lessons_in_merged: int
    first_period: int
    last_period: int
    conflict_periods: Set[int]
    multi_grade: bool
    assigned: int = 0

    def within_hours(self, period: int) -> bool:
        return self.first_period <= period <= self.last_period


@dataclass(frozen=True)
class FairDistributionResult:
    assignments: Tuple[ProposedAssignment, ...] = ()
    uncovered: Tuple[SlotKey, ...] = ()
    warnings: Tuple[str, ...] = ()
    loads: Dict[str, int] = field(default_factory=dict)


def group_classes(classes: Iterable[ClassItem]) -> Dict[Tuple[int, ClassType], List[ClassItem]]:
    groups: Dict[Tuple[int, ClassType], List[ClassItem]] = {}
    for c in classes:
        groups.setdefault(c.group_key, []).append(c)
    return groups


def fair_distribute(
    day: SchoolDay,
    class_ids: Sequence[str],
    merged_class_ids: AbstractSet[str],
    periods: Sequence[int],
    *,
    board: Optional[AssignmentBoard] = None,
    excluded_ids: AbstractSet[str] = frozenset(),
    max_merged_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> FairDistributionResult:
    """
    Groups the target classes by (grade, type). Groups with fewer than two
    merged sections keep their regular teachers; the others are covered by a
    greedy, period-major pass with a soft per-teacher cap.
    """
    index = day.index_classes()
    targets = [index[cid] for cid in class_ids if cid in index]
    board = board.copy() if board is not None else AssignmentBoard()
    periods = sorted(set(periods))

    assignments: List[ProposedAssignment] = []
    uncovered: List[SlotKey] = []
    warnings: List[str] = []
    loads: Dict[str, int] = {}

    for key, group in group_classes(targets).items():
        merged = [c for c in group if c.id in merged_class_ids]
        if max_merged_count is not None and len(merged) > max_merged_count:
            warnings.append(
                f"Grade {key[0]} ({key[1].value}): {len(merged)} sections selected, "
                f"only the first {max_merged_count} are merged."
            )
            merged = merged[:max_merged_count]

        if len(merged) < 2:
            assignments.extend(_keep_regular(day, group, periods, board, excluded_ids))
            continue

        out = _distribute_group(day, merged, periods, board, excluded_ids, rng)
        assignments.extend(out.assignments)
        uncovered.extend(out.uncovered)
        warnings.extend(out.warnings)
        for tid, n in out.loads.items():
            loads[tid] = loads.get(tid, 0) + n

    if uncovered:
        logger.warning("Fair distribution left %d slot(s) uncovered", len(uncovered))

    return FairDistributionResult(
        assignments=tuple(assignments),
        uncovered=tuple(uncovered),
        warnings=tuple(warnings),
        loads=loads,
    )


# ---------- Helpers ----------

def _keep_regular(
    day: SchoolDay,
    group: List[ClassItem],
    periods: Sequence[int],
    board: AssignmentBoard,
    excluded_ids: AbstractSet[str],
) -> List[ProposedAssignment]:
    out: List[ProposedAssignment] = []
    for c in group:
        for p in periods:
            if board.is_resolved(c.id, p):
                continue
            lesson = day.lesson_for_class(c.id, p)
            if lesson is None or lesson.teacher_id in excluded_ids:
                continue
            if board.class_of_teacher(lesson.teacher_id, p) is not None:
                continue

            grades = day.grades_taught(lesson.teacher_id)
            reason = "regular teacher"
            if len(grades) > 1:
                reason += f" (teaches {len(grades)} grades)"
            board.assign(c.id, p, lesson.teacher_id, reason)
            out.append(ProposedAssignment(c.id, p, lesson.teacher_id, reason))
    return out


def _teacher_loads(
    day: SchoolDay,
    merged: List[ClassItem],
    excluded_ids: AbstractSet[str],
) -> List[TeacherLoad]:
    merged_ids = {c.id for c in merged}
    employees = day.index_employees()
    loads: Dict[str, TeacherLoad] = {}

    for c in merged:
        for lesson in day.lessons_of_class(c.id):
            tid = lesson.teacher_id
            if tid in loads or tid in excluded_ids:
                continue
            emp = employees.get(tid)
            if emp is None or emp.is_external:
                continue

            own = day.lessons_of_teacher(tid)
            periods = [l.period for l in own]
            loads[tid] = TeacherLoad(
                teacher_id=tid,
                total_lessons=len(own),
                lessons_in_merged=sum(1 for l in own if l.class_id in merged_ids),
                first_period=min(periods),
                last_period=max(periods),
                conflict_periods={l.period for l in own if l.class_id not in merged_ids},
                multi_grade=len(day.grades_taught(tid)) > 1,
            )

    return list(loads.values())


def _distribute_group(
    day: SchoolDay,
    merged: List[ClassItem],
    periods: Sequence[int],
    board: AssignmentBoard,
    excluded_ids: AbstractSet[str],
    rng: Optional[random.Random],
) -> FairDistributionResult:
    teachers = _teacher_loads(day, merged, excluded_ids)
    if rng is not None:
        rng.shuffle(teachers)

    label = f"Grade {merged[0].grade_level}"
    if not teachers:
        slots = tuple(SlotKey(c.id, p) for p in periods for c in merged if not board.is_resolved(c.id, p))
        return FairDistributionResult(
            uncovered=slots,
            warnings=(f"{label}: no internal teacher teaches the merged sections today.",),
        )

    cap = math.ceil(len(merged) * len(periods) / len(teachers))
    n = len(merged)
    assignments: List[ProposedAssignment] = []
    uncovered: List[SlotKey] = []
    warnings: List[str] = []

    for p in periods:
        for c in merged:
            if board.is_resolved(c.id, p):
                continue
            busy = board.teachers_in_period(p)

            def _hard_ok(t: TeacherLoad) -> bool:
                return p not in t.conflict_periods and t.teacher_id not in busy and t.within_hours(p)

            eligible = [
                t for t in teachers
                if _hard_ok(t) and t.assigned < t.lessons_in_merged and t.assigned < cap
            ]
            if not eligible:
                eligible = [t for t in teachers if _hard_ok(t) and t.assigned < t.lessons_in_merged + 1]
            if not eligible:
                uncovered.append(SlotKey(c.id, p))
                warnings.append(f"{c.name} - period {p}: no teacher available (conflict or outside working hours)")
                continue

            chosen = min(eligible, key=lambda t: t.assigned)
            chosen.assigned += 1
            reason = f"merge of {n} sections - fair distribution ({chosen.assigned}/{chosen.lessons_in_merged})"
            if chosen.multi_grade:
                reason += " [teaches several grades]"
            board.assign(c.id, p, chosen.teacher_id, reason)
            assignments.append(ProposedAssignment(c.id, p, chosen.teacher_id, reason))

    return FairDistributionResult(
        assignments=tuple(assignments),
        uncovered=tuple(uncovered),
        warnings=tuple(warnings),
        loads={t.teacher_id: t.assigned for t in teachers},
    )
