# domain/distribution/legacy.py
# Fixed ranking used when a mode has no linked rule set.

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, List, Optional

from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.core.schema import LessonType
from substitute_planner.domain.core.timetable import SchoolDay

SUPPORT_ROLES = frozenset({"support", "counselor", "librarian", "lab_tech"})

PRIORITY_HOME_ROOM = 1
PRIORITY_ORIGINAL = 2
PRIORITY_FREE = 3
PRIORITY_INDIVIDUAL = 4


@dataclass(frozen=True)
class LegacyChoice:
    teacher_id: str
    priority: int
    reason: str


def legacy_ranking(
    day: SchoolDay,
    class_id: str,
    period: int,
    board: AssignmentBoard,
    *,
    excluded_ids: AbstractSet[str] = frozenset(),
) -> List[LegacyChoice]:
    """
    Home-room teacher > original teacher > free > individual period.
    Externals, support roles, stay periods and teachers already placed
    in this period never qualify.
    """
    home_room = day.home_room_teacher(class_id)
    slot_lesson = day.lesson_for_class(class_id, period)
    original_id = slot_lesson.teacher_id if slot_lesson is not None else None
    busy = board.teachers_in_period(period)

    ranked: List[LegacyChoice] = []
    for emp in day.employees:
        if emp.is_external or emp.base_role in SUPPORT_ROLES or emp.id in excluded_ids:
            continue
        if emp.id in busy:
            continue

        lesson = day.lesson_for_teacher(emp.id, period)
        lesson_type = lesson.type if lesson is not None else None
        if lesson_type == LessonType.STAY:
            continue

        if home_room is not None and emp.id == home_room.id:
            kind = "individual" if lesson_type == LessonType.INDIVIDUAL else ("teaching" if lesson else "free")
            ranked.append(LegacyChoice(emp.id, PRIORITY_HOME_ROOM, f"home-room teacher ({kind})"))
        elif emp.id == original_id:
            kind = "individual" if lesson_type == LessonType.INDIVIDUAL else "teaching"
            ranked.append(LegacyChoice(emp.id, PRIORITY_ORIGINAL, f"original teacher ({kind})"))
        elif lesson is None:
            ranked.append(LegacyChoice(emp.id, PRIORITY_FREE, "available - free"))
        elif lesson_type == LessonType.INDIVIDUAL:
            ranked.append(LegacyChoice(emp.id, PRIORITY_INDIVIDUAL, "individual period"))

    ranked.sort(key=lambda c: c.priority)
    return ranked


def legacy_pick(
    day: SchoolDay,
    class_id: str,
    period: int,
    board: AssignmentBoard,
    *,
    excluded_ids: AbstractSet[str] = frozenset(),
) -> Optional[LegacyChoice]:
    ranked = legacy_ranking(day, class_id, period, board, excluded_ids=excluded_ids)
    if ranked:
        return ranked[0]

    home_room = day.home_room_teacher(class_id)
    slot_lesson = day.lesson_for_class(class_id, period)
    if home_room is None or slot_lesson is None:
        return None

    original_id = slot_lesson.teacher_id
    if original_id in excluded_ids or board.class_of_teacher(original_id, period) is not None:
        return None

    hr_lesson = day.lesson_for_teacher(home_room.id, period)
    if hr_lesson is not None and hr_lesson.type == LessonType.STAY:
        return LegacyChoice(original_id, PRIORITY_ORIGINAL, "home-room teacher on stay - no swap")
    return None
