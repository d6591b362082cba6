# domain/candidates/discovery.py
# Who could stand in front of (class, period), and in what state they are.

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterator, List, Optional, Set, Tuple

from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.core.schema import Employee, Lesson, LessonType, SlotState
from substitute_planner.domain.core.timetable import SchoolDay


# ---------- Priorities (lower = better) ----------

PRIORITY_RELEASED_BY_TRIP = 0
PRIORITY_RELEASED = 1
PRIORITY_HOME_ROOM = 2
PRIORITY_INDIVIDUAL = 10
PRIORITY_STAY = 15
PRIORITY_FREE = 20
PRIORITY_ACTUAL = 50
PRIORITY_ASSIGNED_ELSEWHERE = 999

_STATE_PRIORITY: Dict[SlotState, int] = {
    SlotState.RELEASED_BY_TRIP: PRIORITY_RELEASED_BY_TRIP,
    SlotState.RELEASED: PRIORITY_RELEASED,
    SlotState.INDIVIDUAL: PRIORITY_INDIVIDUAL,
    SlotState.STAY: PRIORITY_STAY,
    SlotState.FREE: PRIORITY_FREE,
    SlotState.ACTUAL: PRIORITY_ACTUAL,
    SlotState.ASSIGNED_ELSEWHERE: PRIORITY_ASSIGNED_ELSEWHERE,
}

_LESSON_STATE: Dict[LessonType, SlotState] = {
    LessonType.STAY: SlotState.STAY,
    LessonType.INDIVIDUAL: SlotState.INDIVIDUAL,
    LessonType.ACTUAL: SlotState.ACTUAL,
    LessonType.DUTY: SlotState.ACTUAL,
}


# ---------- Output ----------

@dataclass(frozen=True)
class Candidate:
    employee: Employee
    state: SlotState
    priority: int
    label: str
    lesson: Optional[Lesson] = None
    is_home_room: bool = False
    is_pool: bool = False
    assigned_elsewhere_class: Optional[str] = None
    in_slot: bool = False

    @property
    def id(self) -> str:
        return self.employee.id


@dataclass(frozen=True)
class SlotCandidates:
    pool: Tuple[Candidate, ...] = ()
    home_room: Tuple[Candidate, ...] = ()
    general: Tuple[Candidate, ...] = ()

    def __iter__(self) -> Iterator[Candidate]:
        yield from self.pool
        yield from self.home_room
        yield from self.general

    def __len__(self) -> int:
        return len(self.pool) + len(self.home_room) + len(self.general)

    def find(self, teacher_id: str) -> Optional[Candidate]:
        for c in self:
            if c.id == teacher_id:
                return c
        return None


# ---------- Discovery ----------

def released_by_swap(day: SchoolDay, board: AssignmentBoard, period: int) -> Set[str]:
    """
    Original teachers freed because a home-room teacher took over their own
    class in `period`.
    """
    released: Set[str] = set()
    employees = day.index_employees()
    for teacher_id, class_id in board.teachers_in_period(period).items():
        emp = employees.get(teacher_id)
        if emp is None or not emp.is_home_room_of(class_id):
            continue
        lesson = day.lesson_for_class(class_id, period)
        if lesson is not None and lesson.teacher_id != teacher_id:
            released.add(lesson.teacher_id)
    return released


def discover_candidates(
    day: SchoolDay,
    class_id: str,
    period: int,
    board: AssignmentBoard,
    *,
    excluded_ids: AbstractSet[str] = frozenset(),
    pool_ids: AbstractSet[str] = frozenset(),
    excused_class_ids: AbstractSet[str] = frozenset(),
) -> SlotCandidates:
    """
    Classifies every employee for the target slot and splits them into
    pool / home-room / general lists, each sorted by priority (stable on
    roster order).
    """
    busy = board.teachers_in_period(period)
    in_slot = {e.teacher_id for e in board.entries(class_id, period)}
    swapped = released_by_swap(day, board, period)
    classes = day.index_classes()

    pool: List[Candidate] = []
    home_room: List[Candidate] = []
    general: List[Candidate] = []

    for emp in day.employees:
        if emp.id in excluded_ids:
            continue

        lesson = day.lesson_for_teacher(emp.id, period)
        state, label = _classify(emp, lesson, class_id, swapped, excused_class_ids, classes)

        is_home_room = emp.is_home_room_of(class_id)
        elsewhere = busy.get(emp.id)
        if elsewhere is not None and elsewhere == class_id:
            elsewhere = None
        if elsewhere is not None:
            if not is_home_room:
                continue
            state = SlotState.ASSIGNED_ELSEWHERE
            label = f"assigned in {_class_name(classes, elsewhere)}"

        priority = _STATE_PRIORITY[state]
        if is_home_room and priority > PRIORITY_HOME_ROOM and state != SlotState.ASSIGNED_ELSEWHERE:
            priority = PRIORITY_HOME_ROOM
        if is_home_room:
            label = f"home-room teacher, {label}"

        is_pool = emp.id in pool_ids
        candidate = Candidate(
            employee=emp,
            state=state,
            priority=priority,
            label=label,
            lesson=lesson,
            is_home_room=is_home_room,
            is_pool=is_pool,
            assigned_elsewhere_class=elsewhere,
            in_slot=emp.id in in_slot,
        )

        if is_home_room:
            home_room.append(candidate)
        elif is_pool and state != SlotState.ACTUAL:
            pool.append(candidate)
        else:
            general.append(candidate)

    return SlotCandidates(
        pool=_by_priority(pool),
        home_room=_by_priority(home_room),
        general=_by_priority(general),
    )


# ---------- Helpers ----------

def _classify(
    emp: Employee,
    lesson: Optional[Lesson],
    target_class_id: str,
    swapped: Set[str],
    excused_class_ids: AbstractSet[str],
    classes: Dict,
) -> Tuple[SlotState, str]:
    if lesson is not None and lesson.class_id in excused_class_ids:
        return SlotState.RELEASED_BY_TRIP, f"released ({_class_name(classes, lesson.class_id)} is away)"
    if emp.id in swapped:
        return SlotState.RELEASED, "released by swap"
    if lesson is not None and lesson.class_id == target_class_id:
        return SlotState.RELEASED, "regular teacher of this class"
    if lesson is None:
        return SlotState.FREE, "free"

    state = _LESSON_STATE[lesson.type]
    if state == SlotState.STAY:
        return state, "stay period"
    if state == SlotState.INDIVIDUAL:
        return state, "individual period"
    if lesson.type == LessonType.DUTY:
        return state, "on duty"
    return state, f"teaching {_class_name(classes, lesson.class_id)}"


def _class_name(classes: Dict, class_id: str) -> str:
    item = classes.get(class_id)
    return item.name if item is not None else class_id


def _by_priority(items: List[Candidate]) -> Tuple[Candidate, ...]:
    return tuple(sorted(items, key=lambda c: c.priority))
