# domain/distribution/trip.py
# Field trips: who should accompany the outgoing classes.

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, List, Sequence, Tuple

from substitute_planner.domain.core.schema import Employee, ProposedAssignment
from substitute_planner.domain.core.timetable import SchoolDay

TRIP_COMPANION_REASON = "trip companion"


@dataclass(frozen=True)
class CompanionCandidate:
    employee: Employee
    lesson_count: int  # lessons with the outgoing classes today
    main_class_id: str

    @property
    def id(self) -> str:
        return self.employee.id


def rank_companions(day: SchoolDay, trip_class_ids: Sequence[str]) -> Tuple[CompanionCandidate, ...]:
    """
    Teachers with lessons in the outgoing classes today, most lessons first.
    The classes' own home-room teachers go out anyway and are left out.
    """
    trip_ids = set(trip_class_ids)
    employees = day.index_employees()
    per_class: Dict[str, Dict[str, int]] = {}

    for cid in trip_class_ids:
        for lesson in day.lessons_of_class(cid):
            counts = per_class.setdefault(lesson.teacher_id, {})
            counts[cid] = counts.get(cid, 0) + 1

    out: List[CompanionCandidate] = []
    for tid, counts in per_class.items():
        emp = employees.get(tid)
        if emp is None or (emp.home_room_class_id is not None and emp.home_room_class_id in trip_ids):
            continue
        # ties on the class count go to the class listed first
        main = max(trip_class_ids, key=lambda cid: counts.get(cid, 0))
        out.append(CompanionCandidate(employee=emp, lesson_count=sum(counts.values()), main_class_id=main))

    out.sort(key=lambda c: -c.lesson_count)
    return tuple(out)


def trip_participants(day: SchoolDay, trip_class_ids: Sequence[str], companion_ids: AbstractSet[str]) -> frozenset:
    """Home-room teachers of the outgoing classes plus the confirmed companions."""
    trip_ids = set(trip_class_ids)
    home_room = {e.id for e in day.employees if e.home_room_class_id in trip_ids}
    return frozenset(home_room | set(companion_ids))


def companion_assignments(
    companions: Sequence[CompanionCandidate],
    confirmed_ids: AbstractSet[str],
    periods: Sequence[int],
) -> Tuple[ProposedAssignment, ...]:
    out: List[ProposedAssignment] = []
    for c in companions:
        if c.id not in confirmed_ids:
            continue
        for p in sorted(set(periods)):
            out.append(ProposedAssignment(c.main_class_id, p, c.id, TRIP_COMPANION_REASON))
    return tuple(out)
