# domain/core/timetable.py
# Read-only day snapshot: roster + classes + indexed lessons.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from substitute_planner.domain.core.schema import ClassItem, Day, Employee, Lesson, LessonType


def normalize_day(day: Day) -> str:
    return str(day).strip().casefold()


def _index_slot(index: Dict[Tuple[str, str, int], Lesson], key: Tuple[str, str, int], lesson: Lesson) -> None:
    current = index.get(key)
    if current is None or (current.type != LessonType.ACTUAL and lesson.type == LessonType.ACTUAL):
        index[key] = lesson


class Timetable:
    """Lessons indexed by (teacher, day, period) and (class, day, period)."""

    def __init__(self, lessons: Iterable[Lesson]) -> None:
        self._lessons: Tuple[Lesson, ...] = tuple(lessons)
        self._by_teacher_slot: Dict[Tuple[str, str, int], Lesson] = {}
        self._by_class_slot: Dict[Tuple[str, str, int], Lesson] = {}
        self._by_teacher_day: Dict[Tuple[str, str], List[Lesson]] = {}
        self._by_class_day: Dict[Tuple[str, str], List[Lesson]] = {}

        for lesson in self._lessons:
            day = normalize_day(lesson.day)
            # on collisions an actual lesson beats stay/individual rows, otherwise the first wins
            _index_slot(self._by_teacher_slot, (lesson.teacher_id, day, lesson.period), lesson)
            _index_slot(self._by_class_slot, (lesson.class_id, day, lesson.period), lesson)
            self._by_teacher_day.setdefault((lesson.teacher_id, day), []).append(lesson)
            self._by_class_day.setdefault((lesson.class_id, day), []).append(lesson)

    @property
    def lessons(self) -> Tuple[Lesson, ...]:
        return self._lessons

    def lesson_for_teacher(self, teacher_id: str, day: Day, period: int) -> Optional[Lesson]:
        return self._by_teacher_slot.get((teacher_id, normalize_day(day), period))

    def lesson_for_class(self, class_id: str, day: Day, period: int) -> Optional[Lesson]:
        return self._by_class_slot.get((class_id, normalize_day(day), period))

    def lessons_of_teacher(self, teacher_id: str, day: Day) -> Tuple[Lesson, ...]:
        return tuple(self._by_teacher_day.get((teacher_id, normalize_day(day)), ()))

    def lessons_of_class(self, class_id: str, day: Day) -> Tuple[Lesson, ...]:
        return tuple(self._by_class_day.get((class_id, normalize_day(day)), ()))

    def lessons_on(self, day: Day) -> Tuple[Lesson, ...]:
        norm = normalize_day(day)
        return tuple(l for l in self._lessons if normalize_day(l.day) == norm)


@dataclass(frozen=True)
class SchoolDay:
    """Everything a distribution pass reads for one working date."""
    date: date
    day: Day
    employees: Tuple[Employee, ...]
    classes: Tuple[ClassItem, ...]
    timetable: Timetable = field(compare=False)
    periods_per_day: int = 7

    def index_employees(self) -> Dict[str, Employee]:
        return {e.id: e for e in self.employees}

    def index_classes(self) -> Dict[str, ClassItem]:
        return {c.id: c for c in self.classes}

    def home_room_teacher(self, class_id: str) -> Optional[Employee]:
        for e in self.employees:
            if e.is_home_room_of(class_id):
                return e
        return None

    def lesson_for_teacher(self, teacher_id: str, period: int) -> Optional[Lesson]:
        return self.timetable.lesson_for_teacher(teacher_id, self.day, period)

    def lesson_for_class(self, class_id: str, period: int) -> Optional[Lesson]:
        return self.timetable.lesson_for_class(class_id, self.day, period)

    def lessons_of_teacher(self, teacher_id: str) -> Tuple[Lesson, ...]:
        return self.timetable.lessons_of_teacher(teacher_id, self.day)

    def lessons_of_class(self, class_id: str) -> Tuple[Lesson, ...]:
        return self.timetable.lessons_of_class(class_id, self.day)

    def working_periods(self, teacher_id: str) -> List[int]:
        """Periods the teacher is scheduled in school today, sorted."""
        return sorted({l.period for l in self.lessons_of_teacher(teacher_id)})

    def teaching_load(self, teacher_id: str) -> int:
        return sum(1 for l in self.lessons_of_teacher(teacher_id) if l.type != LessonType.DUTY)

    def grades_taught(self, teacher_id: str) -> Set[int]:
        classes = self.index_classes()
        return {
            classes[l.class_id].grade_level
            for l in self.lessons_of_teacher(teacher_id)
            if l.class_id in classes
        }
