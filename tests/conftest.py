from __future__ import annotations

from datetime import date
from typing import Iterable

import pytest

from substitute_planner.domain.core.schema import ClassItem, ClassType, Employee, Lesson, LessonType
from substitute_planner.domain.core.timetable import SchoolDay, Timetable
from substitute_planner.infra.repositories.absence_repository import InMemoryAbsenceRepository
from substitute_planner.infra.repositories.substitution_repository import InMemorySubstitutionRecordRepository
from substitute_planner.services.planner_service import PlannerService
from substitute_planner.settings import Settings

WORK_DATE = date(2024, 9, 1)  # a Sunday
WORK_DAY = "sunday"


def teacher(teacher_id: str, **kwargs) -> Employee:
    return Employee(id=teacher_id, name=kwargs.pop("name", teacher_id.upper()), **kwargs)


def section(class_id: str, grade: int, class_type: ClassType = ClassType.GENERAL) -> ClassItem:
    return ClassItem(id=class_id, name=class_id, grade_level=grade, type=class_type)


def lesson(
    teacher_id: str,
    class_id: str,
    period: int,
    subject: str = "",
    lesson_type: LessonType = LessonType.ACTUAL,
) -> Lesson:
    return Lesson(day=WORK_DAY, period=period, teacher_id=teacher_id, class_id=class_id, subject=subject, type=lesson_type)


def build_day(
    employees: Iterable[Employee],
    classes: Iterable[ClassItem],
    lessons: Iterable[Lesson],
    periods_per_day: int = 7,
) -> SchoolDay:
    return SchoolDay(
        date=WORK_DATE,
        day=WORK_DAY,
        employees=tuple(employees),
        classes=tuple(classes),
        timetable=Timetable(lessons),
        periods_per_day=periods_per_day,
    )


def day_payload() -> dict:
    """Small school as the HTTP layer receives it: 5A is short of t_math in periods 1 and 2."""
    return {
        "date": WORK_DATE.isoformat(),
        "employees": [
            {"id": "t_hr", "name": "Hana", "home_room_class_id": "5A", "subjects": ["English"]},
            {"id": "t_math", "name": "Omar", "subjects": ["Math"]},
            {"id": "t_free", "name": "Lina", "subjects": ["Science"]},
            {"id": "t_stay", "name": "Sami", "subjects": ["Art"]},
            {"id": "ext", "name": "Rami", "is_external": True},
        ],
        "classes": [
            {"id": "5A", "name": "5A", "grade_level": 5},
            {"id": "6A", "name": "6A", "grade_level": 6},
        ],
        "lessons": [
            {"day": WORK_DAY, "period": 1, "teacher_id": "t_math", "class_id": "5A", "subject": "Math"},
            {"day": WORK_DAY, "period": 2, "teacher_id": "t_math", "class_id": "5A", "subject": "Math"},
            {"day": WORK_DAY, "period": 1, "teacher_id": "t_hr", "class_id": "6A", "subject": "English"},
            {"day": WORK_DAY, "period": 3, "teacher_id": "t_hr", "class_id": "5A", "subject": "English"},
            {"day": WORK_DAY, "period": 2, "teacher_id": "t_free", "class_id": "6A", "subject": "Science"},
            {"day": WORK_DAY, "period": 1, "teacher_id": "t_stay", "class_id": "6A", "type": "makooth"},
        ],
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_name="substitute-planner-test",
        app_version="0.0.0",
        debug=False,
        db_backend="memory",
        database_url=None,
    )


@pytest.fixture
def planner_service(settings: Settings) -> PlannerService:
    records = InMemorySubstitutionRecordRepository()
    absences = InMemoryAbsenceRepository()
    return PlannerService(repositories=lambda: (records, absences), settings=settings)
