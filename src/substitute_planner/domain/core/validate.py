# domain/core/validate.py
# Checks run before a session is opened or a mode is used, so that a
# distribution pass never has to guess around broken reference data.

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Set, Tuple

from substitute_planner.domain.core.schema import LessonType, ModeConfig, TargetScope
from substitute_planner.domain.core.timetable import SchoolDay, normalize_day


# ------------------ Public API ------------------

class ValidationError(ValueError):
    """Validation error carrying several messages."""
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("\n".join(errors))


@dataclass(frozen=True)
class ValidationReport:
    ok: bool
    errors: List[str]
    warnings: List[str]


def validate_school_day(day: SchoolDay, *, raise_on_error: bool = True) -> ValidationReport:
    """
    Validates the day snapshot.
    - raise_on_error=True and errors present -> raises ValidationError.
    - otherwise returns a ValidationReport with errors and warnings.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if day.periods_per_day <= 0:
        errors.append(f"periods_per_day must be > 0 (got {day.periods_per_day}).")

    _validate_uniqueness(day, errors)
    _validate_employees(day, errors, warnings)
    _validate_lessons(day, errors, warnings)

    return _finish(errors, warnings, raise_on_error)


def validate_mode(mode: ModeConfig, *, raise_on_error: bool = True) -> ValidationReport:
    errors: List[str] = []
    warnings: List[str] = []

    if not mode.id.strip() or not mode.name.strip():
        errors.append("Mode identity missing (id and name are required).")

    orders = sorted(step.order for step in mode.priority_ladder)
    if orders and orders != list(range(1, len(orders) + 1)):
        errors.append(f"Mode '{mode.id}': priority step orders must be 1..{len(orders)} (got {orders}).")

    step_ids = [step.id for step in mode.priority_ladder]
    step_dupes = _dupes(step_ids)
    if step_dupes:
        errors.append(f"Mode '{mode.id}': duplicated priority step ids {sorted(step_dupes)}.")

    for step in mode.priority_ladder:
        if step.weight_percentage < 0:
            errors.append(f"Mode '{mode.id}': step '{step.id}' has a negative weight ({step.weight_percentage}).")

    rule_ids = [rule.id for rule in mode.golden_rules]
    rule_dupes = _dupes(rule_ids)
    if rule_dupes:
        errors.append(f"Mode '{mode.id}': duplicated golden rule ids {sorted(rule_dupes)}.")

    for rule in mode.golden_rules:
        if not 0 <= rule.compliance_percentage <= 100:
            errors.append(
                f"Mode '{mode.id}': rule '{rule.id}' compliance must be within 0..100 "
                f"(got {rule.compliance_percentage})."
            )

    for rule_id, value in mode.enforcement_profile.items():
        if not 0 <= value <= 100:
            errors.append(f"Mode '{mode.id}': enforcement override for '{rule_id}' out of 0..100 ({value}).")

    if mode.target == TargetScope.SPECIFIC_CLASSES and not mode.affected_class_ids:
        warnings.append(f"Mode '{mode.id}' targets specific classes but lists none.")
    if mode.target == TargetScope.SPECIFIC_GRADES and not mode.affected_grade_levels:
        warnings.append(f"Mode '{mode.id}' targets specific grades but lists none.")

    if mode.linked_event_type is not None and not mode.priority_ladder:
        warnings.append(f"Mode '{mode.id}' is linked to an event type but has an empty priority ladder.")

    return _finish(errors, warnings, raise_on_error)


# ------------------ Helpers ------------------

def _finish(errors: List[str], warnings: List[str], raise_on_error: bool) -> ValidationReport:
    report = ValidationReport(ok=(len(errors) == 0), errors=errors, warnings=warnings)
    if raise_on_error and errors:
        raise ValidationError(errors)
    return report


def _dupes(ids: List[str]) -> Set[str]:
    seen: Set[str] = set()
    d: Set[str] = set()
    for x in ids:
        if x in seen:
            d.add(x)
        seen.add(x)
    return d


def _validate_uniqueness(day: SchoolDay, errors: List[str]) -> None:
    e_dupes = _dupes([e.id for e in day.employees])
    c_dupes = _dupes([c.id for c in day.classes])

    if e_dupes:
        errors.append(f"Duplicated employee ids: {sorted(e_dupes)}")
    if c_dupes:
        errors.append(f"Duplicated class ids: {sorted(c_dupes)}")


def _validate_employees(day: SchoolDay, errors: List[str], warnings: List[str]) -> None:
    classes = day.index_classes()
    home_rooms: Dict[str, str] = {}

    for e in day.employees:
        if not e.id.strip():
            errors.append("An Employee has an empty id.")
        if e.home_room_class_id is None:
            continue
        if e.home_room_class_id not in classes:
            errors.append(
                f"Employee '{e.id}' is home-room teacher of unknown class '{e.home_room_class_id}'."
            )
        elif e.home_room_class_id in home_rooms:
            warnings.append(
                f"Class '{e.home_room_class_id}' has several home-room teachers "
                f"('{home_rooms[e.home_room_class_id]}', '{e.id}'); the first one is used."
            )
        else:
            home_rooms[e.home_room_class_id] = e.id


def _validate_lessons(day: SchoolDay, errors: List[str], warnings: List[str]) -> None:
    employees = day.index_employees()
    classes = day.index_classes()
    actual_slots: Set[Tuple[str, str, int]] = set()

    for lesson in day.timetable.lessons:
        where = f"Lesson ({lesson.day}, period {lesson.period}, class {lesson.class_id})"
        if lesson.teacher_id not in employees:
            errors.append(f"{where} references unknown teacher '{lesson.teacher_id}'.")
        if lesson.class_id not in classes:
            warnings.append(f"{where} references unknown class '{lesson.class_id}'.")
        if lesson.period < 1 or lesson.period > day.periods_per_day:
            errors.append(f"{where}: period outside 1..{day.periods_per_day}.")

        if lesson.type == LessonType.ACTUAL:
            key = (lesson.teacher_id, normalize_day(lesson.day), lesson.period)
            if key in actual_slots:
                errors.append(
                    f"Teacher '{lesson.teacher_id}' has two actual lessons on {lesson.day} period {lesson.period}."
                )
            actual_slots.add(key)
