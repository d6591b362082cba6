# domain/core/io.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, Optional, Tuple

from substitute_planner.domain.core.schema import (
    AbsenceRecord,
    ClassItem,
    ClassSettings,
    ClassType,
    Employee,
    EnforcementLevel,
    FairnessSensitivity,
    GoldenRule,
    HRSettings,
    Lesson,
    LessonSettings,
    LessonType,
    ModeConfig,
    ModeKind,
    ModeSettings,
    PriorityCriteria,
    PriorityStep,
    Relationship,
    RuleAction,
    SlotState,
    SubjectSettings,
    SubstitutionRecord,
    TargetScope,
    TeacherSettings,
    TeacherType,
    TimeSettings,
    UISettings,
)
from substitute_planner.domain.core.timetable import SchoolDay, Timetable


def _opt_int(v: Any) -> Optional[int]:
    return int(v) if v is not None else None


def _str_tuple(xs: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    if not xs:
        return tuple()
    return tuple(str(x) for x in xs)


def _int_tuple(xs: Optional[Iterable[Any]]) -> Tuple[int, ...]:
    if not xs:
        return tuple()
    return tuple(int(x) for x in xs)


def _lesson_type(v: Any) -> LessonType:
    # timetables exported from the school office still say "makooth" for stay periods
    raw = str(v).strip().lower()
    if raw == "makooth":
        return LessonType.STAY
    return LessonType(raw)


def _weekday_name(d: date) -> str:
    return d.strftime("%A").lower()


# ---------- Day snapshot ----------

def employee_from_dict(d: Dict[str, Any]) -> Employee:
    return Employee(
        id=str(d["id"]),
        name=str(d.get("name", d["id"])),
        base_role=str(d.get("base_role", "teacher")),
        subjects=_str_tuple(d.get("subjects")),
        home_room_class_id=(str(d["home_room_class_id"]) if d.get("home_room_class_id") is not None else None),
        is_external=bool(d.get("is_external", False)),
        is_part_time=bool(d.get("is_part_time", False)),
        cannot_cover_alone=bool(d.get("cannot_cover_alone", False)),
    )


def lesson_from_dict(d: Dict[str, Any]) -> Lesson:
    return Lesson(
        day=str(d["day"]),
        period=int(d["period"]),
        teacher_id=str(d["teacher_id"]),
        class_id=str(d["class_id"]),
        subject=str(d.get("subject", "")),
        type=_lesson_type(d.get("type", "actual")),
        id=(str(d["id"]) if d.get("id") is not None else None),
    )


def class_from_dict(d: Dict[str, Any]) -> ClassItem:
    return ClassItem(
        id=str(d["id"]),
        name=str(d.get("name", d["id"])),
        grade_level=int(d["grade_level"]),
        type=ClassType(str(d.get("type", "general"))),
    )


def school_day_from_dict(d: Dict[str, Any], *, periods_per_day: int = 7) -> SchoolDay:
    """
    Builds the day snapshot. The weekday name defaults to the one of `date`,
    which must be ISO formatted.
    """
    day_date = date.fromisoformat(str(d["date"]))
    return SchoolDay(
        date=day_date,
        day=str(d.get("day") or _weekday_name(day_date)),
        employees=tuple(employee_from_dict(e) for e in d.get("employees", [])),
        classes=tuple(class_from_dict(c) for c in d.get("classes", [])),
        timetable=Timetable(lesson_from_dict(l) for l in d.get("lessons", [])),
        periods_per_day=int(d.get("periods_per_day", periods_per_day)),
    )


# ---------- Modes ----------

def golden_rule_from_dict(d: Dict[str, Any]) -> GoldenRule:
    return GoldenRule(
        id=str(d["id"]),
        label=str(d.get("label", d["id"])),
        is_active=bool(d.get("is_active", True)),
        compliance_percentage=int(d.get("compliance_percentage", 100)),
        enforcement_level=EnforcementLevel(str(d.get("enforcement_level", "STRICT"))),
        is_global=bool(d.get("is_global", False)),
        action=RuleAction(str(d.get("action", "NONE"))),
        description=str(d.get("description", "")),
    )


def priority_step_from_dict(d: Dict[str, Any]) -> PriorityStep:
    c = d.get("criteria", {})
    criteria = PriorityCriteria(
        relationship=Relationship(str(c.get("relationship", "none"))),
        teacher_type=TeacherType(str(c.get("teacher_type", "any"))),
        slot_states=frozenset(SlotState(str(s)) for s in c.get("slot_states", [])),
    )
    return PriorityStep(
        id=str(d["id"]),
        order=int(d["order"]),
        label=str(d.get("label", d["id"])),
        weight_percentage=int(d.get("weight_percentage", 0)),
        criteria=criteria,
        enabled=bool(d.get("enabled", True)),
        explanation=str(d.get("explanation", "")),
    )


def mode_settings_from_dict(d: Optional[Dict[str, Any]]) -> ModeSettings:
    d = d or {}
    t = d.get("teacher", {})
    l = d.get("lesson", {})
    tm = d.get("time", {})
    c = d.get("class", {})
    s = d.get("subject", {})
    hr = d.get("hr", {})
    ui = d.get("ui", {})

    return ModeSettings(
        teacher=TeacherSettings(
            disable_external=bool(t.get("disable_external", False)),
            treat_no_lessons_as_off_duty=bool(t.get("treat_no_lessons_as_off_duty", False)),
            force_home_room_presence=bool(t.get("force_home_room_presence", False)),
        ),
        lesson=LessonSettings(
            disable_stay=bool(l.get("disable_stay", False)),
            disable_individual=bool(l.get("disable_individual", False)),
        ),
        time=TimeSettings(
            ignore_gaps_at_start=bool(tm.get("ignore_gaps_at_start", False)),
            ignore_gaps_at_end=bool(tm.get("ignore_gaps_at_end", False)),
            max_consecutive_periods=_opt_int(tm.get("max_consecutive_periods")),
        ),
        class_=ClassSettings(
            allow_merge=bool(c.get("allow_merge", True)),
            max_merged_count=_opt_int(c.get("max_merged_count")),
        ),
        subject=SubjectSettings(
            governing_subject=str(s.get("governing_subject", "")),
            prioritize_governing_subject=bool(s.get("prioritize_governing_subject", False)),
        ),
        hr=HRSettings(
            max_daily_coverage=_opt_int(hr.get("max_daily_coverage")),
            max_weekly_coverage=_opt_int(hr.get("max_weekly_coverage")),
            fairness_sensitivity=FairnessSensitivity(str(hr.get("fairness_sensitivity", "off"))),
        ),
        ui=UISettings(
            hide_forbidden_candidates=bool(ui.get("hide_forbidden_candidates", False)),
            require_justification=bool(ui.get("require_justification", False)),
        ),
    )


def mode_from_dict(d: Dict[str, Any]) -> ModeConfig:
    linked = d.get("linked_event_type")
    return ModeConfig(
        id=str(d["id"]),
        name=str(d.get("name", d["id"])),
        kind=ModeKind(str(d.get("kind", "NORMAL"))),
        linked_event_type=(ModeKind(str(linked)) if linked is not None else None),
        target=TargetScope(str(d.get("target", "all"))),
        affected_periods=_int_tuple(d.get("affected_periods")),
        affected_class_ids=_str_tuple(d.get("affected_class_ids")),
        affected_grade_levels=_int_tuple(d.get("affected_grade_levels")),
        golden_rules=tuple(golden_rule_from_dict(r) for r in d.get("golden_rules", [])),
        priority_ladder=tuple(priority_step_from_dict(s) for s in d.get("priority_ladder", [])),
        settings=mode_settings_from_dict(d.get("settings")),
        enforcement_profile={str(k): int(v) for k, v in d.get("enforcement_profile", {}).items()},
        exam_subject=str(d.get("exam_subject", "")),
        cumulative_ladder=bool(d.get("cumulative_ladder", False)),
    )


# ---------- Records ----------

def record_to_dict(rec: SubstitutionRecord) -> Dict[str, Any]:
    return {
        "id": rec.id,
        "date": rec.date.isoformat(),
        "period": rec.period,
        "class_id": rec.class_id,
        "absent_teacher_id": rec.absent_teacher_id,
        "substitute_id": rec.substitute_id,
        "reason": rec.reason,
        "mode_context": rec.mode_context,
        "kind": rec.kind.value,
        "created_at": rec.created_at.isoformat(),
    }


def absence_to_dict(rec: AbsenceRecord) -> Dict[str, Any]:
    return {
        "id": rec.id,
        "teacher_id": rec.teacher_id,
        "date": rec.date.isoformat(),
        "type": rec.type.value,
        "status": rec.status.value,
        "affected_periods": sorted(rec.affected_periods),
        "reason": rec.reason,
    }
