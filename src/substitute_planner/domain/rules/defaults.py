# domain/rules/defaults.py
# Built-in operating modes. Each call returns fresh objects.

from __future__ import annotations

from typing import Dict, Tuple

from substitute_planner.domain.core.schema import (
    ClassSettings,
    EnforcementLevel,
    FairnessSensitivity,
    GoldenRule,
    HRSettings,
    ModeConfig,
    ModeKind,
    ModeSettings,
    PriorityCriteria,
    PriorityStep,
    Relationship,
    RuleAction,
    SlotState,
    TargetScope,
    TeacherType,
)
from substitute_planner.domain.rules.golden import GLOBAL_RULES, STAY_RULE_ID

ALL_PERIODS: Tuple[int, ...] = (1, 2, 3, 4, 5, 6, 7)

_RELEASED = frozenset({SlotState.RELEASED, SlotState.RELEASED_BY_TRIP})
_NOT_TEACHING = frozenset({
    SlotState.FREE,
    SlotState.STAY,
    SlotState.INDIVIDUAL,
    SlotState.RELEASED,
    SlotState.RELEASED_BY_TRIP,
})


def _step(step_id: str, order: int, label: str, weight: int, *, relationship: Relationship = Relationship.NONE,
          teacher_type: TeacherType = TeacherType.ANY, states=frozenset(), explanation: str = "") -> PriorityStep:
    return PriorityStep(
        id=step_id,
        order=order,
        label=label,
        weight_percentage=weight,
        criteria=PriorityCriteria(relationship=relationship, teacher_type=teacher_type, slot_states=frozenset(states)),
        explanation=explanation,
    )


def _renumber(steps: Tuple[PriorityStep, ...]) -> Tuple[PriorityStep, ...]:
    return tuple(
        PriorityStep(s.id, i, s.label, s.weight_percentage, s.criteria, s.enabled, s.explanation)
        for i, s in enumerate(steps, start=1)
    )


def default_ladder() -> Tuple[PriorityStep, ...]:
    return (
        _step("step_ext", 1, "External substitute", 40, teacher_type=TeacherType.EXTERNAL,
              explanation="Prefer external staff to keep the internal staff stable."),
        _step("step_free", 2, "Free teacher", 30, teacher_type=TeacherType.INTERNAL, states={SlotState.FREE},
              explanation="Use gaps of teachers already in school."),
        _step("step_ind", 3, "Individual period", 20, teacher_type=TeacherType.INTERNAL, states={SlotState.INDIVIDUAL},
              explanation="Turn an individual period into a class cover when needed."),
        _step("step_any", 4, "Any available teacher", 10, states=_NOT_TEACHING,
              explanation="Last resort."),
    )


def exam_ladder() -> Tuple[PriorityStep, ...]:
    return (
        _step("step_exam_home_room", 1, "Home-room teacher", 100, relationship=Relationship.HOME_ROOM,
              teacher_type=TeacherType.INTERNAL,
              explanation="The home-room teacher invigilates their own class, even if pulled from another lesson."),
        _step("step_exam_released", 2, "Released by swap", 90, teacher_type=TeacherType.INTERNAL, states=_RELEASED),
        _step("step_exam_subject", 3, "Exam subject teacher (free)", 70, relationship=Relationship.SAME_SUBJECT,
              teacher_type=TeacherType.INTERNAL, states={SlotState.FREE}),
        _step("step_exam_free", 4, "Free teacher", 50, teacher_type=TeacherType.INTERNAL, states={SlotState.FREE}),
        _step("step_exam_individual", 5, "Individual period", 30, teacher_type=TeacherType.INTERNAL,
              states={SlotState.INDIVIDUAL}),
    )


def default_modes() -> Dict[str, ModeConfig]:
    stay_rule = GLOBAL_RULES[0]

    normal = ModeConfig(
        id="normalMode",
        name="Normal day",
        kind=ModeKind.NORMAL,
        affected_periods=ALL_PERIODS,
        golden_rules=(stay_rule,),
        priority_ladder=default_ladder(),
    )

    rainy = ModeConfig(
        id="rainyMode",
        name="Rainy day",
        kind=ModeKind.RAINY,
        linked_event_type=ModeKind.RAINY,
        affected_periods=ALL_PERIODS,
        golden_rules=(
            stay_rule,
            GoldenRule(
                id="GR_DAILY_EQUITY",
                label="Daily equity",
                compliance_percentage=90,
                enforcement_level=EnforcementLevel.FLEXIBLE,
                action=RuleAction.DAILY_EQUITY,
                description="No teacher carries more covers than the others on the same day.",
            ),
        ),
        priority_ladder=_renumber(
            (_step("step_rainy_merge", 1, "Same grade teacher", 50, relationship=Relationship.SAME_GRADE),)
            + default_ladder()[1:]
        ),
        settings=ModeSettings(class_=ClassSettings(allow_merge=True)),
    )

    exam = ModeConfig(
        id="examMode",
        name="Exam period",
        kind=ModeKind.EXAM,
        linked_event_type=ModeKind.EXAM,
        affected_periods=(1, 2, 3),
        golden_rules=(
            stay_rule,
            GoldenRule(
                id="GR_NO_EXTERNAL",
                label="No external invigilators",
                action=RuleAction.BLOCK_EXTERNAL_STAFF,
                description="External substitutes do not invigilate exams.",
            ),
        ),
        priority_ladder=exam_ladder(),
    )

    trip = ModeConfig(
        id="tripMode",
        name="Field trip",
        kind=ModeKind.TRIP,
        linked_event_type=ModeKind.TRIP,
        target=TargetScope.SPECIFIC_GRADES,
        affected_periods=ALL_PERIODS,
        golden_rules=(stay_rule,),
        priority_ladder=_renumber(
            (_step("step_trip_released", 1, "Released by the trip", 100, teacher_type=TeacherType.INTERNAL,
                   states=_RELEASED),)
            + default_ladder()
        ),
    )

    emergency = ModeConfig(
        id="emergencyMode",
        name="Acute shortage (emergency)",
        kind=ModeKind.EMERGENCY,
        linked_event_type=ModeKind.EMERGENCY,
        affected_periods=ALL_PERIODS,
        golden_rules=(
            stay_rule,
            GoldenRule(
                id="GR_SURVIVAL",
                label="Operational survival",
                enforcement_level=EnforcementLevel.EMERGENCY_ONLY,
                description="Cover as many periods as possible with any available teacher.",
            ),
        ),
        priority_ladder=default_ladder(),
        enforcement_profile={STAY_RULE_ID: 30},
        settings=ModeSettings(hr=HRSettings(fairness_sensitivity=FairnessSensitivity.OFF)),
    )

    holiday = ModeConfig(
        id="holidayMode",
        name="Holiday / occasion",
        kind=ModeKind.HOLIDAY,
        linked_event_type=ModeKind.HOLIDAY,
        target=TargetScope.SPECIFIC_GRADES,
        affected_periods=ALL_PERIODS,
        golden_rules=(stay_rule,),
        priority_ladder=_renumber(
            (_step("step_holiday_release", 1, "Released by the holiday", 100, teacher_type=TeacherType.INTERNAL,
                   states=_RELEASED),)
            + default_ladder()
        ),
    )

    return {m.id: m for m in (normal, rainy, exam, trip, emergency, holiday)}
