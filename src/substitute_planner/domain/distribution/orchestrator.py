# domain/distribution/orchestrator.py
# One batch assignment pass for the active mode. Works on a copy of the
# board, so the caller decides whether the batch is applied.

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, FrozenSet, List, Mapping, Optional, Sequence, Set, Tuple

from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.candidates.discovery import discover_candidates
from substitute_planner.domain.core.schema import (
    Lesson,
    LessonType,
    ModeConfig,
    ModeKind,
    ProposedAssignment,
    SlotKey,
    SlotState,
    SubstitutionRecord,
)
from substitute_planner.domain.core.timetable import SchoolDay
from substitute_planner.domain.distribution.fair import fair_distribute
from substitute_planner.domain.distribution.legacy import legacy_pick
from substitute_planner.domain.distribution.trip import (
    CompanionCandidate,
    companion_assignments,
    rank_companions,
    trip_participants,
)
from substitute_planner.domain.rules.context import SlotContext, build_coverage_stats
from substitute_planner.domain.rules.ladder import rank_candidates
from substitute_planner.domain.rules.settings_filter import apply_mode_settings

logger = logging.getLogger(__name__)


# ---------- Input / output ----------

class DistributionPath(str, Enum):
    TRIP = "trip"
    MERGE = "merge"
    RULE_SET = "rule_set"
    LEGACY = "legacy"


@dataclass(frozen=True)
class DistributionRequest:
    mode: ModeConfig
    target_slots: Tuple[SlotKey, ...] = ()        # empty => slots of absent teachers
    absent_ids: FrozenSet[str] = frozenset()                                  # away all day
    partial_absences: Mapping[str, FrozenSet[int]] = field(default_factory=dict)  # teacher -> periods
    pool_ids: FrozenSet[str] = frozenset()
    excused_class_ids: FrozenSet[str] = frozenset()
    trip_class_ids: Tuple[str, ...] = ()
    confirmed_companion_ids: FrozenSet[str] = frozenset()
    merged_class_ids: FrozenSet[str] = frozenset()
    history: Tuple[SubstitutionRecord, ...] = ()
    rng: Optional[random.Random] = field(default=None, compare=False)


@dataclass(frozen=True)
class SlotTrace:
    slot: SlotKey
    path: DistributionPath
    chosen: Optional[str] = None
    ranked: Tuple[Tuple[str, float, str], ...] = ()  # (teacher_id, score, primary step)
    removed: Tuple[Tuple[str, str], ...] = ()        # (teacher_id, reason)
    note: str = ""


@dataclass(frozen=True)
class UnresolvedSlot:
    slot: SlotKey
    reason: str


@dataclass(frozen=True)
class DistributionBatch:
    path: DistributionPath
    assignments: Tuple[ProposedAssignment, ...] = ()
    unresolved: Tuple[UnresolvedSlot, ...] = ()
    traces: Tuple[SlotTrace, ...] = ()
    companions: Tuple[CompanionCandidate, ...] = ()
    warnings: Tuple[str, ...] = ()


# ---------- Target slots ----------

def vacant_slots(
    day: SchoolDay,
    mode: ModeConfig,
    absent_ids: AbstractSet[str],
    excused_class_ids: AbstractSet[str] = frozenset(),
    partial_absences: Optional[Mapping[str, AbstractSet[int]]] = None,
) -> Tuple[SlotKey, ...]:
    """Actual lessons of absent teachers inside the mode's scope, period-major."""
    classes = day.index_classes()
    periods = set(mode.affected_periods)
    partial = partial_absences or {}
    out: Set[SlotKey] = set()

    for lesson in day.timetable.lessons_on(day.day):
        if lesson.type != LessonType.ACTUAL:
            continue
        if lesson.teacher_id not in absent_ids and lesson.period not in partial.get(lesson.teacher_id, ()):
            continue
        if lesson.class_id in excused_class_ids:
            continue
        if periods and lesson.period not in periods:
            continue
        item = classes.get(lesson.class_id)
        if item is None:
            continue
        # trip and holiday scopes name the classes that leave, not the ones to cover
        if mode.kind not in (ModeKind.TRIP, ModeKind.HOLIDAY) and not mode.covers_class(item):
            continue
        out.add(SlotKey(lesson.class_id, lesson.period))

    return tuple(sorted(out, key=lambda s: (s.period, s.class_id)))


def holiday_classes(day: SchoolDay, mode: ModeConfig) -> FrozenSet[str]:
    return frozenset(
        c.id for c in day.classes
        if c.id in mode.affected_class_ids or c.grade_level in mode.affected_grade_levels
    )


# ---------- Orchestration ----------

def run_distribution(day: SchoolDay, board: AssignmentBoard, request: DistributionRequest) -> DistributionBatch:
    mode = request.mode
    work = board.copy()
    excluded: Set[str] = set(request.absent_ids)
    excused: Set[str] = set(request.excused_class_ids)
    warnings: List[str] = []

    if mode.kind == ModeKind.HOLIDAY:
        excused |= holiday_classes(day, mode)

    if mode.kind == ModeKind.TRIP and request.trip_class_ids:
        batch = _trip_pass(day, work, request, excluded, excused, warnings)
    elif (
        mode.kind == ModeKind.RAINY
        and mode.settings.class_.allow_merge
        and len(request.merged_class_ids) >= 2
    ):
        batch = _merge_pass(day, work, request, excluded, excused, warnings)
    else:
        targets = _targets(day, request, excluded, excused)
        batch = _slot_pass(day, work, request, targets, excluded, excused, warnings)

    logger.info(
        "Distribution pass path=%s mode=%s: %d proposed, %d unresolved",
        batch.path.value,
        mode.id,
        len(batch.assignments),
        len(batch.unresolved),
    )
    return batch


def _targets(
    day: SchoolDay,
    request: DistributionRequest,
    excluded: AbstractSet[str],
    excused: AbstractSet[str],
) -> Tuple[SlotKey, ...]:
    if request.target_slots:
        return tuple(s for s in request.target_slots if s.class_id not in excused)
    return vacant_slots(day, request.mode, excluded, excused, request.partial_absences)


def _away_at(request: DistributionRequest, period: int) -> Set[str]:
    return {tid for tid, periods in request.partial_absences.items() if period in periods}


def _trip_pass(
    day: SchoolDay,
    work: AssignmentBoard,
    request: DistributionRequest,
    excluded: Set[str],
    excused: Set[str],
    warnings: List[str],
) -> DistributionBatch:
    companions = rank_companions(day, request.trip_class_ids)
    if not request.confirmed_companion_ids:
        return DistributionBatch(
            path=DistributionPath.TRIP,
            companions=companions,
            warnings=("Confirm trip companions to distribute the remaining slots.",),
        )

    known = {c.id for c in companions}
    unknown = sorted(set(request.confirmed_companion_ids) - known)
    if unknown:
        warnings.append(f"Ignored companions without lessons in the outgoing classes: {unknown}")

    periods = request.mode.affected_periods or tuple(range(1, day.periods_per_day + 1))
    proposals = companion_assignments(companions, request.confirmed_companion_ids, periods)
    applied = work.apply_batch(proposals)
    for p, message in applied.conflicts:
        warnings.append(message)

    excluded |= trip_participants(day, request.trip_class_ids, request.confirmed_companion_ids)
    excused |= set(request.trip_class_ids)

    targets = _targets(day, request, excluded, excused)
    rest = _slot_pass(day, work, request, targets, excluded, excused, warnings)
    return DistributionBatch(
        path=DistributionPath.TRIP,
        assignments=applied.applied + rest.assignments,
        unresolved=rest.unresolved,
        traces=rest.traces,
        companions=companions,
        warnings=rest.warnings,
    )


def _merge_pass(
    day: SchoolDay,
    work: AssignmentBoard,
    request: DistributionRequest,
    excluded: Set[str],
    excused: Set[str],
    warnings: List[str],
) -> DistributionBatch:
    mode = request.mode
    targets = _targets(day, request, excluded, excused)

    class_ids: List[str] = []
    for s in targets:
        if s.class_id not in class_ids:
            class_ids.append(s.class_id)
    for cid in sorted(request.merged_class_ids):
        if cid not in class_ids and cid not in excused:
            class_ids.append(cid)

    periods: Sequence[int] = sorted({s.period for s in targets}) or (
        mode.affected_periods or tuple(range(1, day.periods_per_day + 1))
    )

    result = fair_distribute(
        day,
        class_ids,
        request.merged_class_ids,
        periods,
        board=work,
        excluded_ids=excluded | set(request.partial_absences),
        max_merged_count=mode.settings.class_.max_merged_count,
        rng=request.rng,
    )
    warnings.extend(result.warnings)

    traces = tuple(
        SlotTrace(slot=a.slot, path=DistributionPath.MERGE, chosen=a.teacher_id, note=a.reason)
        for a in result.assignments
    )
    unresolved = tuple(UnresolvedSlot(slot, "no teacher available for the merged sections") for slot in result.uncovered)
    return DistributionBatch(
        path=DistributionPath.MERGE,
        assignments=result.assignments,
        unresolved=unresolved,
        traces=traces,
        warnings=tuple(warnings),
    )


def _slot_pass(
    day: SchoolDay,
    work: AssignmentBoard,
    request: DistributionRequest,
    targets: Sequence[SlotKey],
    excluded: AbstractSet[str],
    excused: AbstractSet[str],
    warnings: List[str],
) -> DistributionBatch:
    mode = request.mode
    use_rules = mode.has_linked_rule_set
    path = DistributionPath.RULE_SET if use_rules else DistributionPath.LEGACY
    if not use_rules:
        logger.warning("Mode '%s' has no linked rule set; falling back to the legacy ranking", mode.id)
        warnings.append(f"Mode '{mode.id}' has no linked rule set; legacy ranking used.")

    assignments: List[ProposedAssignment] = []
    unresolved: List[UnresolvedSlot] = []
    traces: List[SlotTrace] = []

    for slot in targets:
        if work.is_resolved(slot.class_id, slot.period):
            traces.append(SlotTrace(slot=slot, path=path, note="already resolved"))
            continue
        if day.lesson_for_class(slot.class_id, slot.period) is None:
            traces.append(SlotTrace(slot=slot, path=path, note="no lesson scheduled"))
            continue

        away = set(excluded) | _away_at(request, slot.period)
        if use_rules:
            picked, trace, vacated = _rule_set_slot(day, work, request, slot, away, excused)
        else:
            picked, trace, vacated = _legacy_slot(day, work, slot, away)
        traces.append(trace)
        if vacated is not None:
            unresolved.append(vacated)

        if not picked:
            unresolved.append(UnresolvedSlot(slot, trace.note or "no eligible candidate"))
            continue
        assignments.extend(picked)

    return DistributionBatch(
        path=path,
        assignments=tuple(assignments),
        unresolved=tuple(u for u in unresolved if not work.is_resolved(u.slot.class_id, u.slot.period)),
        traces=tuple(traces),
        warnings=tuple(warnings),
    )


def _rule_set_slot(
    day: SchoolDay,
    work: AssignmentBoard,
    request: DistributionRequest,
    slot: SlotKey,
    excluded: AbstractSet[str],
    excused: AbstractSet[str],
) -> Tuple[List[ProposedAssignment], SlotTrace, Optional[UnresolvedSlot]]:
    mode = request.mode
    candidates = discover_candidates(
        day,
        slot.class_id,
        slot.period,
        work,
        excluded_ids=excluded,
        pool_ids=request.pool_ids,
        excused_class_ids=excused,
    )
    ctx = SlotContext(
        day=day,
        class_id=slot.class_id,
        period=slot.period,
        mode=mode,
        board=work,
        stats=build_coverage_stats(request.history, work, day.date),
        population=tuple(c.id for c in candidates if not c.employee.is_external),
    )
    filtered = apply_mode_settings(candidates, ctx)
    ranking = rank_candidates(filtered.kept, ctx)

    removed = tuple((c.id, reason) for c, reason in filtered.removed) + tuple(
        (sc.id, f"blocked by {', '.join(sc.verdict.blocked_by)}") for sc in ranking.blocked
    )
    ranked = tuple((sc.id, sc.score, sc.primary_step or "") for sc in ranking.ranked)

    top = ranking.top()
    if top is None:
        manual_only = any(sc.requires_swap for sc in ranking.ranked)
        note = "only manual candidates (stay swap required)" if manual_only else "no eligible candidate"
        return [], SlotTrace(slot=slot, path=DistributionPath.RULE_SET, ranked=ranked, removed=removed, note=note), None

    reason = top.primary_step or mode.name
    work.assign(slot.class_id, slot.period, top.id, reason)
    picked = [ProposedAssignment(slot.class_id, slot.period, top.id, reason)]

    vacated: Optional[UnresolvedSlot] = None
    left = _left_class(work, slot, top.candidate.lesson, top.candidate.state)
    if left is not None:
        swap = _swap_back(day, work, slot, left, top.candidate.employee.name, excluded)
        if swap is not None:
            picked.append(swap)
        else:
            vacated = _pulled(left, top.candidate.employee.name, slot)

    trace = SlotTrace(slot=slot, path=DistributionPath.RULE_SET, chosen=top.id, ranked=ranked, removed=removed)
    return picked, trace, vacated


def _left_class(work: AssignmentBoard, slot: SlotKey, lesson: Optional[Lesson], state: SlotState) -> Optional[Lesson]:
    """The lesson a teacher pulled out of another class leaves behind, if nobody covers it yet."""
    if state != SlotState.ACTUAL or lesson is None or lesson.type != LessonType.ACTUAL:
        return None
    if lesson.class_id == slot.class_id or work.is_resolved(lesson.class_id, slot.period):
        return None
    return lesson


def _pulled(left: Lesson, name: str, slot: SlotKey) -> UnresolvedSlot:
    return UnresolvedSlot(SlotKey(left.class_id, slot.period), f"{name} pulled to {slot.class_id} period {slot.period}")


def _swap_back(
    day: SchoolDay,
    work: AssignmentBoard,
    slot: SlotKey,
    lesson: Lesson,
    name: str,
    excluded: AbstractSet[str],
) -> Optional[ProposedAssignment]:
    """The class left behind goes to the slot's regular teacher when they are around."""
    regular = day.lesson_for_class(slot.class_id, slot.period)
    if regular is None or regular.teacher_id in excluded:
        return None
    if work.class_of_teacher(regular.teacher_id, slot.period) is not None:
        return None

    reason = f"swap with {name}"
    work.assign(lesson.class_id, slot.period, regular.teacher_id, reason)
    return ProposedAssignment(lesson.class_id, slot.period, regular.teacher_id, reason)


def _legacy_slot(
    day: SchoolDay,
    work: AssignmentBoard,
    slot: SlotKey,
    excluded: AbstractSet[str],
) -> Tuple[List[ProposedAssignment], SlotTrace, Optional[UnresolvedSlot]]:
    choice = legacy_pick(day, slot.class_id, slot.period, work, excluded_ids=excluded)
    if choice is None:
        return [], SlotTrace(slot=slot, path=DistributionPath.LEGACY, note="no eligible candidate"), None

    work.assign(slot.class_id, slot.period, choice.teacher_id, choice.reason)
    trace = SlotTrace(
        slot=slot,
        path=DistributionPath.LEGACY,
        chosen=choice.teacher_id,
        ranked=((choice.teacher_id, float(choice.priority), choice.reason),),
    )
    picked = [ProposedAssignment(slot.class_id, slot.period, choice.teacher_id, choice.reason)]

    vacated: Optional[UnresolvedSlot] = None
    left = _left_class(work, slot, day.lesson_for_teacher(choice.teacher_id, slot.period), SlotState.ACTUAL)
    if left is not None:
        vacated = _pulled(left, day.index_employees()[choice.teacher_id].name, slot)
    return picked, trace, vacated
