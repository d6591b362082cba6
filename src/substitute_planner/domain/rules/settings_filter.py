# domain/rules/settings_filter.py
# Mode settings applied to discovery output before any rule is evaluated.
# Every toggle only removes candidates; the order they run in does not matter.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from substitute_planner.domain.candidates.discovery import Candidate
from substitute_planner.domain.core.schema import SlotState
from substitute_planner.domain.rules.context import SlotContext


@dataclass(frozen=True)
class FilterOutcome:
    kept: Tuple[Candidate, ...]
    removed: Tuple[Tuple[Candidate, str], ...]

    def removed_ids(self) -> Set[str]:
        return {c.id for c, _ in self.removed}


def apply_mode_settings(candidates: Iterable[Candidate], ctx: SlotContext) -> FilterOutcome:
    kept: List[Candidate] = []
    removed: List[Tuple[Candidate, str]] = []

    for c in candidates:
        reason = removal_reason(c, ctx)
        if reason is None:
            kept.append(c)
        else:
            removed.append((c, reason))

    return FilterOutcome(kept=tuple(kept), removed=tuple(removed))


def removal_reason(c: Candidate, ctx: SlotContext) -> Optional[str]:
    """First toggle that rejects the candidate, or None."""
    s = ctx.mode.settings
    emp = c.employee
    exempt = s.teacher.force_home_room_presence and c.is_home_room
    bound_by_hours = not emp.is_external and not c.is_pool and not exempt

    if s.teacher.disable_external and emp.is_external:
        return "external staff disabled in this mode"

    if (
        s.teacher.treat_no_lessons_as_off_duty
        and not emp.is_external
        and not c.is_pool
        and not ctx.day.lessons_of_teacher(emp.id)
    ):
        return "no lessons today (off duty)"

    if not exempt:
        if s.lesson.disable_stay and c.state == SlotState.STAY:
            return "stay periods disabled in this mode"
        if s.lesson.disable_individual and c.state == SlotState.INDIVIDUAL:
            return "individual periods disabled in this mode"

    if bound_by_hours:
        working = ctx.day.working_periods(emp.id)
        if working:
            if s.time.ignore_gaps_at_start and ctx.period < working[0]:
                return f"not in school yet (first lesson in period {working[0]})"
            if s.time.ignore_gaps_at_end and ctx.period > working[-1]:
                return f"already gone (last lesson in period {working[-1]})"

    cap = s.time.max_consecutive_periods
    if cap is not None and not exempt and _busy_streak(c, ctx) > cap:
        return f"more than {cap} consecutive periods"

    if not c.in_slot:
        daily_cap = s.hr.max_daily_coverage
        if daily_cap is not None and ctx.stats.daily_of(emp.id) >= daily_cap:
            return f"daily coverage cap reached ({daily_cap})"
        weekly_cap = s.hr.max_weekly_coverage
        if weekly_cap is not None and ctx.stats.weekly_of(emp.id) >= weekly_cap:
            return f"weekly coverage cap reached ({weekly_cap})"

    return None


def _busy_streak(c: Candidate, ctx: SlotContext) -> int:
    """Length of the run of busy periods through ctx.period if the cover is taken."""
    busy = {
        l.period
        for l in ctx.day.lessons_of_teacher(c.id)
        if l.class_id != ctx.class_id
    }
    for slot, entries in ctx.board.items():
        if any(e.teacher_id == c.id for e in entries):
            busy.add(slot.period)
    busy.add(ctx.period)

    streak = 1
    p = ctx.period - 1
    while p in busy:
        streak += 1
        p -= 1
    p = ctx.period + 1
    while p in busy:
        streak += 1
        p += 1
    return streak
