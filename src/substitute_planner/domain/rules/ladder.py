# domain/rules/ladder.py
# Priority ladder: weighted, ordered preferences folded into one score.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from substitute_planner.domain.candidates.discovery import Candidate
from substitute_planner.domain.core.schema import (
    FairnessSensitivity,
    ModeKind,
    PriorityStep,
    Relationship,
    SlotState,
    TeacherType,
)
from substitute_planner.domain.rules.context import SlotContext, subject_domain
from substitute_planner.domain.rules.golden import RuleVerdict, evaluate_rules, resolve_rules

TIER_POINTS = 1000
TIE_BREAK_SHARE = 0.01
GOVERNING_SUBJECT_BONUS = 100
CONTINUITY_BONUS = 200
DOMAIN_BONUS = 40
IMMUNITY_PENALTY = 500
IMMUNITY_THRESHOLD = 6  # covers over the working day and the day before


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: Candidate
    score: float
    primary_step: Optional[str]
    breakdown: Tuple[Tuple[str, float], ...]
    verdict: RuleVerdict

    @property
    def id(self) -> str:
        return self.candidate.id

    @property
    def requires_swap(self) -> bool:
        return self.verdict.requires_swap

    @property
    def auto_eligible(self) -> bool:
        return self.score > 0 and not self.requires_swap and not self.verdict.blocked


@dataclass(frozen=True)
class RankedSlot:
    ranked: Tuple[ScoredCandidate, ...]
    blocked: Tuple[ScoredCandidate, ...]

    def top(self) -> Optional[ScoredCandidate]:
        for sc in self.ranked:
            if sc.auto_eligible:
                return sc
        return None


# ---------- Matching ----------

def step_matches(step: PriorityStep, c: Candidate, ctx: SlotContext) -> bool:
    crit = step.criteria

    if crit.teacher_type == TeacherType.INTERNAL and c.employee.is_external:
        return False
    if crit.teacher_type == TeacherType.EXTERNAL and not c.employee.is_external:
        return False

    if crit.slot_states and c.state not in crit.slot_states:
        return False

    if crit.relationship == Relationship.HOME_ROOM:
        return c.is_home_room
    if crit.relationship == Relationship.SAME_GRADE:
        target = ctx.target_class
        return target is not None and target.grade_level in ctx.day.grades_taught(c.id)
    if crit.relationship == Relationship.SAME_SUBJECT:
        return c.employee.teaches(ctx.subject)
    if crit.relationship == Relationship.SAME_DOMAIN:
        return same_domain(c, ctx)
    if crit.relationship == Relationship.CONTINUITY:
        return covered_yesterday(c, ctx)
    return True


def same_domain(c: Candidate, ctx: SlotContext) -> bool:
    target = subject_domain(ctx.subject)
    return target is not None and any(subject_domain(s) == target for s in c.employee.subjects)


def covered_yesterday(c: Candidate, ctx: SlotContext) -> bool:
    """Continuity of care: the candidate covered the same absent teacher the day before."""
    lesson = ctx.slot_lesson
    return lesson is not None and ctx.stats.covered_yesterday(lesson.teacher_id, c.id)


# ---------- Scoring ----------

def fairness_multiplier(c: Candidate, ctx: SlotContext) -> float:
    sensitivity = ctx.mode.settings.hr.fairness_sensitivity
    if sensitivity == FairnessSensitivity.OFF:
        return 1.0
    population = ctx.population or (c.id,)
    deviation = ctx.stats.weekly_of(c.id) - ctx.stats.weekly_mean(population)
    if sensitivity == FairnessSensitivity.STRICT and deviation > 1:
        return 0.5
    if sensitivity == FairnessSensitivity.FLEXIBLE and deviation > 2:
        return 0.8
    return 1.0


def score_candidate(c: Candidate, ctx: SlotContext, verdict: RuleVerdict) -> ScoredCandidate:
    steps = [s for s in ctx.mode.sorted_ladder() if s.enabled]
    n = len(steps)
    breakdown: List[Tuple[str, float]] = []

    if c.state == SlotState.ASSIGNED_ELSEWHERE:
        return ScoredCandidate(c, 0.0, None, (("assigned elsewhere", 0.0),), verdict)

    primary: Optional[PriorityStep] = None
    total = 0.0
    for idx, step in enumerate(steps):
        if not step_matches(step, c, ctx):
            continue
        if primary is None:
            primary = step
            base = float(TIER_POINTS * (n - idx) + step.weight_percentage)
            breakdown.append((step.label, base))
            total += base
        else:
            bonus = float(step.weight_percentage) if ctx.mode.cumulative_ladder else step.weight_percentage * TIE_BREAK_SHARE
            breakdown.append((step.label, bonus))
            total += bonus

    if primary is None:
        return ScoredCandidate(c, 0.0, None, (("no matching step", 0.0),), verdict)

    subj = ctx.mode.settings.subject
    if subj.prioritize_governing_subject and ctx.mode.governing_subject and c.employee.teaches(ctx.mode.governing_subject):
        breakdown.append(("governing subject", float(GOVERNING_SUBJECT_BONUS)))
        total += GOVERNING_SUBJECT_BONUS

    if covered_yesterday(c, ctx):
        breakdown.append(("continuity of care", float(CONTINUITY_BONUS)))
        total += CONTINUITY_BONUS
    if same_domain(c, ctx) and not c.employee.teaches(ctx.subject):
        breakdown.append(("subject domain", float(DOMAIN_BONUS)))
        total += DOMAIN_BONUS
    if ctx.mode.kind != ModeKind.EMERGENCY and ctx.stats.recent_of(c.id) >= IMMUNITY_THRESHOLD:
        breakdown.append(("cover cooldown", float(-IMMUNITY_PENALTY)))
        total -= IMMUNITY_PENALTY

    for rule_id, factor in verdict.penalties:
        delta = total * factor - total
        breakdown.append((f"rule {rule_id}", delta))
        total += delta

    fair = fairness_multiplier(c, ctx)
    if fair != 1.0:
        delta = total * fair - total
        breakdown.append(("weekly fairness", delta))
        total += delta

    return ScoredCandidate(c, total, primary.label, tuple(breakdown), verdict)


def rank_candidates(candidates: Iterable[Candidate], ctx: SlotContext) -> RankedSlot:
    """Score descending, stable on the incoming (discovery) order. Hard-blocked candidates are split off."""
    rules = resolve_rules(ctx.mode)
    ranked: List[ScoredCandidate] = []
    blocked: List[ScoredCandidate] = []

    for c in candidates:
        verdict = evaluate_rules(c, rules, ctx)
        if verdict.blocked:
            blocked.append(ScoredCandidate(c, 0.0, None, tuple((f"blocked by {r}", 0.0) for r in verdict.blocked_by), verdict))
            continue
        ranked.append(score_candidate(c, ctx, verdict))

    ranked.sort(key=lambda sc: -sc.score)
    return RankedSlot(ranked=tuple(ranked), blocked=tuple(blocked))
