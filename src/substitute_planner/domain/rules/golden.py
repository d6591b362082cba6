# domain/rules/golden.py
# Golden rules: hard blocks (STRICT at 100%) and proportional score penalties.

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Tuple

from substitute_planner.domain.candidates.discovery import Candidate
from substitute_planner.domain.core.schema import (
    EnforcementLevel,
    GoldenRule,
    LessonType,
    ModeConfig,
    ModeKind,
    RuleAction,
    SlotState,
)
from substitute_planner.domain.rules.context import SlotContext


STAY_RULE_ID = "GR-NO-STAY-COVER"

GLOBAL_RULES: Tuple[GoldenRule, ...] = (
    GoldenRule(
        id=STAY_RULE_ID,
        label="Stay periods are not used for coverage",
        compliance_percentage=100,
        enforcement_level=EnforcementLevel.STRICT,
        is_global=True,
        action=RuleAction.BLOCK_STAY_FOR_COVERAGE,
        description="A teacher on a stay period keeps it, unless swapped with an individual period the same day.",
    ),
)


@dataclass(frozen=True)
class RuleVerdict:
    blocked_by: Tuple[str, ...] = ()
    penalties: Tuple[Tuple[str, float], ...] = ()  # (rule_id, factor)
    waived: Tuple[str, ...] = ()
    requires_swap: bool = False

    @property
    def blocked(self) -> bool:
        return bool(self.blocked_by)

    @property
    def factor(self) -> float:
        f = 1.0
        for _, p in self.penalties:
            f *= p
        return f


# ---------- Rule set ----------

def resolve_rules(mode: ModeConfig, global_rules: Tuple[GoldenRule, ...] = GLOBAL_RULES) -> Tuple[GoldenRule, ...]:
    """
    Mode rules, then the global rules the mode does not redefine, with the
    mode's enforcement profile applied on top.
    """
    present = {r.id for r in mode.golden_rules}
    rules: List[GoldenRule] = list(mode.golden_rules)
    rules.extend(r for r in global_rules if r.id not in present)

    out: List[GoldenRule] = []
    for r in rules:
        override = mode.enforcement_profile.get(r.id)
        out.append(replace(r, compliance_percentage=override) if override is not None else r)
    return tuple(out)


# ---------- Predicates ----------

def _has_individual_today(c: Candidate, ctx: SlotContext) -> bool:
    return any(l.type == LessonType.INDIVIDUAL for l in ctx.day.lessons_of_teacher(c.id))


def _violates_stay(c: Candidate, ctx: SlotContext) -> bool:
    return c.state == SlotState.STAY


def _violates_external(c: Candidate, ctx: SlotContext) -> bool:
    return c.employee.is_external


def _violates_individual(c: Candidate, ctx: SlotContext) -> bool:
    return c.state == SlotState.INDIVIDUAL


def _violates_subject(c: Candidate, ctx: SlotContext) -> bool:
    subject = ctx.subject
    return bool(subject) and not c.employee.teaches(subject)


def _violates_equity(c: Candidate, ctx: SlotContext) -> bool:
    population = ctx.population or (c.id,)
    return ctx.stats.daily_of(c.id) > ctx.stats.daily_mean(population)


_PREDICATES: Dict[RuleAction, Callable[[Candidate, SlotContext], bool]] = {
    RuleAction.BLOCK_STAY_FOR_COVERAGE: _violates_stay,
    RuleAction.BLOCK_EXTERNAL_STAFF: _violates_external,
    RuleAction.BLOCK_INDIVIDUAL_FOR_COVERAGE: _violates_individual,
    RuleAction.REQUIRE_SAME_SUBJECT: _violates_subject,
    RuleAction.DAILY_EQUITY: _violates_equity,
}


# ---------- Evaluation ----------

def is_rule_applicable(rule: GoldenRule, mode: ModeConfig) -> bool:
    if not rule.is_active:
        return False
    if rule.enforcement_level == EnforcementLevel.EMERGENCY_ONLY and mode.kind != ModeKind.EMERGENCY:
        return False
    return True


def evaluate_rules(c: Candidate, rules: Tuple[GoldenRule, ...], ctx: SlotContext) -> RuleVerdict:
    blocked_by: List[str] = []
    penalties: List[Tuple[str, float]] = []
    waived: List[str] = []
    requires_swap = False

    for rule in rules:
        if not is_rule_applicable(rule, ctx.mode):
            continue
        predicate = _PREDICATES.get(rule.action)
        if predicate is None or not predicate(c, ctx):
            continue

        if rule.action == RuleAction.BLOCK_STAY_FOR_COVERAGE and _has_individual_today(c, ctx):
            # stay can be traded for the same day's individual period, by hand only
            waived.append(rule.id)
            requires_swap = True
            continue

        if rule.enforcement_level == EnforcementLevel.STRICT and rule.compliance_percentage >= 100:
            blocked_by.append(rule.id)
        else:
            penalties.append((rule.id, (100 - rule.compliance_percentage) / 100))

    return RuleVerdict(
        blocked_by=tuple(blocked_by),
        penalties=tuple(penalties),
        waived=tuple(waived),
        requires_swap=requires_swap,
    )
