import pytest

from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.candidates.discovery import discover_candidates
from substitute_planner.domain.core.schema import (
    EnforcementLevel,
    GoldenRule,
    LessonType,
    ModeConfig,
    ModeKind,
    RuleAction,
)
from substitute_planner.domain.rules.context import CoverageStats, SlotContext
from substitute_planner.domain.rules.defaults import default_ladder, default_modes
from substitute_planner.domain.rules.golden import (
    GLOBAL_RULES,
    STAY_RULE_ID,
    evaluate_rules,
    is_rule_applicable,
    resolve_rules,
)
from substitute_planner.domain.rules.ladder import rank_candidates

from conftest import build_day, lesson, section, teacher

RULE_MODE = ModeConfig(
    id="ruleMode",
    name="Rules",
    linked_event_type=ModeKind.NORMAL,
    golden_rules=(GLOBAL_RULES[0],),
    priority_ladder=default_ladder(),
)


def _day():
    return build_day(
        employees=[teacher("t_reg"), teacher("t_stay"), teacher("t_swap"), teacher("t_free")],
        classes=[section("5A", 5), section("6A", 6)],
        lessons=[
            lesson("t_reg", "5A", 2, "Math"),
            lesson("t_stay", "6A", 2, lesson_type=LessonType.STAY),
            lesson("t_swap", "6A", 2, lesson_type=LessonType.STAY),
            lesson("t_swap", "6A", 4, lesson_type=LessonType.INDIVIDUAL),
            lesson("t_free", "6A", 1, "Science"),
        ],
    )


def _rank(mode: ModeConfig, stats: CoverageStats = CoverageStats()):
    day = _day()
    board = AssignmentBoard()
    candidates = discover_candidates(day, "5A", 2, board, excluded_ids={"t_reg"})
    ctx = SlotContext(day=day, class_id="5A", period=2, mode=mode, board=board, stats=stats,
                      population=tuple(c.id for c in candidates))
    return rank_candidates(candidates, ctx)


def test_stay_period_is_protected_by_default() -> None:
    ranking = _rank(RULE_MODE)

    assert [sc.id for sc in ranking.blocked] == ["t_stay"]
    assert ranking.blocked[0].verdict.blocked_by == (STAY_RULE_ID,)
    assert ranking.top().id == "t_free"


def test_stay_with_individual_period_the_same_day_needs_a_manual_swap() -> None:
    ranking = _rank(RULE_MODE)

    swap = next(sc for sc in ranking.ranked if sc.id == "t_swap")
    assert swap.requires_swap is True
    assert swap.verdict.waived == (STAY_RULE_ID,)
    assert swap.score > 0
    assert swap.auto_eligible is False


def test_emergency_profile_turns_the_stay_block_into_a_penalty() -> None:
    ranking = _rank(default_modes()["emergencyMode"])

    assert ranking.blocked == ()
    stay = next(sc for sc in ranking.ranked if sc.id == "t_stay")
    assert stay.verdict.penalties == ((STAY_RULE_ID, pytest.approx(0.7)),)
    # last ladder step (1000 + 10) scaled by (100 - 30) / 100
    assert stay.score == pytest.approx(707.0)


def test_emergency_only_rules_are_ignored_outside_emergencies() -> None:
    rule = GoldenRule(id="GR_X", label="x", enforcement_level=EnforcementLevel.EMERGENCY_ONLY)
    modes = default_modes()

    assert is_rule_applicable(rule, modes["rainyMode"]) is False
    assert is_rule_applicable(rule, modes["emergencyMode"]) is True
    assert is_rule_applicable(GoldenRule(id="GR_Y", label="y", is_active=False), modes["emergencyMode"]) is False


def test_global_rules_are_added_when_the_mode_omits_them() -> None:
    bare = ModeConfig(id="bare", name="Bare", enforcement_profile={STAY_RULE_ID: 40})

    rules = resolve_rules(bare)

    assert [r.id for r in rules] == [STAY_RULE_ID]
    assert rules[0].compliance_percentage == 40


def test_flexible_daily_equity_penalizes_teachers_above_the_mean() -> None:
    day = _day()
    board = AssignmentBoard()
    candidates = discover_candidates(day, "5A", 2, board, excluded_ids={"t_reg"})
    rule = GoldenRule(
        id="GR_DAILY_EQUITY",
        label="Daily equity",
        compliance_percentage=90,
        enforcement_level=EnforcementLevel.FLEXIBLE,
        action=RuleAction.DAILY_EQUITY,
    )
    ctx = SlotContext(
        day=day,
        class_id="5A",
        period=2,
        mode=RULE_MODE,
        board=board,
        stats=CoverageStats(daily={"t_free": 3}),
        population=("t_stay", "t_swap", "t_free"),
    )

    free = candidates.find("t_free")
    verdict = evaluate_rules(free, (rule,), ctx)

    assert verdict.blocked is False
    assert verdict.factor == pytest.approx(0.1)
    assert evaluate_rules(candidates.find("t_stay"), (rule,), ctx).penalties == ()
