from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.candidates.discovery import discover_candidates
from substitute_planner.domain.core.schema import (
    HRSettings,
    LessonSettings,
    LessonType,
    ModeConfig,
    ModeKind,
    ModeSettings,
    TeacherSettings,
    TimeSettings,
)
from substitute_planner.domain.rules.context import CoverageStats, SlotContext
from substitute_planner.domain.rules.defaults import default_ladder
from substitute_planner.domain.rules.settings_filter import apply_mode_settings

from conftest import build_day, lesson, section, teacher

STRICT_SETTINGS = ModeSettings(
    teacher=TeacherSettings(disable_external=True, treat_no_lessons_as_off_duty=True, force_home_room_presence=True),
    lesson=LessonSettings(disable_stay=True),
    time=TimeSettings(ignore_gaps_at_start=True, ignore_gaps_at_end=True, max_consecutive_periods=3),
    hr=HRSettings(max_daily_coverage=2, max_weekly_coverage=5),
)


def _mode(settings: ModeSettings = STRICT_SETTINGS) -> ModeConfig:
    return ModeConfig(
        id="filtered",
        name="Filtered",
        linked_event_type=ModeKind.NORMAL,
        priority_ladder=default_ladder(),
        settings=settings,
    )


def _day():
    return build_day(
        employees=[
            teacher("t_reg"),
            teacher("ext", is_external=True),
            teacher("t_off"),
            teacher("t_stay"),
            teacher("t_hr", home_room_class_id="5A"),
            teacher("t_late"),
            teacher("t_early"),
            teacher("t_busy"),
            teacher("t_capped"),
            teacher("t_weekly"),
            teacher("t_ok"),
        ],
        classes=[section("5A", 5), section("6A", 6), section("7A", 7)],
        lessons=[
            lesson("t_reg", "5A", 3),
            lesson("t_stay", "6A", 2),
            lesson("t_stay", "6A", 3, lesson_type=LessonType.STAY),
            lesson("t_hr", "7A", 3, lesson_type=LessonType.STAY),
            lesson("t_late", "6A", 5),
            lesson("t_late", "6A", 6),
            lesson("t_early", "7A", 1),
            lesson("t_early", "7A", 2),
            lesson("t_busy", "6A", 1),
            lesson("t_busy", "7A", 2),
            lesson("t_busy", "6A", 4),
            lesson("t_busy", "7A", 5),
            lesson("t_capped", "7A", 4),
            lesson("t_capped", "6A", 2),
            lesson("t_weekly", "7A", 6),
            lesson("t_weekly", "6A", 1),
            lesson("t_ok", "6A", 6),
            lesson("t_ok", "7A", 2),
        ],
    )


def _filter(board: AssignmentBoard, mode: ModeConfig):
    day = _day()
    candidates = discover_candidates(day, "5A", 3, board, excluded_ids={"t_reg"})
    ctx = SlotContext(
        day=day,
        class_id="5A",
        period=3,
        mode=mode,
        board=board,
        stats=CoverageStats(daily={"t_capped": 2}, weekly={"t_capped": 2, "t_weekly": 5}),
    )
    return apply_mode_settings(candidates, ctx)


def test_each_toggle_removes_its_candidates_with_a_reason() -> None:
    outcome = _filter(AssignmentBoard(), _mode())
    reasons = {c.id: reason for c, reason in outcome.removed}

    assert {c.id for c in outcome.kept} == {"t_hr", "t_ok"}
    assert reasons == {
        "ext": "external staff disabled in this mode",
        "t_off": "no lessons today (off duty)",
        "t_stay": "stay periods disabled in this mode",
        "t_late": "not in school yet (first lesson in period 5)",
        "t_early": "already gone (last lesson in period 2)",
        "t_busy": "more than 3 consecutive periods",
        "t_capped": "daily coverage cap reached (2)",
        "t_weekly": "weekly coverage cap reached (5)",
    }


def test_default_settings_remove_nobody() -> None:
    outcome = _filter(AssignmentBoard(), _mode(ModeSettings()))

    assert outcome.removed == ()


def test_caps_do_not_remove_a_teacher_already_on_the_slot() -> None:
    board = AssignmentBoard()
    board.assign("5A", 3, "t_capped")

    outcome = _filter(board, _mode())

    assert "t_capped" in {c.id for c in outcome.kept}
    assert "t_capped" not in outcome.removed_ids()
