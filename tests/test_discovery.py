from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.candidates.discovery import (
    PRIORITY_ASSIGNED_ELSEWHERE,
    PRIORITY_HOME_ROOM,
    PRIORITY_RELEASED,
    discover_candidates,
    released_by_swap,
)
from substitute_planner.domain.core.schema import LessonType, SlotState

from conftest import build_day, lesson, section, teacher


def _day():
    return build_day(
        employees=[
            teacher("t_hr", home_room_class_id="5A"),
            teacher("t_reg"),
            teacher("t_free"),
            teacher("t_stay"),
            teacher("t_pool"),
            teacher("t_away"),
        ],
        classes=[section("5A", 5), section("6A", 6), section("7A", 7)],
        lessons=[
            lesson("t_hr", "6A", 2),
            lesson("t_reg", "5A", 2),
            lesson("t_reg", "5A", 3),
            lesson("t_free", "7A", 1),
            lesson("t_stay", "7A", 2, lesson_type=LessonType.STAY),
            lesson("t_pool", "7A", 3),
        ],
    )


def test_candidates_are_split_and_classified() -> None:
    found = discover_candidates(_day(), "5A", 2, AssignmentBoard(), excluded_ids={"t_away"}, pool_ids={"t_pool"})

    assert [c.id for c in found.home_room] == ["t_hr"]
    assert [c.id for c in found.pool] == ["t_pool"]
    assert {c.id for c in found.general} == {"t_reg", "t_free", "t_stay"}
    assert found.find("t_away") is None

    hr = found.home_room[0]
    assert hr.state == SlotState.ACTUAL
    assert hr.priority == PRIORITY_HOME_ROOM
    assert hr.label == "home-room teacher, teaching 6A"

    regular = found.find("t_reg")
    assert regular.state == SlotState.RELEASED
    assert regular.priority == PRIORITY_RELEASED
    assert regular.label == "regular teacher of this class"

    assert found.find("t_stay").state == SlotState.STAY
    assert found.find("t_free").state == SlotState.FREE
    assert [c.id for c in found.general] == ["t_reg", "t_stay", "t_free"]


def test_teacher_busy_elsewhere_is_dropped_unless_home_room() -> None:
    board = AssignmentBoard()
    board.assign("7A", 2, "t_free")
    board.assign("7A", 2, "t_hr")

    found = discover_candidates(_day(), "5A", 2, board)

    assert found.find("t_free") is None
    hr = found.find("t_hr")
    assert hr.state == SlotState.ASSIGNED_ELSEWHERE
    assert hr.priority == PRIORITY_ASSIGNED_ELSEWHERE
    assert hr.assigned_elsewhere_class == "7A"
    assert hr.label == "home-room teacher, assigned in 7A"


def test_teacher_already_on_the_slot_is_flagged_in_slot() -> None:
    board = AssignmentBoard()
    board.assign("5A", 2, "t_free")

    found = discover_candidates(_day(), "5A", 2, board)

    assert found.find("t_free").in_slot is True


def test_home_room_takeover_releases_the_regular_teacher() -> None:
    day = _day()
    board = AssignmentBoard()
    board.assign("5A", 3, "t_hr")

    assert released_by_swap(day, board, 3) == {"t_reg"}

    found = discover_candidates(day, "6A", 3, board)
    regular = found.find("t_reg")
    assert regular.state == SlotState.RELEASED
    assert regular.label == "released by swap"


def test_lesson_in_an_excused_class_releases_the_teacher() -> None:
    found = discover_candidates(_day(), "5A", 3, AssignmentBoard(), excused_class_ids={"7A"})

    pool_teacher = found.find("t_pool")
    assert pool_teacher.state == SlotState.RELEASED_BY_TRIP
    assert pool_teacher.priority == 0
    assert pool_teacher.label == "released (7A is away)"


def test_actual_lesson_wins_over_a_stay_row_in_the_same_period() -> None:
    day = build_day(
        employees=[teacher("t_hr", home_room_class_id="5A"), teacher("t_double")],
        classes=[section("5A", 5), section("6A", 6)],
        lessons=[
            lesson("t_double", "6A", 2, lesson_type=LessonType.STAY),
            lesson("t_double", "6A", 2, "Math"),
        ],
    )

    found = discover_candidates(day, "5A", 2, AssignmentBoard())

    assert day.lesson_for_teacher("t_double", 2).type == LessonType.ACTUAL
    assert found.find("t_double").state == SlotState.ACTUAL
