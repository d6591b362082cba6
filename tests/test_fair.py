import random
from collections import Counter

from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.core.schema import SlotKey
from substitute_planner.domain.distribution.fair import fair_distribute

from conftest import build_day, lesson, section, teacher


def _grade5_day(extra_lessons=()):
    """5A and 5B over four periods, taught by three teachers; t3 is only in for periods 2-3."""
    return build_day(
        employees=[teacher("t1"), teacher("t2"), teacher("t3")],
        classes=[section("5A", 5), section("5B", 5), section("6A", 6)],
        lessons=[
            lesson("t1", "5A", 1),
            lesson("t2", "5B", 1),
            lesson("t2", "5A", 2),
            lesson("t3", "5B", 2),
            lesson("t3", "5A", 3),
            lesson("t1", "5B", 3),
            lesson("t1", "5A", 4),
            lesson("t2", "5B", 4),
            *extra_lessons,
        ],
    )


def _assert_no_double_booking(assignments) -> None:
    seen = Counter((a.teacher_id, a.period) for a in assignments)
    assert all(n == 1 for n in seen.values())


def test_rainy_merge_of_two_sections_covers_everything_evenly() -> None:
    result = fair_distribute(_grade5_day(), ["5A", "5B"], {"5A", "5B"}, [1, 2, 3, 4])

    assert result.uncovered == ()
    assert len(result.assignments) == 8
    assert {a.slot for a in result.assignments} == {SlotKey(c, p) for c in ("5A", "5B") for p in (1, 2, 3, 4)}
    assert max(result.loads.values()) - min(result.loads.values()) <= 1
    assert result.loads == {"t1": 3, "t2": 3, "t3": 2}
    _assert_no_double_booking(result.assignments)
    assert all(a.reason.startswith("merge of 2 sections - fair distribution") for a in result.assignments)


def test_teacher_is_never_placed_on_a_conflict_period() -> None:
    day = _grade5_day(extra_lessons=[lesson("t1", "6A", 2)])

    result = fair_distribute(day, ["5A", "5B"], {"5A", "5B"}, [1, 2, 3, 4])

    assert result.uncovered == ()
    assert not any(a.teacher_id == "t1" and a.period == 2 for a in result.assignments)
    _assert_no_double_booking(result.assignments)
    lessons_in_merged = {"t1": 3, "t2": 3, "t3": 2}
    assert all(result.loads[t] <= lessons_in_merged[t] + 1 for t in result.loads)
    assert any(a.reason.endswith("[teaches several grades]") for a in result.assignments if a.teacher_id == "t1")


def test_load_bound_holds_with_a_shuffled_teacher_order() -> None:
    for seed in range(5):
        result = fair_distribute(_grade5_day(), ["5A", "5B"], {"5A", "5B"}, [1, 2, 3, 4], rng=random.Random(seed))

        assert result.loads["t1"] <= 4
        assert result.loads["t2"] <= 4
        assert result.loads["t3"] <= 3
        _assert_no_double_booking(result.assignments)
        assert len(result.assignments) + len(result.uncovered) == 8


def test_single_merged_section_keeps_regular_teachers() -> None:
    result = fair_distribute(_grade5_day(), ["5A", "5B"], {"5A"}, [1])

    assert [(a.class_id, a.teacher_id, a.reason) for a in result.assignments] == [
        ("5A", "t1", "regular teacher"),
        ("5B", "t2", "regular teacher"),
    ]


def test_slots_without_an_eligible_teacher_are_reported() -> None:
    day = build_day(
        employees=[teacher("t1")],
        classes=[section("5A", 5), section("5B", 5)],
        lessons=[lesson("t1", "5A", 1), lesson("t1", "5B", 2)],
    )

    result = fair_distribute(day, ["5A", "5B"], {"5A", "5B"}, [1, 2])

    assert result.uncovered == (SlotKey("5B", 1), SlotKey("5B", 2))
    assert len(result.warnings) == 2
    assert result.loads == {"t1": 2}


def test_existing_board_entries_are_respected() -> None:
    board = AssignmentBoard()
    board.assign("5A", 1, "t2")

    result = fair_distribute(_grade5_day(), ["5A", "5B"], {"5A", "5B"}, [1], board=board)

    assert [(a.class_id, a.teacher_id) for a in result.assignments] == [("5B", "t1")]
    assert board.entries("5B", 1) == ()


def test_two_grade5_sections_over_a_full_day_with_three_teachers() -> None:
    rota = {
        1: ("t1", "t2"),
        2: ("t3", "t1"),
        3: ("t2", "t3"),
        4: ("t1", "t2"),
        5: ("t3", "t1"),
        6: ("t2", "t3"),
        7: ("t1", "t2"),
    }
    day = build_day(
        employees=[teacher("t1"), teacher("t2"), teacher("t3")],
        classes=[section("5A", 5), section("5B", 5)],
        lessons=[lesson(tid, cid, p) for p, pair in rota.items() for tid, cid in zip(pair, ("5A", "5B"))],
    )

    result = fair_distribute(day, ["5A", "5B"], {"5A", "5B"}, range(1, 8))

    assert result.uncovered == ()
    assert {a.slot for a in result.assignments} == {SlotKey(c, p) for c in ("5A", "5B") for p in range(1, 8)}
    assert max(result.loads.values()) - min(result.loads.values()) <= 1
    assert result.loads == {"t1": 5, "t2": 5, "t3": 4}
    _assert_no_double_booking(result.assignments)
