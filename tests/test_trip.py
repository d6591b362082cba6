from substitute_planner.domain.distribution.trip import (
    TRIP_COMPANION_REASON,
    companion_assignments,
    rank_companions,
    trip_participants,
)

from conftest import build_day, lesson, section, teacher


def trip_day():
    return build_day(
        employees=[
            teacher("t_hr5a", home_room_class_id="5A"),
            teacher("t1"),
            teacher("t2"),
            teacher("t3"),
            teacher("t4"),
        ],
        classes=[section("5A", 5), section("5B", 5), section("6A", 6)],
        lessons=[
            lesson("t1", "5A", 1),
            lesson("t1", "5A", 2),
            lesson("t1", "5A", 3),
            lesson("t2", "5A", 4),
            lesson("t_hr5a", "5A", 5),
            lesson("t2", "5B", 1),
            lesson("t3", "5B", 2),
            lesson("t3", "5B", 3),
            lesson("t1", "6A", 4),
            lesson("t4", "6A", 1),
        ],
    )


def test_companions_are_ranked_by_lessons_with_the_outgoing_classes() -> None:
    ranked = rank_companions(trip_day(), ["5A", "5B"])

    assert [(c.id, c.lesson_count, c.main_class_id) for c in ranked] == [
        ("t1", 3, "5A"),
        ("t2", 2, "5A"),
        ("t3", 2, "5B"),
    ]


def test_home_room_teachers_of_outgoing_classes_are_not_companion_candidates() -> None:
    ranked = rank_companions(trip_day(), ["5A"])

    assert "t_hr5a" not in {c.id for c in ranked}
    assert trip_participants(trip_day(), ["5A"], {"t2"}) == frozenset({"t_hr5a", "t2"})


def test_only_confirmed_companions_are_assigned_to_their_main_class() -> None:
    ranked = rank_companions(trip_day(), ["5A", "5B"])

    proposals = companion_assignments(ranked, {"t3"}, [2, 1, 2])

    assert [(p.class_id, p.period, p.teacher_id, p.reason) for p in proposals] == [
        ("5B", 1, "t3", TRIP_COMPANION_REASON),
        ("5B", 2, "t3", TRIP_COMPANION_REASON),
    ]
