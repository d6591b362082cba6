import pytest

from substitute_planner.domain.core.io import mode_from_dict, school_day_from_dict
from substitute_planner.domain.core.validate import ValidationError, validate_mode, validate_school_day
from substitute_planner.domain.rules.defaults import default_modes


def test_validate_reports_errors_for_invalid_day() -> None:
    invalid_day = {
        "date": "2024-09-01",
        "periods_per_day": 6,
        "employees": [
            {"id": "t1", "home_room_class_id": "9Z"},
            {"id": "t1"},
        ],
        "classes": [{"id": "5A", "grade_level": 5}],
        "lessons": [
            {"day": "sunday", "period": 1, "teacher_id": "ghost", "class_id": "5A"},
            {"day": "sunday", "period": 7, "teacher_id": "t1", "class_id": "5A"},
            {"day": "sunday", "period": 2, "teacher_id": "t1", "class_id": "5A"},
            {"day": "sunday", "period": 2, "teacher_id": "t1", "class_id": "6B"},
        ],
    }

    report = validate_school_day(school_day_from_dict(invalid_day), raise_on_error=False)

    assert report.ok is False
    assert any("Duplicated employee ids" in err for err in report.errors)
    assert any("unknown class '9Z'" in err for err in report.errors)
    assert any("unknown teacher 'ghost'" in err for err in report.errors)
    assert any("period outside 1..6" in err for err in report.errors)
    assert any("two actual lessons" in err for err in report.errors)
    assert any("unknown class '6B'" in w for w in report.warnings)


def test_validate_raises_by_default() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_school_day(school_day_from_dict({"date": "2024-09-01", "periods_per_day": 0}))

    assert exc_info.value.errors == ["periods_per_day must be > 0 (got 0)."]


def test_builtin_modes_are_valid() -> None:
    for mode in default_modes().values():
        assert validate_mode(mode).ok


def test_validate_mode_checks_ladder_and_rules() -> None:
    mode = mode_from_dict(
        {
            "id": "custom",
            "name": "Custom",
            "linked_event_type": "NORMAL",
            "target": "specific_classes",
            "golden_rules": [
                {"id": "GR_A", "compliance_percentage": 120},
                {"id": "GR_A"},
            ],
            "priority_ladder": [
                {"id": "s1", "order": 1, "weight_percentage": 10},
                {"id": "s1", "order": 3, "weight_percentage": -5},
            ],
            "enforcement_profile": {"GR_A": 101},
        }
    )

    report = validate_mode(mode, raise_on_error=False)

    assert report.ok is False
    assert len(report.errors) == 6
    assert report.warnings == ["Mode 'custom' targets specific classes but lists none."]
