from substitute_planner.domain.core.io import mode_from_dict, record_to_dict, school_day_from_dict
from substitute_planner.domain.core.validate import ValidationReport, validate_mode, validate_school_day

__all__ = [
    "mode_from_dict",
    "record_to_dict",
    "school_day_from_dict",
    "ValidationReport",
    "validate_mode",
    "validate_school_day",
]
