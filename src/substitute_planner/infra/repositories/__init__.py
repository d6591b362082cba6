from substitute_planner.infra.repositories.absence_repository import AbsenceRepository, InMemoryAbsenceRepository
from substitute_planner.infra.repositories.substitution_repository import (
    InMemorySubstitutionRecordRepository,
    SubstitutionRecordRepository,
)

__all__ = [
    "AbsenceRepository",
    "InMemoryAbsenceRepository",
    "InMemorySubstitutionRecordRepository",
    "SubstitutionRecordRepository",
]
