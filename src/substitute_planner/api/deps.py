from __future__ import annotations

from substitute_planner.infra.repositories.absence_repository import AbsenceRepository, InMemoryAbsenceRepository
from substitute_planner.infra.repositories.substitution_repository import (
    InMemorySubstitutionRecordRepository,
    SubstitutionRecordRepository,
)
from substitute_planner.services.planner_service import PlannerService
from substitute_planner.settings import load_settings

settings = load_settings()
_memory_records = InMemorySubstitutionRecordRepository()
_memory_absences = InMemoryAbsenceRepository()


def _memory_repositories() -> tuple[SubstitutionRecordRepository, AbsenceRepository]:
    return _memory_records, _memory_absences


def _postgres_repositories() -> tuple[SubstitutionRecordRepository, AbsenceRepository]:
    # one database session per planner session, closed by PlannerService.close_session
    from substitute_planner.infra.db.session import SessionLocal
    from substitute_planner.infra.repositories.sql_absence_repository import SqlAbsenceRepository
    from substitute_planner.infra.repositories.sql_substitution_repository import SqlSubstitutionRecordRepository

    db = SessionLocal()
    return SqlSubstitutionRecordRepository(db), SqlAbsenceRepository(db)


if settings.db_backend == "postgres":
    _repositories = _postgres_repositories
else:
    _repositories = _memory_repositories

planner_service = PlannerService(repositories=_repositories, settings=settings)


def get_planner_service() -> PlannerService:
    return planner_service
