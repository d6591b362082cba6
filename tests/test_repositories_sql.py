from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from substitute_planner.domain.core.schema import (
    AbsenceRecord,
    AbsenceType,
    SubstitutionKind,
    SubstitutionRecord,
)
from substitute_planner.infra.db.models import Base
from substitute_planner.infra.repositories.sql_absence_repository import SqlAbsenceRepository
from substitute_planner.infra.repositories.sql_substitution_repository import SqlSubstitutionRecordRepository
from substitute_planner.services.errors import NotFoundError


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


def _record(record_id: str, on: date, substitute_id: str, minute: int) -> SubstitutionRecord:
    return SubstitutionRecord(
        id=record_id,
        date=on,
        period=1,
        class_id="5A",
        absent_teacher_id="t_math",
        substitute_id=substitute_id,
        reason="Free teacher",
        mode_context="emergencyMode",
        kind=SubstitutionKind.ASSIGN_DISTRIBUTION,
        created_at=datetime(2024, 9, 1, 8, minute, tzinfo=timezone.utc),
    )


def test_substitution_records_are_append_only(db: Session) -> None:
    repo = SqlSubstitutionRecordRepository(db)

    first = repo.add(_record("r1", date(2024, 9, 1), "t_free", 0))
    repo.add(_record("r1", date(2024, 9, 1), "someone_else", 5))
    repo.add(_record("r2", date(2024, 9, 2), "t_hr", 10))

    assert first.kind == SubstitutionKind.ASSIGN_DISTRIBUTION
    assert first.created_at.tzinfo is not None
    assert [r.id for r in repo.list()] == ["r1", "r2"]
    assert repo.list()[0].substitute_id == "t_free"
    assert [r.id for r in repo.list_for_date(date(2024, 9, 2))] == ["r2"]
    assert [r.id for r in repo.list_for_substitute("t_free")] == ["r1"]


def test_absences_round_trip_and_grow(db: Session) -> None:
    repo = SqlAbsenceRepository(db)
    absence = AbsenceRecord(
        id="a1",
        teacher_id="t_math",
        date=date(2024, 9, 1),
        type=AbsenceType.PARTIAL,
        affected_periods=frozenset({2}),
    )

    repo.save(absence)
    repo.save(absence.with_period(4))

    found = repo.find("t_math", date(2024, 9, 1))
    assert found is not None
    assert found.affected_periods == frozenset({2, 4})
    assert repo.get("a1").type == AbsenceType.PARTIAL
    assert repo.find("t_math", date(2024, 9, 2)) is None
    assert len(repo.list_for_date(date(2024, 9, 1))) == 1

    with pytest.raises(NotFoundError):
        repo.get("missing")


def test_close_ends_the_database_session(db: Session) -> None:
    repo = SqlSubstitutionRecordRepository(db)
    repo.list()
    assert db.in_transaction()

    repo.close()

    assert not db.in_transaction()
