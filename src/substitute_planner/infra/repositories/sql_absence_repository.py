from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from substitute_planner.domain.core.schema import AbsenceRecord, AbsenceStatus, AbsenceType
from substitute_planner.infra.db.models import AbsenceModel
from substitute_planner.infra.repositories.absence_repository import AbsenceRepository
from substitute_planner.services.errors import NotFoundError


class SqlAbsenceRepository(AbsenceRepository):
    def __init__(self, db: Session) -> None:
        self._db = db

    def _to_record(self, model: AbsenceModel) -> AbsenceRecord:
        return AbsenceRecord(
            id=model.id,
            teacher_id=model.teacher_id,
            date=model.date,
            type=AbsenceType(model.type),
            status=AbsenceStatus(model.status),
            affected_periods=frozenset(int(p) for p in model.affected_periods or []),
            reason=model.reason,
        )

    def list(self) -> list[AbsenceRecord]:
        rows = self._db.scalars(select(AbsenceModel).order_by(AbsenceModel.date.asc(), AbsenceModel.teacher_id.asc())).all()
        return [self._to_record(row) for row in rows]

    def get(self, absence_id: str) -> AbsenceRecord:
        row = self._db.get(AbsenceModel, absence_id)
        if row is None:
            raise NotFoundError("Absence", absence_id)
        return self._to_record(row)

    def find(self, teacher_id: str, on: date) -> AbsenceRecord | None:
        row = self._db.scalars(
            select(AbsenceModel).where(AbsenceModel.teacher_id == teacher_id, AbsenceModel.date == on)
        ).first()
        return self._to_record(row) if row is not None else None

    def list_for_date(self, on: date) -> list[AbsenceRecord]:
        rows = self._db.scalars(
            select(AbsenceModel).where(AbsenceModel.date == on).order_by(AbsenceModel.teacher_id.asc())
        ).all()
        return [self._to_record(row) for row in rows]

    def save(self, record: AbsenceRecord) -> AbsenceRecord:
        model = self._db.get(AbsenceModel, record.id)
        if model is None:
            model = AbsenceModel(id=record.id, teacher_id=record.teacher_id, date=record.date)

        model.type = record.type.value
        model.status = record.status.value
        model.affected_periods = sorted(record.affected_periods)
        model.reason = record.reason

        self._db.add(model)
        self._db.commit()
        self._db.refresh(model)
        return self._to_record(model)

    def close(self) -> None:
        self._db.close()
