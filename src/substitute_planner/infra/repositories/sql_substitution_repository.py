from __future__ import annotations

from datetime import date, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from substitute_planner.domain.core.schema import SubstitutionKind, SubstitutionRecord
from substitute_planner.infra.db.models import SubstitutionRecordModel
from substitute_planner.infra.repositories.substitution_repository import SubstitutionRecordRepository


class SqlSubstitutionRecordRepository(SubstitutionRecordRepository):
    def __init__(self, db: Session) -> None:
        self._db = db

    def _to_record(self, model: SubstitutionRecordModel) -> SubstitutionRecord:
        created_at = model.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return SubstitutionRecord(
            id=model.id,
            date=model.date,
            period=model.period,
            class_id=model.class_id,
            absent_teacher_id=model.absent_teacher_id,
            substitute_id=model.substitute_id,
            reason=model.reason,
            mode_context=model.mode_context,
            kind=SubstitutionKind(model.kind),
            created_at=created_at.astimezone(timezone.utc),
        )

    def list(self) -> list[SubstitutionRecord]:
        rows = self._db.scalars(
            select(SubstitutionRecordModel).order_by(SubstitutionRecordModel.created_at.asc())
        ).all()
        return [self._to_record(row) for row in rows]

    def add(self, record: SubstitutionRecord) -> SubstitutionRecord:
        existing = self._db.get(SubstitutionRecordModel, record.id)
        if existing is not None:
            return self._to_record(existing)

        model = SubstitutionRecordModel(
            id=record.id,
            date=record.date,
            period=record.period,
            class_id=record.class_id,
            absent_teacher_id=record.absent_teacher_id,
            substitute_id=record.substitute_id,
            reason=record.reason,
            mode_context=record.mode_context,
            kind=record.kind.value,
            created_at=record.created_at,
        )
        self._db.add(model)
        self._db.commit()
        self._db.refresh(model)
        return self._to_record(model)

    def list_for_date(self, on: date) -> list[SubstitutionRecord]:
        rows = self._db.scalars(
            select(SubstitutionRecordModel)
            .where(SubstitutionRecordModel.date == on)
            .order_by(SubstitutionRecordModel.created_at.asc())
        ).all()
        return [self._to_record(row) for row in rows]

    def list_for_substitute(self, teacher_id: str) -> list[SubstitutionRecord]:
        rows = self._db.scalars(
            select(SubstitutionRecordModel)
            .where(SubstitutionRecordModel.substitute_id == teacher_id)
            .order_by(SubstitutionRecordModel.created_at.asc())
        ).all()
        return [self._to_record(row) for row in rows]

    def close(self) -> None:
        self._db.close()
