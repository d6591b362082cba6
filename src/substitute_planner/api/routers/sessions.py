from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from substitute_planner.api.deps import get_planner_service
from substitute_planner.api.schemas import (
    AbsenceResponse,
    AssignmentResponse,
    ModeSwitchRequest,
    SessionCreateRequest,
    SessionResponse,
    SubstitutionRecordResponse,
)
from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.core.schema import AbsenceRecord, SubstitutionRecord
from substitute_planner.services.planner_service import PlannerService, PlannerSession

router = APIRouter(prefix="/sessions", tags=["sessions"])


def to_assignments(board: AssignmentBoard) -> list[AssignmentResponse]:
    return [
        AssignmentResponse(class_id=slot.class_id, period=slot.period, teacher_id=entry.teacher_id, reason=entry.reason)
        for slot, entries in board.items()
        for entry in entries
    ]


def _to_absence(absence: AbsenceRecord) -> AbsenceResponse:
    return AbsenceResponse(
        id=absence.id,
        teacher_id=absence.teacher_id,
        date=absence.date,
        type=absence.type.value,
        status=absence.status.value,
        affected_periods=sorted(absence.affected_periods),
        reason=absence.reason,
    )


def _to_record(record: SubstitutionRecord) -> SubstitutionRecordResponse:
    return SubstitutionRecordResponse(
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


def _to_session(session: PlannerSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        date=session.day.date,
        day=session.day.day,
        periods_per_day=session.day.periods_per_day,
        mode_id=session.mode.id,
        available_modes=sorted(session.modes),
        absences=[_to_absence(a) for a in session.absences()],
        assignments=to_assignments(session.board),
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def open_session(
    body: SessionCreateRequest,
    service: PlannerService = Depends(get_planner_service),
) -> SessionResponse:
    session = service.open_session(
        body.day,
        mode_id=body.mode_id,
        modes=body.modes,
        pool_ids=body.pool_ids,
        absences=[a.model_dump() for a in body.absences],
    )
    return _to_session(session)


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    service: PlannerService = Depends(get_planner_service),
) -> SessionResponse:
    return _to_session(service.get_session(session_id))


@router.put("/{session_id}/mode", response_model=SessionResponse)
def switch_mode(
    session_id: str,
    body: ModeSwitchRequest,
    service: PlannerService = Depends(get_planner_service),
) -> SessionResponse:
    session = service.get_session(session_id)
    session.set_mode(body.mode_id)
    return _to_session(session)


@router.post("/{session_id}/commit", response_model=list[SubstitutionRecordResponse])
def commit(
    session_id: str,
    service: PlannerService = Depends(get_planner_service),
) -> list[SubstitutionRecordResponse]:
    return [_to_record(r) for r in service.get_session(session_id).commit()]


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def close_session(
    session_id: str,
    service: PlannerService = Depends(get_planner_service),
) -> Response:
    service.close_session(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
