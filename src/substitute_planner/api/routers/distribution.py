from __future__ import annotations

from fastapi import APIRouter, Depends

from substitute_planner.api.deps import get_planner_service
from substitute_planner.api.schemas import (
    AssignmentResponse,
    CompanionResponse,
    DistributionRequestBody,
    DistributionResponse,
    RemovedCandidateResponse,
    SlotTraceResponse,
    UnresolvedSlotResponse,
)
from substitute_planner.domain.core.schema import ProposedAssignment, SlotKey
from substitute_planner.services.planner_service import PlannerService

router = APIRouter(prefix="/sessions", tags=["distribution"])


def _to_assignment(p: ProposedAssignment) -> AssignmentResponse:
    return AssignmentResponse(class_id=p.class_id, period=p.period, teacher_id=p.teacher_id, reason=p.reason)


@router.post("/{session_id}/distribution", response_model=DistributionResponse)
def run_distribution(
    session_id: str,
    body: DistributionRequestBody,
    service: PlannerService = Depends(get_planner_service),
) -> DistributionResponse:
    session = service.get_session(session_id)
    batch = session.run_auto_distribution(
        target_slots=[SlotKey(s.class_id, s.period) for s in body.target_slots],
        trip_class_ids=body.trip_class_ids,
        confirmed_companion_ids=body.confirmed_companion_ids,
        merged_class_ids=body.merged_class_ids,
        excused_class_ids=body.excused_class_ids,
    )

    response = DistributionResponse(
        path=batch.path.value,
        assignments=[_to_assignment(a) for a in batch.assignments],
        unresolved=[
            UnresolvedSlotResponse(class_id=u.slot.class_id, period=u.slot.period, reason=u.reason)
            for u in batch.unresolved
        ],
        companions=[
            CompanionResponse(
                teacher_id=c.id,
                name=c.employee.name,
                lesson_count=c.lesson_count,
                main_class_id=c.main_class_id,
            )
            for c in batch.companions
        ],
        warnings=list(batch.warnings),
        traces=[
            SlotTraceResponse(
                class_id=t.slot.class_id,
                period=t.slot.period,
                path=t.path.value,
                chosen=t.chosen,
                note=t.note,
                removed=[RemovedCandidateResponse(teacher_id=tid, reason=reason) for tid, reason in t.removed],
            )
            for t in batch.traces
        ],
    )

    if body.apply:
        result = session.apply_batch(batch.assignments)
        response.applied = [_to_assignment(a) for a in result.applied]
        response.conflicts = [message for _, message in result.conflicts]

    return response
