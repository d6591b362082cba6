from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from substitute_planner.api.deps import get_planner_service
from substitute_planner.api.routers.sessions import to_assignments
from substitute_planner.api.schemas import AssignmentResponse, AssignRequest
from substitute_planner.services.planner_service import PlannerService

router = APIRouter(prefix="/sessions", tags=["assignments"])


@router.get("/{session_id}/assignments", response_model=list[AssignmentResponse])
def list_assignments(
    session_id: str,
    service: PlannerService = Depends(get_planner_service),
) -> list[AssignmentResponse]:
    return to_assignments(service.get_session(session_id).board)


@router.post("/{session_id}/assignments", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
def assign(
    session_id: str,
    body: AssignRequest,
    service: PlannerService = Depends(get_planner_service),
) -> AssignmentResponse:
    entry = service.get_session(session_id).assign(body.class_id, body.period, body.teacher_id, body.reason)
    return AssignmentResponse(class_id=body.class_id, period=body.period, teacher_id=entry.teacher_id, reason=entry.reason)


@router.delete("/{session_id}/assignments", status_code=status.HTTP_204_NO_CONTENT)
def unassign(
    session_id: str,
    class_id: str = Query(min_length=1),
    period: int = Query(ge=1),
    teacher_id: str = Query(min_length=1),
    service: PlannerService = Depends(get_planner_service),
) -> Response:
    service.get_session(session_id).unassign(class_id, period, teacher_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
