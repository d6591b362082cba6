from __future__ import annotations

from fastapi import APIRouter, Depends

from substitute_planner.api.deps import get_planner_service
from substitute_planner.api.schemas import (
    BreakdownEntry,
    CandidateResponse,
    RemovedCandidateResponse,
    ScoredCandidateResponse,
    SlotCandidatesResponse,
)
from substitute_planner.domain.candidates.discovery import Candidate
from substitute_planner.domain.rules.ladder import ScoredCandidate
from substitute_planner.services.planner_service import PlannerService

router = APIRouter(prefix="/sessions", tags=["candidates"])


def _to_candidate(c: Candidate) -> CandidateResponse:
    return CandidateResponse(
        teacher_id=c.id,
        name=c.employee.name,
        state=c.state.value,
        priority=c.priority,
        label=c.label,
        is_home_room=c.is_home_room,
        is_pool=c.is_pool,
        in_slot=c.in_slot,
        assigned_elsewhere_class=c.assigned_elsewhere_class,
    )


def _to_scored(sc: ScoredCandidate) -> ScoredCandidateResponse:
    return ScoredCandidateResponse(
        teacher_id=sc.id,
        score=sc.score,
        primary_step=sc.primary_step,
        requires_swap=sc.requires_swap,
        breakdown=[BreakdownEntry(label=label, delta=delta) for label, delta in sc.breakdown],
    )


@router.get("/{session_id}/slots/{class_id}/{period}/candidates", response_model=SlotCandidatesResponse)
def get_slot_candidates(
    session_id: str,
    class_id: str,
    period: int,
    service: PlannerService = Depends(get_planner_service),
) -> SlotCandidatesResponse:
    view = service.get_session(session_id).get_slot_candidates(class_id, period)
    return SlotCandidatesResponse(
        class_id=view.slot.class_id,
        period=view.slot.period,
        pool=[_to_candidate(c) for c in view.candidates.pool],
        home_room=[_to_candidate(c) for c in view.candidates.home_room],
        general=[_to_candidate(c) for c in view.candidates.general],
        removed=[RemovedCandidateResponse(teacher_id=c.id, reason=reason) for c, reason in view.removed],
        ranking=[_to_scored(sc) for sc in view.ranking.ranked],
        blocked=[
            RemovedCandidateResponse(teacher_id=sc.id, reason=", ".join(sc.verdict.blocked_by))
            for sc in view.ranking.blocked
        ],
    )
