from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    detail: str | list[str]


class HealthResponse(BaseModel):
    status: str
    app: str
    version: str


# ---------- Sessions ----------

class AbsenceInput(BaseModel):
    teacher_id: str = Field(min_length=1)
    type: Literal["FULL", "PARTIAL"] = "FULL"
    periods: list[int] = Field(default_factory=list)
    reason: str = ""


class SessionCreateRequest(BaseModel):
    day: dict[str, Any]
    mode_id: str | None = None
    modes: list[dict[str, Any]] = Field(default_factory=list)
    pool_ids: list[str] = Field(default_factory=list)
    absences: list[AbsenceInput] = Field(default_factory=list)


class ModeSwitchRequest(BaseModel):
    mode_id: str = Field(min_length=1)


class AbsenceResponse(BaseModel):
    id: str
    teacher_id: str
    date: dt.date
    type: str
    status: str
    affected_periods: list[int]
    reason: str


class AssignmentResponse(BaseModel):
    class_id: str
    period: int
    teacher_id: str
    reason: str


class SessionResponse(BaseModel):
    id: str
    date: dt.date
    day: str
    periods_per_day: int
    mode_id: str
    available_modes: list[str]
    absences: list[AbsenceResponse]
    assignments: list[AssignmentResponse]


# ---------- Candidates ----------

class CandidateResponse(BaseModel):
    teacher_id: str
    name: str
    state: str
    priority: int
    label: str
    is_home_room: bool
    is_pool: bool
    in_slot: bool
    assigned_elsewhere_class: str | None = None


class RemovedCandidateResponse(BaseModel):
    teacher_id: str
    reason: str


class BreakdownEntry(BaseModel):
    label: str
    delta: float


class ScoredCandidateResponse(BaseModel):
    teacher_id: str
    score: float
    primary_step: str | None
    requires_swap: bool
    breakdown: list[BreakdownEntry]


class SlotCandidatesResponse(BaseModel):
    class_id: str
    period: int
    pool: list[CandidateResponse]
    home_room: list[CandidateResponse]
    general: list[CandidateResponse]
    removed: list[RemovedCandidateResponse]
    ranking: list[ScoredCandidateResponse]
    blocked: list[RemovedCandidateResponse]


# ---------- Distribution ----------

class SlotRef(BaseModel):
    class_id: str
    period: int = Field(ge=1)


class DistributionRequestBody(BaseModel):
    target_slots: list[SlotRef] = Field(default_factory=list)
    trip_class_ids: list[str] = Field(default_factory=list)
    confirmed_companion_ids: list[str] = Field(default_factory=list)
    merged_class_ids: list[str] = Field(default_factory=list)
    excused_class_ids: list[str] = Field(default_factory=list)
    apply: bool = False


class UnresolvedSlotResponse(BaseModel):
    class_id: str
    period: int
    reason: str


class CompanionResponse(BaseModel):
    teacher_id: str
    name: str
    lesson_count: int
    main_class_id: str


class SlotTraceResponse(BaseModel):
    class_id: str
    period: int
    path: str
    chosen: str | None
    note: str
    removed: list[RemovedCandidateResponse]


class DistributionResponse(BaseModel):
    path: str
    assignments: list[AssignmentResponse]
    unresolved: list[UnresolvedSlotResponse]
    companions: list[CompanionResponse]
    warnings: list[str]
    traces: list[SlotTraceResponse]
    applied: list[AssignmentResponse] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)


# ---------- Assignments and history ----------

class AssignRequest(BaseModel):
    class_id: str = Field(min_length=1)
    period: int = Field(ge=1)
    teacher_id: str = Field(min_length=1)
    reason: str = ""


class SubstitutionRecordResponse(BaseModel):
    id: str
    date: dt.date
    period: int
    class_id: str
    absent_teacher_id: str | None
    substitute_id: str
    reason: str
    mode_context: str
    kind: str
    created_at: dt.datetime
