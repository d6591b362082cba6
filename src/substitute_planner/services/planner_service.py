from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from threading import Lock
from typing import Any
from uuid import uuid4

from substitute_planner.domain.assignments.board import AssignmentBoard, BatchApplyResult
from substitute_planner.domain.candidates.discovery import Candidate, SlotCandidates, discover_candidates
from substitute_planner.domain.core.io import mode_from_dict, school_day_from_dict
from substitute_planner.domain.core.schema import (
    AbsenceRecord,
    AbsenceStatus,
    AbsenceType,
    AssignmentEntry,
    ModeConfig,
    ProposedAssignment,
    SlotKey,
    SubstitutionKind,
    SubstitutionRecord,
)
from substitute_planner.domain.core.timetable import SchoolDay
from substitute_planner.domain.core.validate import ValidationError, validate_mode, validate_school_day
from substitute_planner.domain.distribution.orchestrator import DistributionBatch, DistributionRequest, run_distribution
from substitute_planner.domain.rules.context import SlotContext, build_coverage_stats
from substitute_planner.domain.rules.defaults import default_modes
from substitute_planner.domain.rules.ladder import RankedSlot, rank_candidates
from substitute_planner.domain.rules.settings_filter import apply_mode_settings
from substitute_planner.infra.repositories.absence_repository import AbsenceRepository
from substitute_planner.infra.repositories.substitution_repository import SubstitutionRecordRepository
from substitute_planner.services.errors import BadRequestError, NotFoundError
from substitute_planner.settings import Settings, load_settings

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[], tuple[SubstitutionRecordRepository, AbsenceRepository]]

AUTO_ABSENCE_REASON = "registered from a manual assignment"


@dataclass(frozen=True)
class SlotCandidatesView:
    slot: SlotKey
    candidates: SlotCandidates
    removed: tuple[tuple[Candidate, str], ...]
    ranking: RankedSlot


class PlannerSession:
    """One operator working one school day. Not shared between threads."""

    def __init__(
        self,
        session_id: str,
        day: SchoolDay,
        *,
        records: SubstitutionRecordRepository,
        absences: AbsenceRepository,
        modes: dict[str, ModeConfig] | None = None,
        mode_id: str = "normalMode",
        pool_ids: Iterable[str] = (),
        rng: random.Random | None = None,
    ) -> None:
        self.id = session_id
        self.day = day
        self.board = AssignmentBoard()
        self.pool_ids = frozenset(pool_ids)
        self._records = records
        self._absences = absences
        self._modes = modes if modes is not None else default_modes()
        self._rng = rng
        self._from_batch: set[tuple[str, int, str]] = set()
        self._committed: set[tuple[str, int, str]] = set()
        self._mode = self._resolve_mode(mode_id)

    # ---------- Mode ----------

    @property
    def mode(self) -> ModeConfig:
        return self._mode

    @property
    def modes(self) -> dict[str, ModeConfig]:
        return dict(self._modes)

    def set_mode(self, mode_id: str) -> ModeConfig:
        self._mode = self._resolve_mode(mode_id)
        logger.debug("Session %s switched to mode %s", self.id, mode_id)
        return self._mode

    def _resolve_mode(self, mode_id: str) -> ModeConfig:
        mode = self._modes.get(mode_id)
        if mode is None:
            raise NotFoundError("Mode", mode_id)
        return mode

    # ---------- Absences ----------

    def absences(self) -> list[AbsenceRecord]:
        return [a for a in self._absences.list_for_date(self.day.date) if a.status != AbsenceStatus.CANCELLED]

    def absent_ids(self) -> frozenset[str]:
        return frozenset(a.teacher_id for a in self.absences() if a.type == AbsenceType.FULL)

    def partial_absences(self) -> dict[str, frozenset[int]]:
        return {a.teacher_id: a.affected_periods for a in self.absences() if a.type == AbsenceType.PARTIAL}

    def away_at(self, period: int) -> frozenset[str]:
        return frozenset(a.teacher_id for a in self.absences() if a.covers_period(period))

    def register_absence(
        self,
        teacher_id: str,
        *,
        absence_type: AbsenceType = AbsenceType.FULL,
        periods: Iterable[int] = (),
        reason: str = "",
    ) -> AbsenceRecord:
        self._require_employee(teacher_id)
        periods = list(periods)
        if absence_type == AbsenceType.PARTIAL and not periods:
            raise BadRequestError(f"Partial absence for '{teacher_id}' needs at least one period")
        existing = self._absences.find(teacher_id, self.day.date)
        if existing is not None and existing.status != AbsenceStatus.CANCELLED:
            if existing.type == AbsenceType.PARTIAL and absence_type == AbsenceType.PARTIAL:
                merged = existing
                for p in periods:
                    merged = merged.with_period(self._require_period(p))
                return self._absences.save(merged)
            if existing.type == AbsenceType.PARTIAL and absence_type == AbsenceType.FULL:
                logger.debug("Session %s: absence of %s upgraded to FULL", self.id, teacher_id)
                return self._absences.save(replace(existing, type=AbsenceType.FULL, reason=reason or existing.reason))
            return existing

        record = AbsenceRecord(
            id=str(uuid4()),
            teacher_id=teacher_id,
            date=self.day.date,
            type=absence_type,
            affected_periods=frozenset(self._require_period(p) for p in periods),
            reason=reason,
        )
        return self._absences.save(record)

    # ---------- Candidates and distribution ----------

    def _context(self, class_id: str, period: int, candidates: SlotCandidates) -> SlotContext:
        history = self._records.list()
        return SlotContext(
            day=self.day,
            class_id=class_id,
            period=period,
            mode=self._mode,
            board=self.board,
            stats=build_coverage_stats(history, self.board, self.day.date),
            population=tuple(c.id for c in candidates if not c.employee.is_external),
        )

    def get_slot_candidates(self, class_id: str, period: int) -> SlotCandidatesView:
        self._require_class(class_id)
        self._require_period(period)

        candidates = discover_candidates(
            self.day,
            class_id,
            period,
            self.board,
            excluded_ids=self.away_at(period),
            pool_ids=self.pool_ids,
        )
        ctx = self._context(class_id, period, candidates)
        filtered = apply_mode_settings(candidates, ctx)
        ranking = rank_candidates(filtered.kept, ctx)

        removed = filtered.removed
        if self._mode.settings.ui.hide_forbidden_candidates:
            hidden = filtered.removed_ids()
            candidates = SlotCandidates(
                pool=tuple(c for c in candidates.pool if c.id not in hidden),
                home_room=tuple(c for c in candidates.home_room if c.id not in hidden),
                general=tuple(c for c in candidates.general if c.id not in hidden),
            )
            removed = ()

        return SlotCandidatesView(
            slot=SlotKey(class_id, period),
            candidates=candidates,
            removed=removed,
            ranking=ranking,
        )

    def run_auto_distribution(
        self,
        *,
        target_slots: Iterable[SlotKey] = (),
        trip_class_ids: Iterable[str] = (),
        confirmed_companion_ids: Iterable[str] = (),
        merged_class_ids: Iterable[str] = (),
        excused_class_ids: Iterable[str] = (),
    ) -> DistributionBatch:
        """Computes a batch without touching the board; see apply_batch."""
        targets = tuple(target_slots)
        trips = tuple(trip_class_ids)
        merged = frozenset(merged_class_ids)
        excused = frozenset(excused_class_ids)
        for slot in targets:
            self._require_class(slot.class_id)
            self._require_period(slot.period)
        for cid in (*trips, *merged, *excused):
            self._require_class(cid)

        request = DistributionRequest(
            mode=self._mode,
            target_slots=targets,
            absent_ids=self.absent_ids(),
            partial_absences=self.partial_absences(),
            pool_ids=self.pool_ids,
            excused_class_ids=excused,
            trip_class_ids=trips,
            confirmed_companion_ids=frozenset(confirmed_companion_ids),
            merged_class_ids=merged,
            history=tuple(self._records.list()),
            rng=self._rng,
        )
        return run_distribution(self.day, self.board, request)

    # ---------- Board mutations ----------

    def apply_batch(self, proposals: Iterable[ProposedAssignment]) -> BatchApplyResult:
        result = self.board.apply_batch(proposals)
        for p in result.applied:
            self._from_batch.add((p.class_id, p.period, p.teacher_id))
        logger.debug(
            "Session %s applied batch: %d applied, %d skipped, %d conflicts",
            self.id,
            len(result.applied),
            len(result.skipped),
            len(result.conflicts),
        )
        return result

    def assign(self, class_id: str, period: int, teacher_id: str, reason: str = "") -> AssignmentEntry:
        self._require_class(class_id)
        self._require_period(period)
        self._require_employee(teacher_id)
        if self._mode.settings.ui.require_justification and not reason.strip():
            raise ValidationError([f"Mode '{self._mode.id}' requires a justification for manual assignments."])

        entry = self.board.assign(class_id, period, teacher_id, reason.strip())
        logger.debug("Session %s: %s -> %s/%s", self.id, teacher_id, class_id, period)

        lesson = self.day.lesson_for_class(class_id, period)
        if lesson is not None and lesson.teacher_id != teacher_id:
            self._note_absence(lesson.teacher_id, period)
        return entry

    def unassign(self, class_id: str, period: int, teacher_id: str) -> None:
        if not self.board.unassign(class_id, period, teacher_id):
            raise NotFoundError("Assignment", f"{class_id}/{period}/{teacher_id}")
        self._from_batch.discard((class_id, period, teacher_id))
        logger.debug("Session %s: removed %s from %s/%s", self.id, teacher_id, class_id, period)

    def _note_absence(self, teacher_id: str, period: int) -> None:
        existing = self._absences.find(teacher_id, self.day.date)
        if existing is None or existing.status == AbsenceStatus.CANCELLED:
            self._absences.save(
                AbsenceRecord(
                    id=str(uuid4()),
                    teacher_id=teacher_id,
                    date=self.day.date,
                    type=AbsenceType.PARTIAL,
                    affected_periods=frozenset({period}),
                    reason=AUTO_ABSENCE_REASON,
                )
            )
            return
        grown = existing.with_period(period)
        if grown is not existing:
            self._absences.save(grown)

    # ---------- Commit ----------

    def commit(self) -> list[SubstitutionRecord]:
        """Persists the entries not committed yet; each entry is recorded once."""
        employees = self.day.index_employees()
        created: list[SubstitutionRecord] = []

        for slot, entries in self.board.items():
            lesson = self.day.lesson_for_class(slot.class_id, slot.period)
            for entry in entries:
                key = (slot.class_id, slot.period, entry.teacher_id)
                if key in self._committed:
                    continue

                absent = lesson.teacher_id if lesson is not None and lesson.teacher_id != entry.teacher_id else None
                record = SubstitutionRecord(
                    id=str(uuid4()),
                    date=self.day.date,
                    period=slot.period,
                    class_id=slot.class_id,
                    absent_teacher_id=absent,
                    substitute_id=entry.teacher_id,
                    reason=entry.reason,
                    mode_context=self._mode.id,
                    kind=self._kind_of(key, entry, employees),
                )
                created.append(self._records.add(record))
                self._committed.add(key)

        logger.info("Session %s committed %d substitution record(s)", self.id, len(created))
        return created

    def _kind_of(self, key: tuple[str, int, str], entry: AssignmentEntry, employees: dict) -> SubstitutionKind:
        emp = employees.get(entry.teacher_id)
        if emp is not None and emp.is_external:
            return SubstitutionKind.ASSIGN_EXTERNAL
        if entry.reason.startswith("merge of"):
            return SubstitutionKind.CLASS_MERGE
        if key in self._from_batch:
            return SubstitutionKind.ASSIGN_DISTRIBUTION
        return SubstitutionKind.ASSIGN_INTERNAL

    def close(self) -> None:
        """Releases the repositories; a postgres-backed session holds a database session."""
        try:
            self._records.close()
        finally:
            self._absences.close()

    # ---------- Guards ----------

    def _require_class(self, class_id: str) -> None:
        if class_id not in self.day.index_classes():
            raise ValidationError([f"Unknown class '{class_id}'."])

    def _require_employee(self, teacher_id: str) -> None:
        if teacher_id not in self.day.index_employees():
            raise ValidationError([f"Unknown employee '{teacher_id}'."])

    def _require_period(self, period: int) -> int:
        if not 1 <= int(period) <= self.day.periods_per_day:
            raise ValidationError([f"Period {period} outside 1..{self.day.periods_per_day}."])
        return int(period)


class PlannerService:
    def __init__(self, repositories: RepositoryFactory, settings: Settings | None = None) -> None:
        self._repositories = repositories
        self._settings = settings or load_settings()
        self._lock = Lock()
        self._sessions: dict[str, PlannerSession] = {}

    def open_session(
        self,
        payload: dict[str, Any],
        *,
        mode_id: str | None = None,
        modes: Iterable[dict[str, Any]] = (),
        pool_ids: Iterable[str] = (),
        absences: Iterable[dict[str, Any]] = (),
    ) -> PlannerSession:
        day = school_day_from_dict(payload, periods_per_day=self._settings.periods_per_day)
        validate_school_day(day)

        available = default_modes()
        for raw in modes:
            mode = mode_from_dict(raw)
            validate_mode(mode)
            available[mode.id] = mode

        seed = self._settings.fair_distribution_seed
        records, absence_repo = self._repositories()
        try:
            session = PlannerSession(
                str(uuid4()),
                day,
                records=records,
                absences=absence_repo,
                modes=available,
                mode_id=mode_id or self._settings.default_mode_id,
                pool_ids=pool_ids,
                rng=random.Random(seed) if seed is not None else None,
            )

            for raw in absences:
                session.register_absence(
                    str(raw["teacher_id"]),
                    absence_type=AbsenceType(str(raw.get("type", "FULL"))),
                    periods=[int(p) for p in raw.get("periods", [])],
                    reason=str(raw.get("reason", "")),
                )
        except Exception:
            records.close()
            absence_repo.close()
            raise

        with self._lock:
            self._sessions[session.id] = session
        logger.info("Opened session %s for %s (%s)", session.id, day.date.isoformat(), day.day)
        return session

    def get_session(self, session_id: str) -> PlannerSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    def close_session(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise NotFoundError("Session", session_id)
        session.close()
        logger.info("Closed session %s", session_id)
