# domain/core/schema.py
# Data contract for daily substitute planning: roster, timetable, modes and
# their rule sets, plus the assignment/audit records produced by a session.

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


# ---------- Base types ----------

Day = str  # weekday name as it appears in the timetable ("sunday", "monday", ...)


@dataclass(frozen=True, order=True)
class SlotKey:
    """A (class, period) pair that needs coverage on the working day."""
    class_id: str
    period: int  # 1..N


# ---------- Enums ----------

class LessonType(str, Enum):
    ACTUAL = "actual"
    STAY = "stay"              # protected catch-up period ("makooth")
    INDIVIDUAL = "individual"  # support period, convertible to cover
    DUTY = "duty"


class ClassType(str, Enum):
    GENERAL = "general"
    SPECIAL = "special"


class SlotState(str, Enum):
    """Where an employee stands relative to a slot."""
    FREE = "free"
    STAY = "stay"
    INDIVIDUAL = "individual"
    ACTUAL = "actual"
    RELEASED = "released"                  # freed by a swap or teaching the target itself
    RELEASED_BY_TRIP = "released_by_trip"  # own class is away (trip / holiday)
    ASSIGNED_ELSEWHERE = "assigned_elsewhere"


RELEASED_STATES: FrozenSet[SlotState] = frozenset({SlotState.RELEASED, SlotState.RELEASED_BY_TRIP})


class ModeKind(str, Enum):
    NORMAL = "NORMAL"
    EXAM = "EXAM"
    TRIP = "TRIP"
    RAINY = "RAINY"
    EMERGENCY = "EMERGENCY"
    HOLIDAY = "HOLIDAY"


class TargetScope(str, Enum):
    ALL = "all"
    SPECIFIC_GRADES = "specific_grades"
    SPECIFIC_CLASSES = "specific_classes"


class EnforcementLevel(str, Enum):
    STRICT = "STRICT"
    FLEXIBLE = "FLEXIBLE"
    EMERGENCY_ONLY = "EMERGENCY_ONLY"
    SOFT = "SOFT"


class RuleAction(str, Enum):
    NONE = "NONE"
    BLOCK_STAY_FOR_COVERAGE = "BLOCK_STAY_FOR_COVERAGE"
    BLOCK_EXTERNAL_STAFF = "BLOCK_EXTERNAL_STAFF"
    BLOCK_INDIVIDUAL_FOR_COVERAGE = "BLOCK_INDIVIDUAL_FOR_COVERAGE"
    REQUIRE_SAME_SUBJECT = "REQUIRE_SAME_SUBJECT"
    DAILY_EQUITY = "DAILY_EQUITY"


class Relationship(str, Enum):
    NONE = "none"
    SAME_GRADE = "same_grade"
    HOME_ROOM = "home_room"
    SAME_SUBJECT = "same_subject"
    SAME_DOMAIN = "same_domain"
    CONTINUITY = "continuity_match"


class TeacherType(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    ANY = "any"


class FairnessSensitivity(str, Enum):
    STRICT = "strict"
    FLEXIBLE = "flexible"
    OFF = "off"


class AbsenceType(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"


class AbsenceStatus(str, Enum):
    OPEN = "OPEN"
    COVERED = "COVERED"
    CANCELLED = "CANCELLED"


class SubstitutionKind(str, Enum):
    ASSIGN_INTERNAL = "assign_internal"
    ASSIGN_EXTERNAL = "assign_external"
    ASSIGN_DISTRIBUTION = "assign_distribution"
    CLASS_MERGE = "class_merge"


# ---------- Roster and timetable ----------

@dataclass(frozen=True)
class Employee:
    id: str
    name: str
    base_role: str = "teacher"
    subjects: Tuple[str, ...] = ()

    home_room_class_id: Optional[str] = None  # set => home-room teacher of that class
    is_external: bool = False
    is_part_time: bool = False
    cannot_cover_alone: bool = False

    @property
    def is_home_room_teacher(self) -> bool:
        return self.home_room_class_id is not None

    def is_home_room_of(self, class_id: str) -> bool:
        return self.home_room_class_id is not None and str(self.home_room_class_id) == str(class_id)

    def teaches(self, subject: str) -> bool:
        """Case-insensitive containment either way ("Math" matches "Mathematics")."""
        wanted = subject.strip().casefold()
        if not wanted:
            return False
        for s in self.subjects:
            own = s.strip().casefold()
            if own and (wanted in own or own in wanted):
                return True
        return False


@dataclass(frozen=True)
class Lesson:
    day: Day
    period: int
    teacher_id: str
    class_id: str
    subject: str = ""
    type: LessonType = LessonType.ACTUAL
    id: Optional[str] = None


@dataclass(frozen=True)
class ClassItem:
    id: str
    name: str
    grade_level: int
    type: ClassType = ClassType.GENERAL

    @property
    def group_key(self) -> Tuple[int, ClassType]:
        return (self.grade_level, self.type)


# ---------- Rules ----------

@dataclass(frozen=True)
class GoldenRule:
    id: str
    label: str
    is_active: bool = True
    compliance_percentage: int = 100  # 100 = never violate
    enforcement_level: EnforcementLevel = EnforcementLevel.STRICT
    is_global: bool = False
    action: RuleAction = RuleAction.NONE
    description: str = ""


@dataclass(frozen=True)
class PriorityCriteria:
    relationship: Relationship = Relationship.NONE
    teacher_type: TeacherType = TeacherType.ANY
    slot_states: FrozenSet[SlotState] = field(default_factory=frozenset)  # empty = any state


@dataclass(frozen=True)
class PriorityStep:
    id: str
    order: int
    label: str
    weight_percentage: int
    criteria: PriorityCriteria = PriorityCriteria()
    enabled: bool = True
    explanation: str = ""


# ---------- Mode settings (pre-filter toggles) ----------

@dataclass(frozen=True)
class TeacherSettings:
    disable_external: bool = False
    treat_no_lessons_as_off_duty: bool = False
    force_home_room_presence: bool = False


@dataclass(frozen=True)
class LessonSettings:
    disable_stay: bool = False
    disable_individual: bool = False


@dataclass(frozen=True)
class TimeSettings:
    ignore_gaps_at_start: bool = False
    ignore_gaps_at_end: bool = False
    max_consecutive_periods: Optional[int] = None


@dataclass(frozen=True)
class ClassSettings:
    allow_merge: bool = True
    max_merged_count: Optional[int] = None


@dataclass(frozen=True)
class SubjectSettings:
    governing_subject: str = ""
    prioritize_governing_subject: bool = False


@dataclass(frozen=True)
class HRSettings:
    max_daily_coverage: Optional[int] = None
    max_weekly_coverage: Optional[int] = None
    fairness_sensitivity: FairnessSensitivity = FairnessSensitivity.OFF


@dataclass(frozen=True)
class UISettings:
    hide_forbidden_candidates: bool = False
    require_justification: bool = False


@dataclass(frozen=True)
class ModeSettings:
    teacher: TeacherSettings = TeacherSettings()
    lesson: LessonSettings = LessonSettings()
    time: TimeSettings = TimeSettings()
    class_: ClassSettings = ClassSettings()
    subject: SubjectSettings = SubjectSettings()
    hr: HRSettings = HRSettings()
    ui: UISettings = UISettings()


# ---------- Mode configuration ----------

@dataclass(frozen=True)
class ModeConfig:
    """A named operating policy. Read-only input to a distribution pass."""
    id: str
    name: str
    kind: ModeKind = ModeKind.NORMAL
    linked_event_type: Optional[ModeKind] = None  # None => legacy ranking path

    target: TargetScope = TargetScope.ALL
    affected_periods: Tuple[int, ...] = ()
    affected_class_ids: Tuple[str, ...] = ()
    affected_grade_levels: Tuple[int, ...] = ()

    golden_rules: Tuple[GoldenRule, ...] = ()
    priority_ladder: Tuple[PriorityStep, ...] = ()
    settings: ModeSettings = ModeSettings()

    enforcement_profile: Dict[str, int] = field(default_factory=dict)  # rule_id -> compliance override
    exam_subject: str = ""
    cumulative_ladder: bool = False

    @property
    def has_linked_rule_set(self) -> bool:
        return self.linked_event_type is not None and bool(self.priority_ladder)

    @property
    def governing_subject(self) -> str:
        return self.settings.subject.governing_subject or self.exam_subject

    def sorted_ladder(self) -> Tuple[PriorityStep, ...]:
        return tuple(sorted(self.priority_ladder, key=lambda s: s.order))

    def covers_class(self, item: ClassItem) -> bool:
        """An empty class/grade list does not narrow the scope (validate_mode warns about it)."""
        if self.target == TargetScope.SPECIFIC_CLASSES and self.affected_class_ids:
            return item.id in self.affected_class_ids
        if self.target == TargetScope.SPECIFIC_GRADES and self.affected_grade_levels:
            return item.grade_level in self.affected_grade_levels
        return True


# ---------- Assignments and records ----------

@dataclass(frozen=True)
class AssignmentEntry:
    teacher_id: str
    reason: str = ""


@dataclass(frozen=True)
class ProposedAssignment:
    class_id: str
    period: int
    teacher_id: str
    reason: str

    @property
    def slot(self) -> SlotKey:
        return SlotKey(self.class_id, self.period)


@dataclass(frozen=True)
class SubstitutionRecord:
    id: str
    date: date
    period: int
    class_id: str
    absent_teacher_id: Optional[str]
    substitute_id: str
    reason: str
    mode_context: str
    kind: SubstitutionKind = SubstitutionKind.ASSIGN_INTERNAL
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class AbsenceRecord:
    id: str
    teacher_id: str
    date: date
    type: AbsenceType = AbsenceType.FULL
    status: AbsenceStatus = AbsenceStatus.OPEN
    affected_periods: FrozenSet[int] = field(default_factory=frozenset)
    reason: str = ""

    def covers_period(self, period: int) -> bool:
        if self.status == AbsenceStatus.CANCELLED:
            return False
        return self.type == AbsenceType.FULL or period in self.affected_periods

    def with_period(self, period: int) -> "AbsenceRecord":
        """Union-only growth of a partial absence."""
        if self.type != AbsenceType.PARTIAL or period in self.affected_periods:
            return self
        return replace(self, affected_periods=self.affected_periods | {period})
