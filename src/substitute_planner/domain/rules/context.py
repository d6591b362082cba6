# domain/rules/context.py
# Read-only inputs shared by the pre-filter, the golden rules and the ladder.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from substitute_planner.domain.assignments.board import AssignmentBoard
from substitute_planner.domain.core.schema import ClassItem, Lesson, ModeConfig, SubstitutionRecord
from substitute_planner.domain.core.timetable import SchoolDay

# Subjects close enough for a cover when the exact subject is missing.
SUBJECT_DOMAINS: Dict[str, Tuple[str, ...]] = {
    "SCIENCES": ("science", "physics", "chemistry", "biology", "علوم", "فيزياء", "كيمياء", "أحياء"),
    "MATH_TECH": ("math", "computer", "technology", "رياضيات", "حاسوب", "تكنولوجيا"),
    "LANGUAGES": ("arabic", "english", "hebrew", "لغة عربية", "لغة إنجليزية", "لغة عبرية"),
    "HUMANITIES": ("history", "geography", "civics", "religion", "تاريخ", "جغرافيا", "مدنيات", "دين", "تربية إسلامية"),
    "ARTS_SPORTS": ("art", "sport", "music", "فنون", "رياضة", "موسيقى"),
}


def subject_domain(subject: str) -> Optional[str]:
    norm = subject.strip().casefold()
    if not norm:
        return None
    for domain, keywords in SUBJECT_DOMAINS.items():
        if any(k in norm for k in keywords):
            return domain
    return None


@dataclass(frozen=True)
class CoverageStats:
    """
    Cover counts per teacher for the working day, its ISO week and the two
    days ending on it, plus the (absent teacher, substitute) pairs of the day before.
    """
    daily: Dict[str, int] = field(default_factory=dict)
    weekly: Dict[str, int] = field(default_factory=dict)
    recent: Dict[str, int] = field(default_factory=dict)
    yesterday_pairs: FrozenSet[Tuple[str, str]] = frozenset()

    def daily_of(self, teacher_id: str) -> int:
        return self.daily.get(teacher_id, 0)

    def weekly_of(self, teacher_id: str) -> int:
        return self.weekly.get(teacher_id, 0)

    def recent_of(self, teacher_id: str) -> int:
        return self.recent.get(teacher_id, 0)

    def covered_yesterday(self, absent_teacher_id: str, substitute_id: str) -> bool:
        return (absent_teacher_id, substitute_id) in self.yesterday_pairs

    def daily_mean(self, teacher_ids: Iterable[str]) -> float:
        ids = list(teacher_ids)
        if not ids:
            return 0.0
        return sum(self.daily_of(t) for t in ids) / len(ids)

    def weekly_mean(self, teacher_ids: Iterable[str]) -> float:
        ids = list(teacher_ids)
        if not ids:
            return 0.0
        return sum(self.weekly_of(t) for t in ids) / len(ids)


def build_coverage_stats(
    history: Iterable[SubstitutionRecord],
    board: AssignmentBoard,
    on: date,
) -> CoverageStats:
    """
    Persisted records plus the entries still on the board. A record that
    mirrors a board entry (already committed) is counted once.
    """
    week = on.isocalendar()[:2]
    yesterday = on - timedelta(days=1)
    seen: Set[Tuple[date, str, int, str]] = set()
    daily: Dict[str, int] = {}
    weekly: Dict[str, int] = {}
    recent: Dict[str, int] = {}
    pairs: Set[Tuple[str, str]] = set()

    def _count(when: date, class_id: str, period: int, teacher_id: str) -> None:
        key = (when, class_id, period, teacher_id)
        if key in seen:
            return
        seen.add(key)
        if yesterday <= when <= on:
            recent[teacher_id] = recent.get(teacher_id, 0) + 1
        if when.isocalendar()[:2] != week:
            return
        weekly[teacher_id] = weekly.get(teacher_id, 0) + 1
        if when == on:
            daily[teacher_id] = daily.get(teacher_id, 0) + 1

    for slot, entries in board.items():
        for entry in entries:
            _count(on, slot.class_id, slot.period, entry.teacher_id)
    for rec in history:
        _count(rec.date, rec.class_id, rec.period, rec.substitute_id)
        if rec.date == yesterday and rec.absent_teacher_id:
            pairs.add((rec.absent_teacher_id, rec.substitute_id))

    return CoverageStats(daily=daily, weekly=weekly, recent=recent, yesterday_pairs=frozenset(pairs))


@dataclass(frozen=True)
class SlotContext:
    day: SchoolDay
    class_id: str
    period: int
    mode: ModeConfig
    board: AssignmentBoard = field(default_factory=AssignmentBoard, compare=False)
    stats: CoverageStats = field(default_factory=CoverageStats)
    population: Tuple[str, ...] = ()  # ids the daily/weekly means are taken over

    @property
    def slot_lesson(self) -> Optional[Lesson]:
        return self.day.lesson_for_class(self.class_id, self.period)

    @property
    def target_class(self) -> Optional[ClassItem]:
        return self.day.index_classes().get(self.class_id)

    @property
    def subject(self) -> str:
        """Governing subject when the mode sets one, else the slot lesson's subject."""
        if self.mode.governing_subject:
            return self.mode.governing_subject
        lesson = self.slot_lesson
        return lesson.subject if lesson is not None else ""
