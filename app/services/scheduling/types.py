"""
Internal data types for timetable generation.
Kept apart from the SQLAlchemy models so the solver runs on plain values.
"""

from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Optional


DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class SlotKind(str, Enum):
    REGULAR = "REGULAR"
    BREAK = "BREAK"
    LUNCH = "LUNCH"
    ASSEMBLY = "ASSEMBLY"
    SPECIAL = "SPECIAL"


class CellState(str, Enum):
    UNFILLED = "UNFILLED"
    TENTATIVE = "TENTATIVE"
    COMMITTED = "COMMITTED"
    UNFILLABLE = "UNFILLABLE"


class WarningKind(str, Enum):
    UNFILLED_SLOT = "unfilled_slot"
    SEARCH_BUDGET_EXHAUSTED = "search_budget_exhausted"
    CONSECUTIVE_HOURS_EXCEEDED = "consecutive_hours_exceeded"
    DAILY_LOAD_EXCEEDED = "daily_load_exceeded"
    SUBJECT_DAILY_LIMIT_EXCEEDED = "subject_daily_limit_exceeded"
    FEWER_INSTRUCTIONAL_DAYS = "fewer_instructional_days"


@dataclass(frozen=True)
class GenerationRules:
    max_consecutive_hours_teacher: int = 4
    max_periods_per_subject_per_day: int = 2
    max_periods_per_teacher_per_day: int = 6
    allow_double_periods: bool = False
    balance_subject_distribution: bool = True


SLOT_BANDS = ("first", "last", "morning", "afternoon")


@dataclass(frozen=True)
class SchedulingPreferences:
    """Per-subject placement wishes from the curriculum mapping. Only fixed_slots is binding."""
    priority: int = 5  # higher is placed earlier
    fixed_slots: tuple[tuple[int, int], ...] = ()  # (day, slot)
    preferred_days: frozenset[int] = frozenset()
    preferred_slots: tuple = ()  # slot numbers or SLOT_BANDS names
    avoid_days: frozenset[int] = frozenset()
    avoid_slots: frozenset[int] = frozenset()
    prefer_consecutive: bool = False
    spread_evenly: bool = True


@dataclass(frozen=True)
class Template:
    total_slots_per_day: int
    start_time: time
    slot_duration_minutes: int
    break_slots: frozenset[int] = frozenset()
    lunch_slot: Optional[int] = None  # None = no lunch period
    generation_rules: GenerationRules = field(default_factory=GenerationRules)
    id: Optional[int] = None


@dataclass(frozen=True)
class ScheduleCell:
    """One (day, slot) position in a section's week."""
    day: int  # 0=Sun..6=Sat
    slot_number: int  # 1-based
    kind: SlotKind
    start_time: time
    end_time: time

    @property
    def teachable(self) -> bool:
        return self.kind == SlotKind.REGULAR

    @property
    def key(self) -> tuple[int, int]:
        return self.day, self.slot_number


@dataclass
class CurriculumEntry:
    subject_id: int
    periods_per_week: int
    teacher_id: Optional[int] = None  # explicitly assigned teacher
    section_id: Optional[int] = None  # None = class-level mapping
    max_periods_per_day: Optional[int] = None  # overrides the template rule
    preferences: SchedulingPreferences = field(default_factory=SchedulingPreferences)


@dataclass
class TeacherInfo:
    id: int
    subject_ids: list[int] = field(default_factory=list)
    is_active: bool = True


@dataclass
class SubjectDemand:
    subject_id: int
    required_weekly_periods: int
    qualified_teacher_ids: list[int]
    max_periods_per_day: Optional[int] = None
    preferences: SchedulingPreferences = field(default_factory=SchedulingPreferences)


@dataclass(frozen=True)
class TeacherCommitment:
    teacher_id: int
    day: int
    slot_number: int
    section_id: int


@dataclass(frozen=True)
class SlotAssignment:
    """A subject/teacher placed in one section cell (proposed or stored)."""
    section_id: int
    day: int
    slot_number: int
    subject_id: Optional[int]
    teacher_id: Optional[int]
    start_time: time
    end_time: time
    is_locked: bool = False
    slot_type: SlotKind = SlotKind.REGULAR

    @property
    def key(self) -> tuple[int, int]:
        return self.day, self.slot_number


@dataclass(frozen=True)
class ScheduleWarning:
    kind: WarningKind
    message: str
    day: Optional[int] = None
    slot_number: Optional[int] = None
    subject_id: Optional[int] = None
    teacher_id: Optional[int] = None

    @property
    def scope(self) -> str:
        if self.day is not None and self.slot_number is not None:
            return f"cell:{self.day}:{self.slot_number}"
        if self.teacher_id is not None and self.day is not None:
            return f"teacher:{self.teacher_id}:day:{self.day}"
        if self.subject_id is not None:
            return f"subject:{self.subject_id}"
        if self.day is not None:
            return f"day:{self.day}"
        return "section"


@dataclass
class GenerationContext:
    """All data needed to generate a timetable for one section/session."""
    section_id: int
    session_id: int
    template: Template
    working_days: list[int]
    curriculum: list[CurriculumEntry]
    teachers: list[TeacherInfo]
    commitments: list[TeacherCommitment] = field(default_factory=list)  # other sections + own locked cells
    pinned: list[SlotAssignment] = field(default_factory=list)  # this section's locked cells
    instructional_days: dict[int, int] = field(default_factory=dict)  # weekday -> working dates in the session


@dataclass
class GenerationResult:
    """Output of one generation run."""
    section_id: int
    session_id: int
    assignments: list[SlotAssignment]  # pinned cells + newly generated cells
    warnings: list[ScheduleWarning] = field(default_factory=list)
    cell_states: dict[tuple[int, int], CellState] = field(default_factory=dict)
    nodes_expanded: int = 0
    budget_exhausted: bool = False

    @property
    def new_assignments(self) -> list[SlotAssignment]:
        return [a for a in self.assignments if not a.is_locked]

    @property
    def complete(self) -> bool:
        return not any(w.kind == WarningKind.UNFILLED_SLOT for w in self.warnings)
