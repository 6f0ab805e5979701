"""
Warning collection.
Soft-constraint violations and unmet demand become structured warnings on
a successful result instead of failing the run.
"""

import logging
from typing import Optional

from .constraints import ConstraintSet, Placement
from .teacher_calendar import TeacherCalendar
from .types import DAY_NAMES, ScheduleWarning, WarningKind


logger = logging.getLogger(__name__)


class WarningCollector:
    """Accumulates warnings, dropping exact duplicates, in insertion order."""

    def __init__(self):
        self._warnings: list[ScheduleWarning] = []
        self._seen: set[tuple] = set()

    def add(
        self,
        kind: WarningKind,
        message: str,
        day: Optional[int] = None,
        slot_number: Optional[int] = None,
        subject_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
    ) -> None:
        key = (kind, day, slot_number, subject_id, teacher_id)
        if key in self._seen:
            return
        self._seen.add(key)
        logger.debug(f"Warning {kind.value}: {message}")
        self._warnings.append(ScheduleWarning(
            kind=kind,
            message=message,
            day=day,
            slot_number=slot_number,
            subject_id=subject_id,
            teacher_id=teacher_id,
        ))

    def unfilled(self, subject_id: int, missing: int, required: int) -> None:
        self.add(
            WarningKind.UNFILLED_SLOT,
            f"Subject {subject_id}: {missing} of {required} weekly periods could not be placed",
            subject_id=subject_id,
        )

    def unfillable_cell(self, day: int, slot_number: int) -> None:
        self.add(
            WarningKind.UNFILLED_SLOT,
            f"{_day_name(day)} slot {slot_number} left empty: no valid subject/teacher pair",
            day=day,
            slot_number=slot_number,
        )

    def fewer_instructional_days(self, day: int, count: int) -> None:
        self.add(
            WarningKind.FEWER_INSTRUCTIONAL_DAYS,
            f"{_day_name(day)} has significantly fewer instructional days ({count}) "
            f"due to holidays in this session",
            day=day,
        )

    def budget_exhausted(self, nodes: int, budget: int) -> None:
        self.add(
            WarningKind.SEARCH_BUDGET_EXHAUSTED,
            f"Search stopped after {nodes} node expansions (budget {budget}); best partial timetable kept",
        )

    def collect_soft_violations(
        self,
        constraints: ConstraintSet,
        calendar: TeacherCalendar,
        placed: Placement,
        new_keys: set[tuple[int, int]],
    ) -> None:
        """
        Check the final timetable against the soft rules.
        Only teacher-days and subject-days touched by this run are reported.
        """
        rules = constraints.rules
        teacher_days = set()
        subject_days = set()
        for key in sorted(new_keys):
            subject_id, teacher_id = placed[key]
            teacher_days.add((teacher_id, key[0]))
            subject_days.add((subject_id, key[0]))

        for teacher_id, day in sorted(teacher_days):
            load = calendar.daily_load(teacher_id, day)
            if load > rules.max_periods_per_teacher_per_day:
                self.add(
                    WarningKind.DAILY_LOAD_EXCEEDED,
                    f"Teacher {teacher_id} has {load} periods on {_day_name(day)} "
                    f"(max {rules.max_periods_per_teacher_per_day})",
                    day=day,
                    teacher_id=teacher_id,
                )

            run = calendar.longest_run(teacher_id, day)
            if run > rules.max_consecutive_hours_teacher:
                self.add(
                    WarningKind.CONSECUTIVE_HOURS_EXCEEDED,
                    f"Teacher {teacher_id} teaches {run} consecutive periods on {_day_name(day)} "
                    f"(max {rules.max_consecutive_hours_teacher})",
                    day=day,
                    teacher_id=teacher_id,
                )

        for subject_id, day in sorted(subject_days):
            count = constraints.subject_count_on_day(placed, subject_id, day)
            limit = constraints.max_per_day(subject_id)
            if count > limit:
                self.add(
                    WarningKind.SUBJECT_DAILY_LIMIT_EXCEEDED,
                    f"Subject {subject_id} has {count} periods on {_day_name(day)} (max {limit})",
                    day=day,
                    subject_id=subject_id,
                )

    @property
    def warnings(self) -> list[ScheduleWarning]:
        return list(self._warnings)

    def __len__(self) -> int:
        return len(self._warnings)


def _day_name(day: int) -> str:
    return DAY_NAMES[day] if 0 <= day < len(DAY_NAMES) else f"day {day}"
