"""
Constraint checking for timetable generation.

Hard constraints reject a placement outright:
- teacher must be free at (day, slot), including this run's tentative bookings
- pinned (locked) cells are never reassigned
- a subject never exceeds its required weekly periods
- with double periods disallowed, a subject never sits in two adjacent slots

Soft constraints are scored and reported as warnings when the final
timetable still breaks them: consecutive teacher hours, periods of a subject
per day, teacher load per day, distribution balance.

A subject's scheduling preferences only change the order candidates are
tried in. Avoided days and slots rank with the soft violations.
"""

import math
from typing import Optional

from .teacher_calendar import TeacherCalendar
from .types import (
    GenerationRules,
    ScheduleCell,
    SchedulingPreferences,
    SlotAssignment,
    SubjectDemand,
    TeacherCommitment,
    WarningKind,
)


# (day, slot) -> (subject_id, teacher_id) for every occupied cell of the section
Placement = dict[tuple[int, int], tuple[Optional[int], Optional[int]]]


class ConstraintSet:
    """Hard and soft rules for one section run, derived from the template rules."""

    def __init__(
        self,
        rules: GenerationRules,
        demands: list[SubjectDemand],
        working_days: list[int],
        total_slots: int = 0,
        lunch_slot: Optional[int] = None,
        day_reliability: Optional[dict[int, float]] = None,
    ):
        self.rules = rules
        self.demands = {d.subject_id: d for d in demands}
        self.working_days = sorted(working_days)
        self._day_index = {day: i for i, day in enumerate(self.working_days)}
        self.total_slots = total_slots
        self.lunch_slot = lunch_slot
        self.day_reliability = day_reliability or {}

    def max_per_day(self, subject_id: int) -> int:
        demand = self.demands.get(subject_id)
        if demand is not None and demand.max_periods_per_day:
            return demand.max_periods_per_day
        return self.rules.max_periods_per_subject_per_day

    def preferences(self, subject_id: int) -> SchedulingPreferences:
        demand = self.demands.get(subject_id)
        return demand.preferences if demand is not None else SchedulingPreferences()

    # -- placement queries ---------------------------------------------------

    @staticmethod
    def subject_count_on_day(placed: Placement, subject_id: int, day: int) -> int:
        return sum(1 for (d, _), (s, _) in placed.items() if d == day and s == subject_id)

    @staticmethod
    def has_adjacent_subject(placed: Placement, subject_id: int, day: int, slot: int) -> bool:
        for neighbour in (slot - 1, slot + 1):
            entry = placed.get((day, neighbour))
            if entry is not None and entry[0] == subject_id:
                return True
        return False

    def subject_days(self, placed: Placement, subject_id: int) -> set[int]:
        return {d for (d, _), (s, _) in placed.items() if s == subject_id}

    def min_day_gap(self, placed: Placement, subject_id: int, day: int) -> int:
        """Smallest distance in working days between `day` and any day already holding the subject."""
        days = self.subject_days(placed, subject_id)
        if not days:
            return len(self.working_days)
        here = self._day_index.get(day, 0)
        return min(abs(here - self._day_index.get(d, 0)) for d in days)

    # -- hard constraints ----------------------------------------------------

    def is_hard_valid(
        self,
        calendar: TeacherCalendar,
        placed: Placement,
        remaining: dict[int, int],
        cell: ScheduleCell,
        subject_id: int,
        teacher_id: int,
    ) -> bool:
        if not cell.teachable or cell.key in placed:
            return False
        if remaining.get(subject_id, 0) <= 0:
            return False
        demand = self.demands.get(subject_id)
        if demand is None or teacher_id not in demand.qualified_teacher_ids:
            return False
        if not calendar.is_free(teacher_id, cell.day, cell.slot_number):
            return False
        if not self.rules.allow_double_periods:
            if self.has_adjacent_subject(placed, subject_id, cell.day, cell.slot_number):
                return False
        return True

    def hard_candidates(
        self,
        calendar: TeacherCalendar,
        placed: Placement,
        remaining: dict[int, int],
        cell: ScheduleCell,
    ) -> list[tuple[int, int]]:
        """All (subject, teacher) pairs that satisfy every hard constraint for the cell."""
        pairs = []
        for subject_id in sorted(self.demands):
            if remaining.get(subject_id, 0) <= 0:
                continue
            for teacher_id in self.demands[subject_id].qualified_teacher_ids:
                if self.is_hard_valid(calendar, placed, remaining, cell, subject_id, teacher_id):
                    pairs.append((subject_id, teacher_id))
        return pairs

    def subject_fits(
        self,
        calendar: TeacherCalendar,
        placed: Placement,
        remaining: dict[int, int],
        cell: ScheduleCell,
        subject_id: int,
    ) -> bool:
        demand = self.demands[subject_id]
        return any(
            self.is_hard_valid(calendar, placed, remaining, cell, subject_id, t)
            for t in demand.qualified_teacher_ids
        )

    def room(
        self,
        calendar: TeacherCalendar,
        placed: Placement,
        remaining: dict[int, int],
        cells: list[ScheduleCell],
        subject_id: int,
    ) -> int:
        """
        Most periods of the subject the given cells can still take.
        Without double periods, a run of neighbouring slots only holds every other one.
        """
        fitting = sorted(
            (c.key for c in cells if self.subject_fits(calendar, placed, remaining, c, subject_id))
        )
        if self.rules.allow_double_periods:
            return len(fitting)

        count = 0
        last_taken: dict[int, int] = {}
        for day, slot in fitting:
            if last_taken.get(day) == slot - 1:
                continue
            last_taken[day] = slot
            count += 1
        return count

    # -- soft constraints ----------------------------------------------------

    def soft_violations(
        self,
        calendar: TeacherCalendar,
        placed: Placement,
        cell: ScheduleCell,
        subject_id: int,
        teacher_id: int,
    ) -> list[WarningKind]:
        """Soft rules the placement would break, checked before it is booked."""
        violations = []
        day, slot = cell.day, cell.slot_number

        if calendar.run_through(teacher_id, day, slot) > self.rules.max_consecutive_hours_teacher:
            violations.append(WarningKind.CONSECUTIVE_HOURS_EXCEEDED)

        if self.subject_count_on_day(placed, subject_id, day) >= self.max_per_day(subject_id):
            violations.append(WarningKind.SUBJECT_DAILY_LIMIT_EXCEEDED)

        if calendar.daily_load(teacher_id, day) >= self.rules.max_periods_per_teacher_per_day:
            violations.append(WarningKind.DAILY_LOAD_EXCEEDED)

        return violations

    def distribution_penalty(self, placed: Placement, cell: ScheduleCell, subject_id: int, urgency: float) -> int:
        """
        1 if the placement clusters the subject on a day it already has.
        Waived when the subject needs more than one period per remaining day anyway,
        or when the subject opts out of even spreading.
        """
        if not self.rules.balance_subject_distribution or urgency > 1:
            return 0
        if not self.preferences(subject_id).spread_evenly:
            return 0
        return 1 if self.subject_count_on_day(placed, subject_id, cell.day) > 0 else 0

    def double_period_bonus(self, placed: Placement, cell: ScheduleCell, subject_id: int, urgency: float) -> int:
        """1 if the placement completes a double period that is allowed and wanted."""
        if not self.rules.allow_double_periods:
            return 0
        if urgency <= 1 and not self.preferences(subject_id).prefer_consecutive:
            return 0
        return 1 if self.has_adjacent_subject(placed, subject_id, cell.day, cell.slot_number) else 0

    # -- preferences ---------------------------------------------------------

    def avoided(self, cell: ScheduleCell, subject_id: int) -> int:
        """How many of the subject's avoid_days / avoid_slots the cell hits."""
        prefs = self.preferences(subject_id)
        return int(cell.day in prefs.avoid_days) + int(cell.slot_number in prefs.avoid_slots)

    def preferred(self, cell: ScheduleCell, subject_id: int) -> int:
        """How many of the subject's preferred day / slot wishes the cell meets."""
        prefs = self.preferences(subject_id)
        score = int(cell.day in prefs.preferred_days)
        if any(self._slot_matches(wanted, cell.slot_number) for wanted in prefs.preferred_slots):
            score += 1
        return score

    def _slot_matches(self, wanted, slot: int) -> bool:
        if isinstance(wanted, int):
            return wanted == slot
        midday = self.lunch_slot or math.ceil(self.total_slots / 2)
        if wanted == "first":
            return slot <= 2
        if wanted == "last":
            return slot >= self.total_slots - 1
        if wanted == "morning":
            return slot < midday
        if wanted == "afternoon":
            return slot > midday
        return False

    def reliability(self, subject_id: int, day: int) -> float:
        """Share of the session's dates a weekday actually runs; only weighs on heavy subjects."""
        demand = self.demands.get(subject_id)
        if demand is None or demand.required_weekly_periods < 4:
            return 1.0
        return self.day_reliability.get(day, 1.0)


def find_calendar_conflicts(
    assignments: list[SlotAssignment],
    commitments: list[TeacherCommitment],
) -> list[dict]:
    """
    Assignments whose teacher is already committed elsewhere at the same time.
    Used at commit time against the live calendar.
    """
    booked = {(c.teacher_id, c.day, c.slot_number): c.section_id for c in commitments}
    conflicts = []
    for a in assignments:
        if a.teacher_id is None:
            continue
        other = booked.get((a.teacher_id, a.day, a.slot_number))
        if other is not None and other != a.section_id:
            conflicts.append({
                "teacher_id": a.teacher_id,
                "day": a.day,
                "slot_number": a.slot_number,
                "section_id": other,
            })
    return conflicts


def find_double_bookings(assignments: list[SlotAssignment]) -> list[tuple[int, int, int]]:
    """(teacher, day, slot) keys that appear more than once."""
    seen = set()
    duplicates = []
    for a in assignments:
        if a.teacher_id is None:
            continue
        key = (a.teacher_id, a.day, a.slot_number)
        if key in seen:
            duplicates.append(key)
        seen.add(key)
    return duplicates
