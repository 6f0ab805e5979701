import pytest
from datetime import time

from app.services.scheduling.constraints import (
    ConstraintSet,
    find_calendar_conflicts,
    find_double_bookings,
)
from app.services.scheduling.teacher_calendar import TeacherCalendar
from app.services.scheduling.types import (
    GenerationRules,
    ScheduleCell,
    SlotAssignment,
    SlotKind,
    TeacherCommitment,
    WarningKind,
)

from conftest import demand, WEEKDAYS


def cell(day, slot, kind=SlotKind.REGULAR):
    return ScheduleCell(day=day, slot_number=slot, kind=kind, start_time=time(8, 0), end_time=time(8, 45))


def assignment(day, slot, subject_id, teacher_id, section_id=1):
    return SlotAssignment(
        section_id=section_id, day=day, slot_number=slot,
        subject_id=subject_id, teacher_id=teacher_id,
        start_time=time(8, 0), end_time=time(8, 45),
    )


@pytest.fixture
def constraints() -> ConstraintSet:
    return ConstraintSet(
        GenerationRules(),
        [demand(1, 5, [1]), demand(2, 4, [2], max_per_day=1)],
        WEEKDAYS,
    )


class TestHardConstraints:

    def test_valid_placement(self, constraints):
        calendar = TeacherCalendar([])
        assert constraints.is_hard_valid(calendar, {}, {1: 5, 2: 4}, cell(0, 1), 1, 1) is True

    def test_non_teachable_cell(self, constraints):
        calendar = TeacherCalendar([])
        assert constraints.is_hard_valid(calendar, {}, {1: 5}, cell(0, 3, SlotKind.BREAK), 1, 1) is False

    def test_occupied_cell(self, constraints):
        calendar = TeacherCalendar([])
        placed = {(0, 1): (2, 2)}
        assert constraints.is_hard_valid(calendar, placed, {1: 5}, cell(0, 1), 1, 1) is False

    def test_unqualified_teacher(self, constraints):
        calendar = TeacherCalendar([])
        assert constraints.is_hard_valid(calendar, {}, {1: 5}, cell(0, 1), 1, 2) is False

    def test_busy_teacher(self, constraints):
        calendar = TeacherCalendar([TeacherCommitment(teacher_id=1, day=0, slot_number=1, section_id=9)])
        assert constraints.is_hard_valid(calendar, {}, {1: 5}, cell(0, 1), 1, 1) is False

    def test_demand_already_met(self, constraints):
        calendar = TeacherCalendar([])
        assert constraints.is_hard_valid(calendar, {}, {1: 0}, cell(0, 1), 1, 1) is False

    def test_adjacent_same_subject_rejected(self, constraints):
        calendar = TeacherCalendar([])
        placed = {(0, 1): (1, 1)}
        assert constraints.is_hard_valid(calendar, placed, {1: 4}, cell(0, 2), 1, 1) is False
        # a gap of one slot is fine
        assert constraints.is_hard_valid(calendar, placed, {1: 4}, cell(0, 3), 1, 1) is True

    def test_adjacent_allowed_with_double_periods(self):
        constraints = ConstraintSet(GenerationRules(allow_double_periods=True), [demand(1, 5, [1])], WEEKDAYS)
        calendar = TeacherCalendar([])
        placed = {(0, 1): (1, 1)}
        assert constraints.is_hard_valid(calendar, placed, {1: 4}, cell(0, 2), 1, 1) is True

    def test_hard_candidates_sorted(self):
        constraints = ConstraintSet(GenerationRules(), [demand(2, 1, [4, 3]), demand(1, 1, [5])], WEEKDAYS)
        calendar = TeacherCalendar([])
        pairs = constraints.hard_candidates(calendar, {}, {1: 1, 2: 1}, cell(0, 1))
        assert pairs == [(1, 5), (2, 4), (2, 3)]


class TestSoftConstraints:

    def test_no_violations(self, constraints):
        calendar = TeacherCalendar([])
        assert constraints.soft_violations(calendar, {}, cell(0, 1), 1, 1) == []

    def test_consecutive_hours(self, constraints):
        calendar = TeacherCalendar([
            TeacherCommitment(teacher_id=1, day=0, slot_number=s, section_id=9) for s in (1, 2, 3, 4)
        ])
        violations = constraints.soft_violations(calendar, {}, cell(0, 5), 1, 1)
        assert WarningKind.CONSECUTIVE_HOURS_EXCEEDED in violations

    def test_consecutive_hours_joining_later_block(self, constraints):
        calendar = TeacherCalendar([
            TeacherCommitment(teacher_id=1, day=0, slot_number=s, section_id=9) for s in (2, 3, 4, 5)
        ])
        violations = constraints.soft_violations(calendar, {}, cell(0, 1), 1, 1)
        assert WarningKind.CONSECUTIVE_HOURS_EXCEEDED in violations

    def test_consecutive_hours_at_limit(self, constraints):
        calendar = TeacherCalendar([
            TeacherCommitment(teacher_id=1, day=0, slot_number=s, section_id=9) for s in (1, 2, 4)
        ])
        violations = constraints.soft_violations(calendar, {}, cell(0, 3), 1, 1)
        assert WarningKind.CONSECUTIVE_HOURS_EXCEEDED not in violations

    def test_subject_daily_limit_uses_subject_override(self, constraints):
        calendar = TeacherCalendar([])
        placed = {(0, 1): (2, 2)}
        violations = constraints.soft_violations(calendar, placed, cell(0, 4), 2, 2)
        assert violations == [WarningKind.SUBJECT_DAILY_LIMIT_EXCEEDED]

    def test_teacher_daily_load(self):
        constraints = ConstraintSet(
            GenerationRules(max_periods_per_teacher_per_day=2), [demand(1, 5, [1])], WEEKDAYS
        )
        calendar = TeacherCalendar([
            TeacherCommitment(teacher_id=1, day=0, slot_number=s, section_id=9) for s in (1, 3)
        ])
        violations = constraints.soft_violations(calendar, {}, cell(0, 6), 1, 1)
        assert violations == [WarningKind.DAILY_LOAD_EXCEEDED]

    def test_distribution_penalty(self, constraints):
        placed = {(0, 1): (1, 1)}
        assert constraints.distribution_penalty(placed, cell(0, 4), 1, urgency=0.8) == 1
        assert constraints.distribution_penalty(placed, cell(1, 4), 1, urgency=0.8) == 0
        # waived when the subject needs more than one period a day anyway
        assert constraints.distribution_penalty(placed, cell(0, 4), 1, urgency=1.5) == 0

    def test_distribution_off(self):
        constraints = ConstraintSet(
            GenerationRules(balance_subject_distribution=False), [demand(1, 5, [1])], WEEKDAYS
        )
        placed = {(0, 1): (1, 1)}
        assert constraints.distribution_penalty(placed, cell(0, 4), 1, urgency=0.5) == 0

    def test_double_period_bonus(self):
        constraints = ConstraintSet(GenerationRules(allow_double_periods=True), [demand(1, 8, [1])], WEEKDAYS)
        placed = {(0, 1): (1, 1)}
        assert constraints.double_period_bonus(placed, cell(0, 2), 1, urgency=2.0) == 1
        assert constraints.double_period_bonus(placed, cell(0, 2), 1, urgency=1.0) == 0

    def test_min_day_gap(self, constraints):
        placed = {(1, 1): (1, 1), (5, 1): (1, 1)}
        assert constraints.min_day_gap(placed, 1, 3) == 2
        assert constraints.min_day_gap(placed, 1, 2) == 1
        assert constraints.min_day_gap({}, 1, 1) == len(WEEKDAYS)


class TestRoom:

    def test_without_double_periods_counts_every_other_neighbour(self):
        constraints = ConstraintSet(GenerationRules(), [demand(1, 6, [1])], WEEKDAYS)
        cells = [cell(1, s) for s in (1, 2, 4, 6, 7, 8)]
        assert constraints.room(TeacherCalendar([]), {}, {1: 6}, cells, 1) == 4

    def test_with_double_periods_counts_every_cell(self):
        constraints = ConstraintSet(GenerationRules(allow_double_periods=True), [demand(1, 6, [1])], WEEKDAYS)
        cells = [cell(1, s) for s in (1, 2, 4, 6, 7, 8)]
        assert constraints.room(TeacherCalendar([]), {}, {1: 6}, cells, 1) == 6

    def test_placed_neighbour_blocks_cell(self):
        constraints = ConstraintSet(GenerationRules(), [demand(1, 6, [1])], WEEKDAYS)
        placed = {(1, 1): (1, 1)}
        cells = [cell(1, s) for s in (2, 4, 6, 7, 8)] + [cell(2, s) for s in (1, 2)]
        # day 1: 4, 6, 8; day 2: 1 or 2
        assert constraints.room(TeacherCalendar([]), placed, {1: 5}, cells, 1) == 4

    def test_busy_teacher_removes_cells(self):
        constraints = ConstraintSet(GenerationRules(), [demand(1, 6, [1])], WEEKDAYS)
        calendar = TeacherCalendar([TeacherCommitment(teacher_id=1, day=1, slot_number=1, section_id=9)])
        cells = [cell(1, s) for s in (1, 2, 3)]
        assert constraints.room(calendar, {}, {1: 6}, cells, 1) == 1


class TestPreferences:

    def test_avoided_days_and_slots(self):
        constraints = ConstraintSet(
            GenerationRules(),
            [demand(1, 5, [1], avoid_days=frozenset({5}), avoid_slots=frozenset({1}))],
            WEEKDAYS,
        )
        assert constraints.avoided(cell(5, 1), 1) == 2
        assert constraints.avoided(cell(5, 2), 1) == 1
        assert constraints.avoided(cell(2, 2), 1) == 0
        # subjects without a curriculum row have no wishes
        assert constraints.avoided(cell(5, 1), 9) == 0

    def test_preferred_day_and_slot_number(self):
        constraints = ConstraintSet(
            GenerationRules(),
            [demand(1, 5, [1], preferred_days=frozenset({2}), preferred_slots=(4,))],
            WEEKDAYS,
        )
        assert constraints.preferred(cell(2, 4), 1) == 2
        assert constraints.preferred(cell(2, 1), 1) == 1
        assert constraints.preferred(cell(3, 1), 1) == 0

    def test_slot_bands_split_at_lunch(self):
        constraints = ConstraintSet(
            GenerationRules(), [demand(1, 5, [1])], WEEKDAYS, total_slots=8, lunch_slot=5,
        )
        assert [s for s in range(1, 9) if constraints._slot_matches("first", s)] == [1, 2]
        assert [s for s in range(1, 9) if constraints._slot_matches("last", s)] == [7, 8]
        assert [s for s in range(1, 9) if constraints._slot_matches("morning", s)] == [1, 2, 3, 4]
        assert [s for s in range(1, 9) if constraints._slot_matches("afternoon", s)] == [6, 7, 8]

    def test_slot_bands_without_lunch(self):
        constraints = ConstraintSet(GenerationRules(), [demand(1, 5, [1])], WEEKDAYS, total_slots=6)
        assert constraints._slot_matches("morning", 2) is True
        assert constraints._slot_matches("afternoon", 4) is True
        assert constraints._slot_matches("afternoon", 3) is False

    def test_spread_evenly_off(self):
        constraints = ConstraintSet(GenerationRules(), [demand(1, 5, [1], spread_evenly=False)], WEEKDAYS)
        placed = {(1, 1): (1, 1)}
        assert constraints.distribution_penalty(placed, cell(1, 4), 1, urgency=0.8) == 0

    def test_prefer_consecutive_bonus(self):
        rules = GenerationRules(allow_double_periods=True)
        constraints = ConstraintSet(rules, [demand(1, 4, [1], prefer_consecutive=True)], WEEKDAYS)
        placed = {(1, 1): (1, 1)}
        assert constraints.double_period_bonus(placed, cell(1, 2), 1, urgency=0.8) == 1

    def test_prefer_consecutive_needs_double_periods(self):
        constraints = ConstraintSet(GenerationRules(), [demand(1, 4, [1], prefer_consecutive=True)], WEEKDAYS)
        placed = {(1, 1): (1, 1)}
        assert constraints.double_period_bonus(placed, cell(1, 2), 1, urgency=0.8) == 0

    def test_reliability_only_for_heavy_subjects(self):
        constraints = ConstraintSet(
            GenerationRules(),
            [demand(1, 5, [1]), demand(2, 2, [2])],
            WEEKDAYS,
            day_reliability={1: 1.0, 5: 0.7},
        )
        assert constraints.reliability(1, 5) == 0.7
        assert constraints.reliability(1, 1) == 1.0
        assert constraints.reliability(2, 5) == 1.0


class TestCommitChecks:

    def test_calendar_conflicts(self):
        commitments = [
            TeacherCommitment(teacher_id=1, day=0, slot_number=1, section_id=2),
            TeacherCommitment(teacher_id=2, day=0, slot_number=2, section_id=1),
        ]
        assignments = [assignment(0, 1, 1, 1), assignment(0, 2, 2, 2), assignment(0, 3, 1, 1)]

        conflicts = find_calendar_conflicts(assignments, commitments)

        assert conflicts == [{"teacher_id": 1, "day": 0, "slot_number": 1, "section_id": 2}]

    def test_double_bookings(self):
        assignments = [
            assignment(0, 1, 1, 1, section_id=1),
            assignment(0, 1, 1, 1, section_id=2),
            assignment(0, 2, 1, 1, section_id=2),
        ]
        assert find_double_bookings(assignments) == [(1, 0, 1)]
