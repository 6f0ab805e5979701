import pytest

from app.services.scheduling.constraints import ConstraintSet
from app.services.scheduling.errors import GenerationInProgress
from app.services.scheduling.guard import GenerationGuard
from app.services.scheduling.teacher_calendar import TeacherCalendar
from app.services.scheduling.types import GenerationRules, ScheduleWarning, WarningKind
from app.services.scheduling.warning_collector import WarningCollector

from conftest import demand, WEEKDAYS


class TestWarningCollector:

    def test_duplicates_dropped(self):
        collector = WarningCollector()
        collector.unfilled(1, 2, 5)
        collector.unfilled(1, 2, 5)
        assert len(collector) == 1

    def test_scopes(self):
        collector = WarningCollector()
        collector.unfilled(3, 1, 4)
        collector.unfillable_cell(1, 2)
        collector.budget_exhausted(100, 100)

        scopes = [w.scope for w in collector.warnings]
        assert scopes == ["subject:3", "cell:1:2", "section"]
        assert "Monday slot 2" in collector.warnings[1].message

    def test_fewer_instructional_days(self):
        collector = WarningCollector()
        collector.fewer_instructional_days(5, 28)

        [warning] = collector.warnings
        assert warning.kind == WarningKind.FEWER_INSTRUCTIONAL_DAYS
        assert warning.scope == "day:5"
        assert warning.message.startswith("Friday has significantly fewer instructional days (28)")

    def test_teacher_scope(self):
        warning = ScheduleWarning(kind=WarningKind.DAILY_LOAD_EXCEEDED, message="", day=2, teacher_id=7)
        assert warning.scope == "teacher:7:day:2"

    def test_soft_violations_in_final_timetable(self):
        rules = GenerationRules(max_periods_per_teacher_per_day=2, max_consecutive_hours_teacher=2)
        constraints = ConstraintSet(rules, [demand(1, 3, [1])], WEEKDAYS)
        calendar = TeacherCalendar([])
        placed = {}
        for slot in (1, 2, 3):
            calendar.commit(1, 0, slot, section_id=1)
            placed[(0, slot)] = (1, 1)

        collector = WarningCollector()
        collector.collect_soft_violations(constraints, calendar, placed, set(placed))

        kinds = [w.kind for w in collector.warnings]
        assert kinds == [
            WarningKind.DAILY_LOAD_EXCEEDED,
            WarningKind.CONSECUTIVE_HOURS_EXCEEDED,
            WarningKind.SUBJECT_DAILY_LIMIT_EXCEEDED,
        ]

    def test_untouched_days_not_reported(self):
        rules = GenerationRules(max_periods_per_teacher_per_day=1)
        constraints = ConstraintSet(rules, [demand(1, 3, [1])], WEEKDAYS)
        calendar = TeacherCalendar([])
        placed = {}
        for slot in (1, 3):
            calendar.commit(1, 0, slot, section_id=1)
            placed[(0, slot)] = (1, 1)
        calendar.commit(1, 1, 1, section_id=1)
        placed[(1, 1)] = (1, 1)

        collector = WarningCollector()
        collector.collect_soft_violations(constraints, calendar, placed, {(1, 1)})

        assert len(collector) == 0


class TestGenerationGuard:

    def test_rejects_same_pair(self):
        guard = GenerationGuard()
        with guard.acquire(1, 1):
            with pytest.raises(GenerationInProgress):
                with guard.acquire(1, 1):
                    pass

    def test_released_after_error(self):
        guard = GenerationGuard()
        with pytest.raises(RuntimeError):
            with guard.acquire(1, 1):
                raise RuntimeError("boom")
        assert guard.is_active(1, 1) is False

    def test_independent_pairs(self):
        guard = GenerationGuard()
        with guard.acquire(1, 1):
            with guard.acquire(2, 1):
                assert guard.is_active(1, 1) and guard.is_active(2, 1)
