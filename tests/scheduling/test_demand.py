import pytest

from app.services.scheduling.demand import (
    build_subject_demands,
    merge_curriculum,
    preferences_from_dict,
    qualified_teachers,
)
from app.services.scheduling.errors import InvalidCurriculum, NoQualifiedTeacher
from app.services.scheduling.types import CurriculumEntry, SchedulingPreferences, TeacherInfo


class TestMergeCurriculum:

    def test_section_entry_overrides_class_entry(self):
        entries = [
            CurriculumEntry(subject_id=1, periods_per_week=5),
            CurriculumEntry(subject_id=1, periods_per_week=3, section_id=7),
        ]
        merged = merge_curriculum(entries)

        assert len(merged) == 1
        assert merged[0].periods_per_week == 3

    def test_override_independent_of_order(self):
        entries = [
            CurriculumEntry(subject_id=1, periods_per_week=3, section_id=7),
            CurriculumEntry(subject_id=1, periods_per_week=5),
        ]
        assert merge_curriculum(entries)[0].periods_per_week == 3

    def test_sorted_by_subject(self):
        entries = [
            CurriculumEntry(subject_id=4, periods_per_week=1),
            CurriculumEntry(subject_id=2, periods_per_week=1),
        ]
        assert [e.subject_id for e in merge_curriculum(entries)] == [2, 4]


class TestQualifiedTeachers:

    def test_by_qualification(self, two_teachers):
        entry = CurriculumEntry(subject_id=3, periods_per_week=2)
        assert qualified_teachers(entry, two_teachers) == [2]

    def test_explicit_teacher_wins(self):
        teachers = [TeacherInfo(id=1, subject_ids=[1]), TeacherInfo(id=2, subject_ids=[1])]
        entry = CurriculumEntry(subject_id=1, periods_per_week=2, teacher_id=2)
        assert qualified_teachers(entry, teachers) == [2]

    def test_inactive_teachers_excluded(self):
        teachers = [
            TeacherInfo(id=1, subject_ids=[1], is_active=False),
            TeacherInfo(id=2, subject_ids=[1]),
        ]
        entry = CurriculumEntry(subject_id=1, periods_per_week=2)
        assert qualified_teachers(entry, teachers) == [2]

    def test_inactive_explicit_teacher(self):
        teachers = [TeacherInfo(id=1, subject_ids=[1], is_active=False)]
        entry = CurriculumEntry(subject_id=1, periods_per_week=2, teacher_id=1)
        assert qualified_teachers(entry, teachers) == []


class TestBuildDemands:

    def test_builds_demand(self, two_teachers):
        curriculum = [
            CurriculumEntry(subject_id=1, periods_per_week=5),
            CurriculumEntry(subject_id=2, periods_per_week=4, max_periods_per_day=1),
        ]
        demands = build_subject_demands(curriculum, two_teachers)

        assert [(d.subject_id, d.required_weekly_periods) for d in demands] == [(1, 5), (2, 4)]
        assert demands[0].qualified_teacher_ids == [1]
        assert demands[1].max_periods_per_day == 1

    def test_zero_periods_skipped(self, two_teachers):
        curriculum = [
            CurriculumEntry(subject_id=1, periods_per_week=0),
            CurriculumEntry(subject_id=9, periods_per_week=0),
        ]
        assert build_subject_demands(curriculum, two_teachers) == []

    def test_preferences_carried(self, two_teachers):
        prefs = SchedulingPreferences(priority=9, avoid_days=frozenset({5}))
        curriculum = [CurriculumEntry(subject_id=1, periods_per_week=5, preferences=prefs)]

        [built] = build_subject_demands(curriculum, two_teachers)
        assert built.preferences is prefs

    def test_no_qualified_teacher(self, two_teachers):
        curriculum = [
            CurriculumEntry(subject_id=1, periods_per_week=5),
            CurriculumEntry(subject_id=9, periods_per_week=2),
        ]
        with pytest.raises(NoQualifiedTeacher) as exc:
            build_subject_demands(curriculum, two_teachers)

        assert exc.value.subject_ids == [9]
        assert exc.value.retryable is False
        assert exc.value.to_dict()["code"] == "NO_QUALIFIED_TEACHER"


class TestPreferencesFromDict:

    def test_empty(self):
        assert preferences_from_dict(None) == SchedulingPreferences()
        assert preferences_from_dict({}) == SchedulingPreferences()

    def test_full(self):
        prefs = preferences_from_dict({
            "priority": 8,
            "fixed_slots": [{"day": 1, "slot": 1}, {"day": 3, "slot": "2"}],
            "preferred_days": [1, 2],
            "preferred_slots": ["morning", 4],
            "avoid_days": [5],
            "avoid_slots": [8],
            "prefer_consecutive": True,
            "spread_evenly": False,
            "colour": "blue",
        })

        assert prefs.priority == 8
        assert prefs.fixed_slots == ((1, 1), (3, 2))
        assert prefs.preferred_days == frozenset({1, 2})
        assert prefs.preferred_slots == ("morning", 4)
        assert prefs.avoid_days == frozenset({5})
        assert prefs.avoid_slots == frozenset({8})
        assert prefs.prefer_consecutive is True
        assert prefs.spread_evenly is False

    def test_null_priority_uses_default(self):
        assert preferences_from_dict({"priority": None}).priority == 5

    def test_invalid(self):
        bad = [
            {"avoid_days": [7]},
            {"preferred_days": [-1]},
            {"fixed_slots": [{"day": 1}]},
            {"priority": "high"},
            {"preferred_slots": ["evening"]},
        ]
        for data in bad:
            with pytest.raises(InvalidCurriculum):
                preferences_from_dict(data)
