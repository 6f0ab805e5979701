"""
Demand building.
Turns the curriculum mapping and teacher directory into per-subject demand.
"""

import logging
from typing import Optional

from .errors import InvalidCurriculum, NoQualifiedTeacher
from .types import SLOT_BANDS, CurriculumEntry, SchedulingPreferences, SubjectDemand, TeacherInfo


logger = logging.getLogger(__name__)


def _day_set(data: dict, name: str) -> frozenset[int]:
    days = frozenset(int(d) for d in data.get(name) or [])
    bad = sorted(d for d in days if not 0 <= d <= 6)
    if bad:
        raise InvalidCurriculum(f"{name} must be weekdays 0..6, got {bad}")
    return days


def preferences_from_dict(data: Optional[dict]) -> SchedulingPreferences:
    """
    Build SchedulingPreferences from a curriculum row's JSON column.
    Missing keys fall back to defaults, unknown keys are ignored.
    """
    if not data:
        return SchedulingPreferences()

    try:
        priority = 5 if data.get("priority") is None else int(data["priority"])
        fixed_slots = tuple(
            (int(f["day"]), int(f["slot"])) for f in data.get("fixed_slots") or []
        )
        preferred_days = _day_set(data, "preferred_days")
        avoid_days = _day_set(data, "avoid_days")
        avoid_slots = frozenset(int(s) for s in data.get("avoid_slots") or [])
    except (TypeError, ValueError, KeyError) as e:
        raise InvalidCurriculum(f"Invalid scheduling preferences: {e}") from e

    preferred_slots = []
    for wanted in data.get("preferred_slots") or []:
        if wanted in SLOT_BANDS or (isinstance(wanted, int) and not isinstance(wanted, bool)):
            preferred_slots.append(wanted)
        else:
            raise InvalidCurriculum(f"Unknown preferred slot {wanted!r}")

    return SchedulingPreferences(
        priority=priority,
        fixed_slots=fixed_slots,
        preferred_days=preferred_days,
        preferred_slots=tuple(preferred_slots),
        avoid_days=avoid_days,
        avoid_slots=avoid_slots,
        prefer_consecutive=bool(data.get("prefer_consecutive", False)),
        spread_evenly=bool(data.get("spread_evenly", True)),
    )


def merge_curriculum(entries: list[CurriculumEntry]) -> list[CurriculumEntry]:
    """One entry per subject; a section-level mapping overrides the class-level one."""
    by_subject: dict[int, CurriculumEntry] = {}
    for entry in entries:
        current = by_subject.get(entry.subject_id)
        if current is None or (entry.section_id is not None and current.section_id is None):
            by_subject[entry.subject_id] = entry
    return [by_subject[s] for s in sorted(by_subject)]


def qualified_teachers(entry: CurriculumEntry, teachers: list[TeacherInfo]) -> list[int]:
    """Active teachers who may teach the entry's subject, sorted by id."""
    active = {t.id: t for t in teachers if t.is_active}

    # an explicit assignment pins the subject to that teacher
    if entry.teacher_id is not None:
        return [entry.teacher_id] if entry.teacher_id in active else []

    return sorted(t.id for t in active.values() if entry.subject_id in t.subject_ids)


def build_subject_demands(
    curriculum: list[CurriculumEntry],
    teachers: list[TeacherInfo],
) -> list[SubjectDemand]:
    """
    Compute weekly demand and qualified teachers per subject.

    Raises:
        NoQualifiedTeacher: a subject with periods to place has nobody to teach it
    """
    demands = []
    missing = []

    for entry in merge_curriculum(curriculum):
        if entry.periods_per_week <= 0:
            continue

        teacher_ids = qualified_teachers(entry, teachers)
        if not teacher_ids:
            missing.append(entry.subject_id)
            continue

        demands.append(SubjectDemand(
            subject_id=entry.subject_id,
            required_weekly_periods=entry.periods_per_week,
            qualified_teacher_ids=teacher_ids,
            max_periods_per_day=entry.max_periods_per_day,
            preferences=entry.preferences,
        ))

    if missing:
        logger.warning(f"Subjects without a qualified teacher: {missing}")
        raise NoQualifiedTeacher(missing)

    return demands
