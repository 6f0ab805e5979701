import pytest
from datetime import time
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.database import Base
import app.db.models  # noqa: F401  registers tables on Base.metadata
from app.services.scheduling.types import (
    CurriculumEntry,
    GenerationContext,
    GenerationRules,
    SchedulingPreferences,
    SubjectDemand,
    TeacherInfo,
    Template,
)

WEEKDAYS = [1, 2, 3, 4, 5]  # Monday to Friday


def make_template(
    slots: int = 8,
    break_slots: tuple = (),
    lunch_slot: Optional[int] = None,
    start: time = time(8, 0),
    duration: int = 45,
    **rules,
) -> Template:
    # rules are GenerationRules overrides, e.g. allow_double_periods=True
    return Template(
        total_slots_per_day=slots,
        start_time=start,
        slot_duration_minutes=duration,
        break_slots=frozenset(break_slots),
        lunch_slot=lunch_slot,
        generation_rules=GenerationRules(**rules),
    )


def make_context(
    template: Template,
    curriculum: list[CurriculumEntry],
    teachers: list[TeacherInfo],
    working_days: Optional[list[int]] = None,
    commitments: Optional[list] = None,
    pinned: Optional[list] = None,
    section_id: int = 1,
    session_id: int = 1,
    instructional_days: Optional[dict] = None,
) -> GenerationContext:
    return GenerationContext(
        section_id=section_id,
        session_id=session_id,
        template=template,
        working_days=list(WEEKDAYS if working_days is None else working_days),
        curriculum=curriculum,
        teachers=teachers,
        commitments=list(commitments or []),
        pinned=list(pinned or []),
        instructional_days=dict(instructional_days or {}),
    )


def demand(
    subject_id: int,
    periods: int,
    teachers: list[int],
    max_per_day: Optional[int] = None,
    **preferences,
) -> SubjectDemand:
    # preferences are SchedulingPreferences fields, e.g. avoid_days=frozenset({5})
    return SubjectDemand(
        subject_id=subject_id,
        required_weekly_periods=periods,
        qualified_teacher_ids=teachers,
        max_periods_per_day=max_per_day,
        preferences=SchedulingPreferences(**preferences),
    )


@pytest.fixture
def standard_template() -> Template:
    # 7 slots, short break after period 3, lunch at 5
    return make_template(slots=7, break_slots=(3,), lunch_slot=5)


@pytest.fixture
def two_teachers() -> list[TeacherInfo]:
    # teacher 1 covers maths (1), teacher 2 covers english (2) and science (3)
    return [
        TeacherInfo(id=1, subject_ids=[1]),
        TeacherInfo(id=2, subject_ids=[2, 3]),
    ]


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()
