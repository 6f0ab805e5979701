"""
Data loader for timetable generation.
Fetches all relevant data from the database and converts to internal types.
"""

from typing import Optional

from sqlalchemy import select, and_, or_
from sqlalchemy.orm import Session

from app.db.models.academic_sessions import AcademicSessions, SessionStatus
from app.db.models.class_subjects import ClassSubjects
from app.db.models.sections import Sections
from app.db.models.teacher_subjects import TeacherSubjects
from app.db.models.teachers import Teachers
from app.db.models.timetable_slots import TimetableSlots, SlotType
from app.db.models.timetable_templates import TimetableTemplates

from .academic_calendar import count_instructional_days, parse_holidays
from .demand import preferences_from_dict
from .errors import ResourceNotFound, SessionNotEditable
from .template import parse_hhmm, rules_from_dict, working_days_from_off_days
from .types import (
    CurriculumEntry,
    GenerationContext,
    SlotAssignment,
    SlotKind,
    TeacherCommitment,
    TeacherInfo,
    Template,
)


CLOSED_STATUSES = (SessionStatus.COMPLETED, SessionStatus.ARCHIVED)


def load_session(db: Session, session_id: int) -> AcademicSessions:
    """Load an academic session that is still open for generation."""
    session = db.get(AcademicSessions, session_id)
    if session is None:
        raise ResourceNotFound(f"Academic session {session_id} not found", session_id=session_id)
    if session.is_locked:
        raise SessionNotEditable(f"Academic session {session_id} is locked", session_id=session_id)
    if session.status in CLOSED_STATUSES:
        raise SessionNotEditable(
            f"Academic session {session_id} is {session.status.value}",
            session_id=session_id,
        )
    return session


def load_section(db: Session, section_id: int) -> Sections:
    section = db.get(Sections, section_id)
    if section is None:
        raise ResourceNotFound(f"Section {section_id} not found", section_id=section_id)
    return section


def load_template(db: Session, template_id: Optional[int] = None) -> Template:
    """
    Load the period template to generate with.
    Explicit id first, then the active default, then the oldest active template.
    """
    if template_id is not None:
        row = db.get(TimetableTemplates, template_id)
        if row is None or not row.is_active:
            raise ResourceNotFound(f"Timetable template {template_id} not found", template_id=template_id)
    else:
        stmt = (
            select(TimetableTemplates)
            .where(TimetableTemplates.is_active == True)
            .order_by(TimetableTemplates.is_default.desc(), TimetableTemplates.created_at, TimetableTemplates.id)
        )
        row = db.execute(stmt).scalars().first()
        if row is None:
            raise ResourceNotFound("No active timetable template configured")

    return Template(
        id=row.id,
        total_slots_per_day=row.total_slots_per_day,
        start_time=parse_hhmm(row.start_time),
        slot_duration_minutes=row.slot_duration_minutes,
        break_slots=frozenset(row.break_slots or []),
        lunch_slot=row.lunch_slot,
        generation_rules=rules_from_dict(row.generation_rules),
    )


def load_curriculum(db: Session, session_id: int, section: Sections) -> list[CurriculumEntry]:
    """Load active curriculum rows for the section and its class."""

    stmt = select(ClassSubjects).where(
        and_(
            ClassSubjects.session_id == session_id,
            ClassSubjects.class_id == section.class_id,
            ClassSubjects.is_active == True,
            or_(
                ClassSubjects.section_id == section.id,
                ClassSubjects.section_id.is_(None),
            ),
        )
    ).order_by(ClassSubjects.subject_id, ClassSubjects.id)
    rows = db.execute(stmt).scalars().all()

    return [
        CurriculumEntry(
            subject_id=r.subject_id,
            periods_per_week=r.periods_per_week,
            teacher_id=r.teacher_id,
            section_id=r.section_id,
            max_periods_per_day=r.max_periods_per_day,
            preferences=preferences_from_dict(r.scheduling_preferences),
        )
        for r in rows
    ]


def load_instructional_days(session: AcademicSessions) -> dict[int, int]:
    """Teaching dates per weekday over the session; empty when the session has no date range."""
    if session.start_date is None or session.end_date is None:
        return {}
    return count_instructional_days(
        session.start_date,
        session.end_date,
        session.weekly_off_days,
        parse_holidays(session.holidays),
    )


def load_teachers(db: Session) -> list[TeacherInfo]:
    """Load the teacher directory with qualifications."""

    teacher_rows = db.execute(select(Teachers).order_by(Teachers.id)).scalars().all()
    qualification_rows = db.execute(select(TeacherSubjects)).scalars().all()

    subjects_by_teacher: dict[int, list[int]] = {}
    for q in qualification_rows:
        subjects_by_teacher.setdefault(q.teacher_id, []).append(q.subject_id)

    return [
        TeacherInfo(
            id=t.id,
            subject_ids=sorted(subjects_by_teacher.get(t.id, [])),
            is_active=t.is_active,
        )
        for t in teacher_rows
    ]


def load_teacher_commitments(db: Session, session_id: int, section_id: int) -> list[TeacherCommitment]:
    """
    Load every teacher booking the run must respect: all other sections'
    rows in the session, plus this section's locked rows.
    """
    stmt = select(TimetableSlots).where(
        and_(
            TimetableSlots.session_id == session_id,
            TimetableSlots.teacher_id.is_not(None),
            or_(
                TimetableSlots.section_id != section_id,
                TimetableSlots.is_locked == True,
            ),
        )
    )
    rows = db.execute(stmt).scalars().all()

    return [
        TeacherCommitment(
            teacher_id=r.teacher_id,
            day=r.day_of_week,
            slot_number=r.slot_number,
            section_id=r.section_id,
        )
        for r in rows
    ]


def load_pinned_slots(db: Session, session_id: int, section_id: int) -> list[SlotAssignment]:
    """Load this section's locked regular cells."""

    stmt = select(TimetableSlots).where(
        and_(
            TimetableSlots.session_id == session_id,
            TimetableSlots.section_id == section_id,
            TimetableSlots.is_locked == True,
            TimetableSlots.slot_type == SlotType.REGULAR,
        )
    ).order_by(TimetableSlots.day_of_week, TimetableSlots.slot_number)
    rows = db.execute(stmt).scalars().all()

    return [
        SlotAssignment(
            section_id=r.section_id,
            day=r.day_of_week,
            slot_number=r.slot_number,
            subject_id=r.subject_id,
            teacher_id=r.teacher_id,
            start_time=parse_hhmm(r.start_time),
            end_time=parse_hhmm(r.end_time),
            is_locked=True,
            slot_type=SlotKind(r.slot_type.value),
        )
        for r in rows
    ]


def load_generation_context(
    db: Session,
    section_id: int,
    session_id: int,
    template_id: Optional[int] = None,
) -> GenerationContext:
    """
    Load all data needed to generate a timetable for a section/session.

    Raises:
        ResourceNotFound: section, session or template missing
        SessionNotEditable: session locked, completed or archived
    """
    session = load_session(db, session_id)
    section = load_section(db, section_id)

    return GenerationContext(
        section_id=section_id,
        session_id=session_id,
        template=load_template(db, template_id),
        working_days=working_days_from_off_days(session.weekly_off_days),
        curriculum=load_curriculum(db, session_id, section),
        teachers=load_teachers(db),
        commitments=load_teacher_commitments(db, session_id, section_id),
        pinned=load_pinned_slots(db, session_id, section_id),
        instructional_days=load_instructional_days(session),
    )
