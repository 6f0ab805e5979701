"""
Commit coordinator.
Writes a generation result to the shared timetable with optimistic
re-validation against the live teacher calendar.
"""

import logging
import threading

from sqlalchemy import select, delete, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models.timetable_slots import TimetableSlots, SlotType, SlotSource

from .constraints import find_calendar_conflicts
from .data_loader import load_teacher_commitments
from .errors import StaleCalendar
from .template import format_hhmm, resolve_template
from .types import GenerationContext, GenerationResult, SlotKind


logger = logging.getLogger(__name__)

# serializes validate-then-write across sections in this process
_commit_lock = threading.Lock()


def _live_locked_rows(db: Session, section_id: int, session_id: int) -> list[TimetableSlots]:
    stmt = select(TimetableSlots).where(
        and_(
            TimetableSlots.section_id == section_id,
            TimetableSlots.session_id == session_id,
            TimetableSlots.is_locked == True,
        )
    )
    return db.execute(stmt).scalars().all()


def _build_rows(context: GenerationContext, result: GenerationResult, skip: set) -> list[TimetableSlots]:
    """Generated periods plus break/lunch rows for every non-teachable cell."""
    rows = []
    for a in result.new_assignments:
        rows.append(TimetableSlots(
            section_id=context.section_id,
            session_id=context.session_id,
            day_of_week=a.day,
            slot_number=a.slot_number,
            slot_type=SlotType.REGULAR,
            subject_id=a.subject_id,
            teacher_id=a.teacher_id,
            start_time=format_hhmm(a.start_time),
            end_time=format_hhmm(a.end_time),
            is_locked=False,
            source=SlotSource.GENERATED,
        ))

    grid = resolve_template(context.template, context.working_days)
    for day in sorted(grid):
        for cell in grid[day]:
            if cell.teachable or cell.key in skip:
                continue
            rows.append(TimetableSlots(
                section_id=context.section_id,
                session_id=context.session_id,
                day_of_week=cell.day,
                slot_number=cell.slot_number,
                slot_type=SlotType.LUNCH if cell.kind == SlotKind.LUNCH else SlotType.BREAK,
                start_time=format_hhmm(cell.start_time),
                end_time=format_hhmm(cell.end_time),
                is_locked=False,
                source=SlotSource.GENERATED,
            ))
    return rows


def commit_generation(
    db: Session,
    context: GenerationContext,
    result: GenerationResult,
) -> list[TimetableSlots]:
    """
    Replace the section's unlocked timetable rows with the result, atomically.

    Raises:
        StaleCalendar: the live calendar changed since the snapshot in a way
            that conflicts with the result; nothing is written
    """
    section_id, session_id = context.section_id, context.session_id

    with _commit_lock:
        try:
            live_locked = _live_locked_rows(db, section_id, session_id)
            locked_keys = {(r.day_of_week, r.slot_number) for r in live_locked}
            live_pinned = {
                (r.day_of_week, r.slot_number) for r in live_locked if r.slot_type == SlotType.REGULAR
            }
            if live_pinned != {p.key for p in context.pinned}:
                raise StaleCalendar(
                    f"Locked cells of section {section_id} changed during generation",
                    conflicts=[
                        {"day": d, "slot_number": s}
                        for d, s in sorted(live_pinned ^ {p.key for p in context.pinned})
                    ],
                )

            commitments = load_teacher_commitments(db, session_id, section_id)
            conflicts = find_calendar_conflicts(result.new_assignments, commitments)
            if conflicts:
                raise StaleCalendar(
                    f"{len(conflicts)} teacher slot(s) were taken by another section during generation",
                    conflicts=conflicts,
                )

            db.execute(
                delete(TimetableSlots).where(
                    and_(
                        TimetableSlots.section_id == section_id,
                        TimetableSlots.session_id == session_id,
                        TimetableSlots.is_locked == False,
                    )
                )
            )

            rows = _build_rows(context, result, skip=locked_keys)
            db.add_all(rows)
            db.flush()
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Commit for section {section_id} lost a race: {e.orig}")
            raise StaleCalendar(
                f"Teacher calendar changed while committing section {section_id}"
            ) from e
        except Exception:
            db.rollback()
            raise

    logger.info(f"Committed {len(rows)} timetable rows for section {section_id}, session {session_id}")
    return rows
