import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.db.models.sections import Sections
from app.db.models.timetable_slots import TimetableSlots
from app.schemas.timetable import (
    AssignmentResponse,
    GenerateRequest,
    GenerateResponse,
    TimetableSlotResponse,
    WarningResponse,
)
from app.services.scheduling import generate_timetable
from app.services.scheduling.errors import (
    TimetableGenerationError,
    InvalidTemplate,
    InvalidCurriculum,
    NoQualifiedTeacher,
    Infeasible,
    GenerationInProgress,
    StaleCalendar,
    ResourceNotFound,
    SessionNotEditable,
)
from app.services.scheduling.template import format_hhmm
from app.services.scheduling.types import GenerationResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/timetable", tags=["timetable"])

ERROR_STATUS = {
    InvalidTemplate: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidCurriculum: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NoQualifiedTeacher: status.HTTP_422_UNPROCESSABLE_ENTITY,
    Infeasible: status.HTTP_422_UNPROCESSABLE_ENTITY,
    GenerationInProgress: status.HTTP_409_CONFLICT,
    StaleCalendar: status.HTTP_409_CONFLICT,
    ResourceNotFound: status.HTTP_404_NOT_FOUND,
    SessionNotEditable: status.HTTP_403_FORBIDDEN,
}


def _to_response(result: GenerationResult) -> GenerateResponse:
    return GenerateResponse(
        section_id=result.section_id,
        session_id=result.session_id,
        complete=result.complete,
        nodes_expanded=result.nodes_expanded,
        assignments=[
            AssignmentResponse(
                day_of_week=a.day,
                slot_number=a.slot_number,
                subject_id=a.subject_id,
                teacher_id=a.teacher_id,
                start_time=format_hhmm(a.start_time),
                end_time=format_hhmm(a.end_time),
                is_locked=a.is_locked,
            )
            for a in result.assignments
        ],
        warnings=[
            WarningResponse(
                kind=w.kind,
                scope=w.scope,
                message=w.message,
                day_of_week=w.day,
                slot_number=w.slot_number,
                subject_id=w.subject_id,
                teacher_id=w.teacher_id,
            )
            for w in result.warnings
        ],
    )


@router.post("/generate", response_model=GenerateResponse)
def generate(
    payload: GenerateRequest,
    db: Session = Depends(get_db),
):
    try:
        result = generate_timetable(
            db,
            section_id=payload.section_id,
            session_id=payload.session_id,
            template_id=payload.template_id,
        )
    except TimetableGenerationError as e:
        status_code = ERROR_STATUS.get(type(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.info(f"Generation for section {payload.section_id} failed: {e.code} {e.message}")
        raise HTTPException(status_code=status_code, detail=e.to_dict())
    return _to_response(result)


@router.get("/sections/{section_id}", response_model=List[TimetableSlotResponse])
def get_section_timetable(
    section_id: int,
    session_id: int,
    db: Session = Depends(get_db),
):
    section = db.query(Sections).filter(Sections.id == section_id).first()
    if not section:
        raise HTTPException(status_code=404, detail="Section not found")

    return (
        db.query(TimetableSlots)
        .filter(TimetableSlots.section_id == section_id, TimetableSlots.session_id == session_id)
        .order_by(TimetableSlots.day_of_week, TimetableSlots.slot_number)
        .all()
    )
