from pydantic import BaseModel
from typing import Optional
from app.db.models.timetable_slots import SlotType, SlotSource
from app.services.scheduling.types import WarningKind


class GenerateRequest(BaseModel):
    section_id: int
    session_id: int
    template_id: Optional[int] = None


class AssignmentResponse(BaseModel):
    day_of_week: int
    slot_number: int
    subject_id: Optional[int]
    teacher_id: Optional[int]
    start_time: str
    end_time: str
    is_locked: bool


class WarningResponse(BaseModel):
    kind: WarningKind
    scope: str
    message: str
    day_of_week: Optional[int] = None
    slot_number: Optional[int] = None
    subject_id: Optional[int] = None
    teacher_id: Optional[int] = None


class GenerateResponse(BaseModel):
    section_id: int
    session_id: int
    complete: bool
    nodes_expanded: int
    assignments: list[AssignmentResponse]
    warnings: list[WarningResponse]


class TimetableSlotResponse(BaseModel):
    id: int
    section_id: int
    session_id: int
    day_of_week: int
    slot_number: int
    slot_type: SlotType
    subject_id: Optional[int]
    teacher_id: Optional[int]
    start_time: str
    end_time: str
    is_locked: bool
    source: SlotSource

    class Config:
        from_attributes = True
