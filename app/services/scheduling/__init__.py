"""
Timetable generation service package.

Usage:
    from app.services.scheduling import generate_timetable

    # Simple usage - load, solve and commit in one call
    result = generate_timetable(db, section_id=3, session_id=1)

    # Or load context separately for inspection/testing
    from app.services.scheduling import load_generation_context, generate_timetable_from_context

    context = load_generation_context(db, section_id=3, session_id=1)
    result = generate_timetable_from_context(context)
"""

from .types import (
    CellState,
    CurriculumEntry,
    GenerationContext,
    GenerationResult,
    GenerationRules,
    ScheduleCell,
    ScheduleWarning,
    SchedulingPreferences,
    SlotAssignment,
    SlotKind,
    SubjectDemand,
    TeacherCommitment,
    TeacherInfo,
    Template,
    WarningKind,
)
from .errors import (
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
from .data_loader import load_generation_context
from .generator import generate_timetable, generate_timetable_from_context
from .solver import solve_timetable

__all__ = [
    # Types
    "CellState",
    "CurriculumEntry",
    "GenerationContext",
    "GenerationResult",
    "GenerationRules",
    "ScheduleCell",
    "ScheduleWarning",
    "SchedulingPreferences",
    "SlotAssignment",
    "SlotKind",
    "SubjectDemand",
    "TeacherCommitment",
    "TeacherInfo",
    "Template",
    "WarningKind",
    # Errors
    "TimetableGenerationError",
    "InvalidTemplate",
    "InvalidCurriculum",
    "NoQualifiedTeacher",
    "Infeasible",
    "GenerationInProgress",
    "StaleCalendar",
    "ResourceNotFound",
    "SessionNotEditable",
    # Main entry points
    "generate_timetable",
    "generate_timetable_from_context",
    # Lower-level functions
    "load_generation_context",
    "solve_timetable",
]
