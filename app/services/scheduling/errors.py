"""
Error taxonomy for timetable generation.

Configuration errors (InvalidTemplate, InvalidCurriculum, NoQualifiedTeacher)
and Infeasible need the caller to change inputs. Concurrency errors
(GenerationInProgress, StaleCalendar) are retryable as-is. Soft problems are
never errors, they are warnings on a successful result.
"""

from typing import Optional


class TimetableGenerationError(Exception):
    code = "GENERATION_ERROR"
    retryable = False

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class InvalidTemplate(TimetableGenerationError):
    code = "INVALID_TEMPLATE"


class InvalidCurriculum(TimetableGenerationError):
    code = "INVALID_CURRICULUM"


class NoQualifiedTeacher(TimetableGenerationError):
    code = "NO_QUALIFIED_TEACHER"

    def __init__(self, subject_ids: list[int]):
        ids = ", ".join(str(s) for s in subject_ids)
        super().__init__(f"No qualified active teacher for subject(s): {ids}", subject_ids=subject_ids)
        self.subject_ids = subject_ids


class Infeasible(TimetableGenerationError):
    code = "INFEASIBLE"

    def __init__(self, message: str, subject_id: Optional[int] = None, day: Optional[int] = None, **details):
        super().__init__(message, subject_id=subject_id, day=day, **details)
        self.subject_id = subject_id
        self.day = day


class GenerationInProgress(TimetableGenerationError):
    code = "GENERATION_IN_PROGRESS"
    retryable = True

    def __init__(self, section_id: int, session_id: int):
        super().__init__(
            f"Generation already running for section {section_id} in session {session_id}",
            section_id=section_id,
            session_id=session_id,
        )


class StaleCalendar(TimetableGenerationError):
    code = "STALE_CALENDAR"
    retryable = True

    def __init__(self, message: str, conflicts: Optional[list[dict]] = None):
        super().__init__(message, conflicts=conflicts or [])
        self.conflicts = conflicts or []


class ResourceNotFound(TimetableGenerationError):
    code = "NOT_FOUND"


class SessionNotEditable(TimetableGenerationError):
    code = "SESSION_NOT_EDITABLE"
