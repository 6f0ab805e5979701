from app.db.database import Base

# Import models
from app.db.models.academic_sessions import AcademicSessions, SessionStatus
from app.db.models.classes import Classes
from app.db.models.sections import Sections
from app.db.models.subjects import Subjects
from app.db.models.teachers import Teachers
from app.db.models.teacher_subjects import TeacherSubjects
from app.db.models.class_subjects import ClassSubjects
from app.db.models.timetable_templates import TimetableTemplates
from app.db.models.timetable_slots import TimetableSlots, SlotType, SlotSource

__all__ = [
    "Base",
    # Models
    "AcademicSessions",
    "Classes",
    "Sections",
    "Subjects",
    "Teachers",
    "TeacherSubjects",
    "ClassSubjects",
    "TimetableTemplates",
    "TimetableSlots",
    # Enums
    "SessionStatus",
    "SlotType",
    "SlotSource",
]
