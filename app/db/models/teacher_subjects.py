from sqlalchemy import Integer, ForeignKey, PrimaryKeyConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.db.database import Base

class TeacherSubjects(Base):
    __tablename__ = "teacher_subjects"

    teacher_id: Mapped[int] = mapped_column(Integer, ForeignKey("teachers.id"), nullable=False)
    subject_id: Mapped[int] = mapped_column(Integer, ForeignKey("subjects.id"), nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("teacher_id", "subject_id"),
    )
