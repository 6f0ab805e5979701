from typing import Optional
from datetime import datetime
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base


class ClassSubjects(Base):
    """Curriculum mapping: weekly periods of a subject for a class, or for one section of it."""
    __tablename__ = "class_subjects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("academic_sessions.id"), nullable=False, index=True)
    class_id: Mapped[int] = mapped_column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    section_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("sections.id"), nullable=True)  # None = whole class
    subject_id: Mapped[int] = mapped_column(Integer, ForeignKey("subjects.id"), nullable=False)
    teacher_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("teachers.id"), nullable=True)
    periods_per_week: Mapped[int] = mapped_column(Integer, nullable=False)
    max_periods_per_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # priority, fixed_slots, preferred_days, preferred_slots, avoid_days, avoid_slots, prefer_consecutive, spread_evenly
    scheduling_preferences: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "class_id", "section_id", "subject_id", name="uix_class_subjects_mapping"),
    )
