from sqlalchemy import Integer, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum, Index, UniqueConstraint, func
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from enum import Enum
from typing import Optional
from app.db.database import Base


class SlotType(str, Enum):
    REGULAR = "REGULAR"
    BREAK = "BREAK"
    ASSEMBLY = "ASSEMBLY"
    LUNCH = "LUNCH"
    SPECIAL = "SPECIAL"


class SlotSource(str, Enum):
    MANUAL = "MANUAL"
    GENERATED = "GENERATED"


class TimetableSlots(Base):
    __tablename__ = "timetable_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    section_id: Mapped[int] = mapped_column(Integer, ForeignKey("sections.id"), nullable=False)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("academic_sessions.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Sun..6=Sat
    slot_number: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_type: Mapped[SlotType] = mapped_column(SQLEnum(SlotType, name="slot_type_enum"), nullable=False, default=SlotType.REGULAR)
    subject_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("subjects.id"), nullable=True)
    teacher_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("teachers.id"), nullable=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source: Mapped[SlotSource] = mapped_column(SQLEnum(SlotSource, name="slot_source_enum"), nullable=False, default=SlotSource.GENERATED)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("section_id", "session_id", "day_of_week", "slot_number", name="uix_timetable_slots_section_cell"),
        # NULL teacher_id rows (breaks, lunch) never collide
        UniqueConstraint("session_id", "teacher_id", "day_of_week", "slot_number", name="uix_timetable_slots_teacher_cell"),
        Index("ix_timetable_slots_session_teacher", "session_id", "teacher_id"),
    )
