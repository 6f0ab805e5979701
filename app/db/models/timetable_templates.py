from typing import Optional
from datetime import datetime
from sqlalchemy import Boolean, DateTime, Integer, String, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base


class TimetableTemplates(Base):
    __tablename__ = "timetable_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    total_slots_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, default="08:00")  # HH:MM
    slot_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=45)
    break_slots: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    lunch_slot: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    generation_rules: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
