from typing import Optional
from sqlalchemy import Integer, String, Boolean, Date, DateTime, JSON, Enum as SQLEnum, func
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime
from enum import Enum
from app.db.database import Base


class SessionStatus(str, Enum):
    PLANNED = "PLANNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class AcademicSessions(Base):
    __tablename__ = "academic_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[SessionStatus] = mapped_column(SQLEnum(SessionStatus, name="session_status_enum"), nullable=False, default=SessionStatus.ACTIVE)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    weekly_off_days: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=lambda: [0])  # 0=Sun..6=Sat
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    holidays: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)  # ISO dates
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
