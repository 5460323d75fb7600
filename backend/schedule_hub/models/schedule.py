import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from schedule_hub.db.base import Base


class LocationType(str, Enum):
    room = "room"
    no_room = "no_room"


class Schedule(Base):
    """One weekday meeting of a course section."""

    __tablename__ = "schedules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_code: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    course_title: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    program: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    subject_code: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    catalog_number: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    course_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    section: Mapped[str] = mapped_column(String(50), nullable=False)
    crn: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    clss_id: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    term: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    term_code: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_enrollment: Mapped[int | None] = mapped_column(Integer, nullable=True)
    schedule_type: Mapped[str] = mapped_column(String(100), nullable=False, default="Class Instruction")
    instruction_method: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Active")
    meeting_patterns: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    instructor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    instructor_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    instructor_assignments: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    location_type: Mapped[LocationType] = mapped_column(
        SAEnum(LocationType, name="location_type"),
        nullable=False,
        default=LocationType.room,
    )
    location_label: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    space_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    space_display_names: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    online_mode: Mapped[str | None] = mapped_column(String(30), nullable=True)
    identity_key: Mapped[str] = mapped_column(String(300), index=True, nullable=False, default="")
    identity_keys: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    identity_source: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
