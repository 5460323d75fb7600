import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from schedule_hub.db.base import Base


class TermStatus(str, Enum):
    active = "active"
    archived = "archived"


class Term(Base):
    __tablename__ = "terms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    term: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    term_code: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    status: Mapped[TermStatus] = mapped_column(
        SAEnum(TermStatus, name="term_status"),
        nullable=False,
        default=TermStatus.active,
    )
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
