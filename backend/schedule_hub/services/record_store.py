from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schedule_hub.models.schedule import Schedule
from schedule_hub.schemas.schedule import ScheduleRecord

logger = logging.getLogger(__name__)


class ScheduleStore(Protocol):
    def get(self, record_id: str) -> ScheduleRecord | None: ...

    def get_many(self, record_ids: Iterable[str]) -> dict[str, ScheduleRecord]: ...

    def query(self, **filters: Any) -> list[ScheduleRecord]: ...

    def create(self, data: dict[str, Any]) -> str: ...

    def update(self, record_id: str, data: dict[str, Any]) -> None: ...

    def delete(self, record_id: str) -> None: ...


class SqlScheduleStore:
    """Schedule store over the ``schedules`` table; each write commits on its own."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, record_id: str) -> ScheduleRecord | None:
        row = self.db.get(Schedule, record_id)
        return ScheduleRecord.model_validate(row) if row is not None else None

    def get_many(self, record_ids: Iterable[str]) -> dict[str, ScheduleRecord]:
        ids = [item for item in dict.fromkeys(record_ids) if item]
        if not ids:
            return {}
        rows = self.db.execute(select(Schedule).where(Schedule.id.in_(ids))).scalars()
        return {row.id: ScheduleRecord.model_validate(row) for row in rows}

    def query(self, **filters: Any) -> list[ScheduleRecord]:
        statement = select(Schedule).order_by(Schedule.course_code, Schedule.section, Schedule.created_at)
        for name, value in filters.items():
            if value is None:
                continue
            statement = statement.where(getattr(Schedule, name) == value)
        return [ScheduleRecord.model_validate(row) for row in self.db.execute(statement).scalars()]

    def create(self, data: dict[str, Any]) -> str:
        row = Schedule(**data)
        self.db.add(row)
        self._commit()
        return row.id

    def update(self, record_id: str, data: dict[str, Any]) -> None:
        row = self.db.get(Schedule, record_id)
        if row is None:
            raise LookupError(f"Schedule {record_id} no longer exists")
        for key, value in data.items():
            setattr(row, key, value)
        self._commit()

    def delete(self, record_id: str) -> None:
        row = self.db.get(Schedule, record_id)
        if row is None:
            return
        self.db.delete(row)
        self._commit()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            logger.exception("Schedule write failed; rolling back session")
            self.db.rollback()
            raise
