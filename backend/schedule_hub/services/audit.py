from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy.orm import Session

from schedule_hub.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)

SYSTEM_FIELDS = frozenset({"id", "created_at", "updated_at", "createdAt", "updatedAt"})


class AuditSink(Protocol):
    def record_create(
        self,
        summary: str,
        entity_kind: str,
        entity_ids: Sequence[str],
        new_data: dict[str, Any] | None = None,
        old_data: dict[str, Any] | None = None,
        source: str | None = None,
    ) -> None: ...

    def record_update(
        self,
        summary: str,
        entity_kind: str,
        entity_ids: Sequence[str],
        new_data: dict[str, Any] | None = None,
        old_data: dict[str, Any] | None = None,
        source: str | None = None,
    ) -> None: ...

    def record_delete(
        self,
        summary: str,
        entity_kind: str,
        entity_ids: Sequence[str],
        new_data: dict[str, Any] | None = None,
        old_data: dict[str, Any] | None = None,
        source: str | None = None,
    ) -> None: ...


def compute_field_changes(
    new_data: dict[str, Any] | None,
    old_data: dict[str, Any] | None,
) -> dict[str, dict[str, Any]]:
    if not new_data or not old_data:
        return {}
    changes: dict[str, dict[str, Any]] = {}
    for key in dict.fromkeys([*old_data, *new_data]):
        if key in SYSTEM_FIELDS:
            continue
        before = old_data.get(key)
        after = new_data.get(key)
        if before == after:
            continue
        if key not in old_data:
            change_type = "added"
        elif key not in new_data:
            change_type = "removed"
        else:
            change_type = "modified"
        changes[key] = {"from": before, "to": after, "type": change_type}
    return changes


def log_activity(
    db: Session,
    *,
    user_id: str | None,
    action: str,
    summary: str = "",
    entity_type: str | None = None,
    entity_id: str | None = None,
    source: str = "",
    details: dict | None = None,
) -> ActivityLog:
    record = ActivityLog(
        user_id=user_id,
        action=action,
        summary=summary,
        entity_type=entity_type,
        entity_id=entity_id,
        source=source,
        details=details or {},
    )
    db.add(record)
    return record


class ActivityAuditLog:
    """Audit sink writing one ``activity_logs`` row per schedule write."""

    def __init__(self, db: Session, *, actor_id: str | None = None, source: str = "") -> None:
        self.db = db
        self.actor_id = actor_id
        self.source = source

    def record_create(self, summary, entity_kind, entity_ids, new_data=None, old_data=None, source=None) -> None:
        self._record("CREATE", summary, entity_kind, entity_ids, new_data, old_data, source)

    def record_update(self, summary, entity_kind, entity_ids, new_data=None, old_data=None, source=None) -> None:
        self._record("UPDATE", summary, entity_kind, entity_ids, new_data, old_data, source)

    def record_delete(self, summary, entity_kind, entity_ids, new_data=None, old_data=None, source=None) -> None:
        self._record("DELETE", summary, entity_kind, entity_ids, new_data, old_data, source)

    def _record(
        self,
        action: str,
        summary: str,
        entity_kind: str,
        entity_ids: Sequence[str],
        new_data: dict[str, Any] | None,
        old_data: dict[str, Any] | None,
        source: str | None,
    ) -> None:
        resolved_source = source or self.source
        details: dict[str, Any] = {"summary": summary, "source": resolved_source}
        if new_data is not None:
            details["new_data"] = new_data
        if old_data is not None:
            details["original_data"] = old_data
        if action == "UPDATE":
            details["field_changes"] = compute_field_changes(new_data, old_data)

        log_activity(
            self.db,
            user_id=self.actor_id,
            action=action,
            summary=summary,
            entity_type=entity_kind,
            entity_id=",".join(entity_ids),
            source=resolved_source,
            details=details,
        )
        self.db.commit()
        logger.debug("Audit %s %s %s", action, entity_kind, ",".join(entity_ids))
