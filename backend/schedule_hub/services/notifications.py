from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy.orm import Session

from schedule_hub.models.notification import Notification, NotificationLevel

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    NotificationLevel.success: logging.INFO,
    NotificationLevel.info: logging.INFO,
    NotificationLevel.warning: logging.WARNING,
    NotificationLevel.error: logging.ERROR,
}


class NotificationSink(Protocol):
    def notify(self, level: str, title: str, message: str) -> None: ...


def create_notification(
    db: Session,
    *,
    user_id: str | None,
    title: str,
    message: str,
    level: NotificationLevel = NotificationLevel.info,
) -> Notification:
    record = Notification(
        user_id=user_id,
        title=title,
        message=message,
        level=level,
    )
    db.add(record)
    db.flush()
    return record


class ActivityNotifier:
    """Stores reconciliation outcomes as notifications for the acting user."""

    def __init__(self, db: Session, *, user_id: str | None = None) -> None:
        self.db = db
        self.user_id = user_id

    def notify(self, level: str, title: str, message: str) -> None:
        resolved = NotificationLevel(level)
        logger.log(LOG_LEVELS[resolved], "%s: %s", title, message)
        create_notification(self.db, user_id=self.user_id, title=title, message=message, level=resolved)
        self.db.commit()
