from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from schedule_hub.api.deps import get_actor, get_db
from schedule_hub.models.notification import Notification, NotificationLevel
from schedule_hub.schemas.notification import NotificationOut
from schedule_hub.services.reconciler import ActorCapabilities

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    level: NotificationLevel | None = Query(default=None),
    is_read: bool | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    actor: ActorCapabilities = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    query = (
        select(Notification)
        .where(Notification.user_id == actor.actor_id)
        .order_by(Notification.created_at.desc())
    )
    if level:
        query = query.where(Notification.level == level)
    if is_read is not None:
        query = query.where(Notification.is_read == is_read)
    query = query.offset(offset).limit(limit)
    return list(db.execute(query).scalars())


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(
    notification_id: str,
    actor: ActorCapabilities = Depends(get_actor),
    db: Session = Depends(get_db),
) -> NotificationOut:
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != actor.actor_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
