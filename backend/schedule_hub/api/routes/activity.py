from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from schedule_hub.api.deps import get_db
from schedule_hub.models.activity_log import ActivityLog
from schedule_hub.schemas.activity import ActivityLogOut

router = APIRouter()


@router.get("/activity/logs", response_model=list[ActivityLogOut])
def list_activity_logs(
    entity_type: str | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[ActivityLogOut]:
    query = select(ActivityLog).order_by(ActivityLog.created_at.desc()).limit(limit)
    if entity_type:
        query = query.where(ActivityLog.entity_type == entity_type)
    return list(db.execute(query).scalars())
