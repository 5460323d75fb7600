from datetime import datetime

from pydantic import BaseModel

from schedule_hub.models.notification import NotificationLevel


class NotificationOut(BaseModel):
    id: str
    user_id: str | None
    level: NotificationLevel
    title: str
    message: str
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}
