from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime
from ..models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    type: NotificationType
    event: str
    message: str
    link: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    count: int


class BroadcastRequest(BaseModel):
    message: str = Field(min_length=1)
    data: Optional[Dict[str, Any]] = None


class NotificationStats(BaseModel):
    online_users: int
    open_sessions: int
