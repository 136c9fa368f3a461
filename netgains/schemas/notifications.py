from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional

from pydantic import BaseModel


class NotificationType(str, PyEnum):
    SESSION_INVITE = "session_invite"
    GROUP_INVITE = "group_invite"
    INVITE_RESPONSE = "invite_response"
    GROUP_APPROVAL = "group_approval"
    GROUP_SESSION_INVITE = "group_session_invite"
    REPLY = "reply"


class NotificationBase(BaseModel):
    type: NotificationType
    title: str
    message: str
    data: Optional[str] = None


class NotificationResponse(NotificationBase):
    id: str
    user_id: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationStatusUpdate(BaseModel):
    ids: List[str]
    is_read: bool = True
