from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from pydantic import BaseModel


class FileType(str, PyEnum):
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"


class AttachmentOwnerType(str, PyEnum):
    POST = "post"
    REPLY = "reply"


class AttachmentResponse(BaseModel):
    id: str
    post_id: Optional[str] = None
    reply_id: Optional[str] = None
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    file_type: FileType
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttachmentFailure(BaseModel):
    file_name: str
    reason: str
