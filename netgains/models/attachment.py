import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Enum, CheckConstraint
from sqlalchemy.sql import func

from netgains.database import Base
from netgains.schemas.attachments import FileType


class Attachment(Base):
    __tablename__ = "attachments"
    __table_args__ = (
        CheckConstraint(
            "post_id IS NULL OR reply_id IS NULL",
            name="ck_attachments_single_owner",
        ),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), index=True, nullable=True)
    reply_id = Column(String, ForeignKey("replies.id", ondelete="CASCADE"), index=True, nullable=True)
    file_name = Column(String, nullable=False)
    # Public URL
    file_path = Column(String, nullable=False)
    storage_key = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String, nullable=False)
    file_type = Column(Enum(FileType, name="file_type"), nullable=False)
    created_by = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
