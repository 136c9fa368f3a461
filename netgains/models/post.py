import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer, Text, Enum, UniqueConstraint
from sqlalchemy.sql import func

from netgains.database import Base
from netgains.utils.time_utils import utc_now
from netgains.schemas.discussions import PostType


class Post(Base):
    __tablename__ = "posts"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    discussion_id = Column(String, ForeignKey("discussions.id", ondelete="CASCADE"), index=True, nullable=False)
    author_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    title = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    post_type = Column(Enum(PostType, name="post_type"), default=PostType.DISCUSSION, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)
    is_locked = Column(Boolean, default=False, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_by = Column(String, ForeignKey("users.id"), nullable=True)
    view_count = Column(Integer, default=0, nullable=False)
    reply_count = Column(Integer, default=0, nullable=False)
    last_reply_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class PostReaction(Base):
    __tablename__ = "post_reactions"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", "reaction_type", name="uq_post_reactions_key"),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    reaction_type = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
