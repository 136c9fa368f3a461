import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from netgains.database import Base
from netgains.utils.time_utils import utc_now
from netgains.schemas.discussions import DiscussionType


class Discussion(Base):
    __tablename__ = "discussions"
    __table_args__ = (
        UniqueConstraint("discussion_type", "entity_id", name="uq_discussions_type_entity"),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    discussion_type = Column(Enum(DiscussionType, name="discussion_type"), nullable=False)
    # Group or session id, depending on discussion_type
    entity_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    participants = relationship(
        "DiscussionParticipant",
        back_populates="discussion",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def participant_ids(self) -> list:
        return [p.user_id for p in self.participants]


class DiscussionParticipant(Base):
    __tablename__ = "discussion_participants"
    __table_args__ = (
        UniqueConstraint("discussion_id", "user_id", name="uq_discussion_participants_user"),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    discussion_id = Column(String, ForeignKey("discussions.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    last_read_at = Column(DateTime(timezone=True), nullable=True)

    discussion = relationship("Discussion", back_populates="participants")
