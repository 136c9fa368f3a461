import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from netgains.database import Base
from netgains.utils.time_utils import utc_now
from netgains.schemas.groups import ApprovalStatus


class Group(Base):
    __tablename__ = "groups"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    members = relationship(
        "GroupMember",
        back_populates="group",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="GroupMember.created_at",
    )


class GroupMember(Base):
    __tablename__ = "group_members"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    group_id = Column(String, ForeignKey("groups.id", ondelete="CASCADE"), index=True, nullable=False)
    contact_name = Column(String, nullable=False)
    contact_phone = Column(String, index=True, nullable=True)
    contact_email = Column(String, nullable=True)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    accepted_invite = Column(Boolean, default=False, nullable=False)
    approval_status = Column(
        Enum(ApprovalStatus, name="approval_status"),
        default=ApprovalStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    group = relationship("Group", back_populates="members")

    @property
    def is_active(self) -> bool:
        from netgains.services.group_service import is_active_member

        return is_active_member(self)
