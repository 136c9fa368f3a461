import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from netgains.database import Base


class GroupSessionInvite(Base):
    """A whole group invited to a session. One row per (session, group)."""

    __tablename__ = "group_invitations"
    __table_args__ = (
        UniqueConstraint("session_id", "group_id", name="uq_group_invitations_session_group"),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String, ForeignKey("sessions.id", ondelete="CASCADE"), index=True, nullable=False)
    group_id = Column(String, ForeignKey("groups.id", ondelete="CASCADE"), index=True, nullable=False)
    invited_by = Column(String, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
