import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Enum, CheckConstraint
from sqlalchemy.sql import func

from netgains.database import Base
from netgains.schemas.invitation import InviteStatus, InviteOwnerType


class SessionInvite(Base):
    """An invitation to a session or a group.

    Rows live as long as their session or group. Only ``status``,
    ``responded_at`` and ``invitee_id`` move. ``invitee_id`` is null while the
    invitee is an external contact and is bound once, when they respond from
    an account.
    """

    __tablename__ = "session_invites"
    __table_args__ = (
        CheckConstraint(
            "(session_id IS NULL) <> (group_id IS NULL)",
            name="ck_session_invites_single_owner",
        ),
    )

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String, ForeignKey("sessions.id"), index=True, nullable=True)
    group_id = Column(String, ForeignKey("groups.id"), index=True, nullable=True)
    inviter_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    invitee_name = Column(String, nullable=False)
    invitee_phone = Column(String, index=True, nullable=True)
    invitee_email = Column(String, index=True, nullable=True)
    invitee_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)
    status = Column(Enum(InviteStatus, name="invite_status"), default=InviteStatus.PENDING, nullable=False)
    notification_sent = Column(Boolean, default=False)
    sms_sent = Column(Boolean, default=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def owner_type(self) -> InviteOwnerType:
        return InviteOwnerType.SESSION if self.session_id else InviteOwnerType.GROUP

    @property
    def owner_id(self) -> str:
        return self.session_id or self.group_id

    @property
    def is_external(self) -> bool:
        return self.invitee_id is None
