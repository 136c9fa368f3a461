from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, model_validator


class InviteStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    MAYBE = "maybe"


class InviteOwnerType(str, PyEnum):
    SESSION = "session"
    GROUP = "group"


class InviteOwnerRef(BaseModel):
    """The session or group an invite points at."""
    owner_type: InviteOwnerType
    owner_id: str


class InviteCreate(BaseModel):
    invitee_name: str
    invitee_phone: Optional[str] = None
    invitee_email: Optional[EmailStr] = None
    # Set when the inviter picked someone from their in-app friends list
    invitee_id: Optional[str] = None

    @model_validator(mode="after")
    def require_contact(self):
        if not (self.invitee_id or self.invitee_phone or self.invitee_email):
            raise ValueError("An invite needs an account id, a phone number or an email")
        return self


class BulkInviteCreate(BaseModel):
    owner: InviteOwnerRef
    invites: List[InviteCreate]


class InviteRespond(BaseModel):
    response: InviteStatus

    @model_validator(mode="after")
    def reject_pending(self):
        if self.response == InviteStatus.PENDING:
            raise ValueError("pending is not a valid response")
        return self


class InviteResponse(BaseModel):
    id: str
    session_id: Optional[str] = None
    group_id: Optional[str] = None
    inviter_id: str
    invitee_name: Optional[str] = None
    invitee_phone: Optional[str] = None
    invitee_email: Optional[str] = None
    invitee_id: Optional[str] = None
    status: InviteStatus
    notification_sent: bool
    sms_sent: bool
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SmsHandoff(BaseModel):
    """Text the client hands to the OS SMS composer. Delivery is never confirmed."""
    invite_id: str
    phone: str
    message: str
    deep_link: str


class InviteFailure(BaseModel):
    invitee_name: str
    invitee_phone: Optional[str] = None
    reason: str


class InviteBatchResult(BaseModel):
    created: List[InviteResponse] = []
    sms: List[SmsHandoff] = []
    failed: List[InviteFailure] = []


class ContactCheckResponse(BaseModel):
    phone_number: str
    is_registered: bool
    is_invited: bool
    user_id: Optional[str] = None
    display_name: Optional[str] = None
    invited_at: Optional[datetime] = None


class UniqueInvitee(BaseModel):
    invitee_name: Optional[str] = None
    invitee_phone: str
    invitee_email: Optional[str] = None


class InvitationStats(BaseModel):
    total_invites: int
    accepted_invites: int


class DeepLinkLookup(BaseModel):
    link: str
