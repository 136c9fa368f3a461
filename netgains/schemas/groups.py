from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional

from pydantic import BaseModel


class ApprovalStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class GroupMemberCreate(BaseModel):
    contact_name: str
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    # Present when the person already has an account
    user_id: Optional[str] = None


class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = None
    members: List[GroupMemberCreate] = []


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class GroupResponse(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    contact_name: str
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    user_id: Optional[str] = None
    is_admin: bool
    accepted_invite: bool
    approval_status: ApprovalStatus
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupWithMembersResponse(GroupResponse):
    members: List[GroupMemberResponse] = []
    member_count: int = 0


class AdminRoleUpdate(BaseModel):
    is_admin: bool


class MemberRemovalResponse(BaseModel):
    removed_member_id: str
    warning: Optional[str] = None


class ManageGroupResponse(BaseModel):
    can_manage: bool
    is_creator: bool
    is_admin: bool


class GroupSessionInviteResponse(BaseModel):
    id: str
    session_id: str
    group_id: str
    invited_by: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
