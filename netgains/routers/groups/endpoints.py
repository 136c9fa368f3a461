import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.schemas.groups import (
    AdminRoleUpdate,
    GroupCreate,
    GroupMemberCreate,
    GroupMemberResponse,
    GroupResponse,
    GroupSessionInviteResponse,
    GroupUpdate,
    GroupWithMembersResponse,
    ManageGroupResponse,
    MemberRemovalResponse,
)
from netgains.services import group_service

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("", response_model=GroupWithMembersResponse)
async def create_group_api(
    group_data: GroupCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a group. The caller becomes its first, approved admin.

    Args:
        group_data (GroupCreate): Name, description and contacts to invite
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        GroupWithMembersResponse: The group and its members
    """
    group = await group_service.create_group(db, current_user, group_data)
    return await group_service.get_group_with_members(db, group.id)


@router.get("", response_model=List[GroupResponse])
async def list_groups_api(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await group_service.list_groups_for_user(db, current_user)


@router.get("/{group_id}", response_model=GroupWithMembersResponse, dependencies=[Depends(get_current_user)])
async def get_group_api(group_id: str, db: AsyncSession = Depends(get_db)):
    return await group_service.get_group_with_members(db, group_id)


@router.patch("/{group_id}", response_model=GroupResponse)
async def update_group_api(
    group_id: str,
    group_data: GroupUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await group_service.update_group(db, current_user, group_id, group_data)


@router.delete("/{group_id}", response_model=dict)
async def delete_group_api(
    group_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a group with its members, invitations and discussion.

    Raises:
        HTTPException: 403 unless the caller created the group
    """
    return await group_service.delete_group(db, current_user, group_id)


@router.post("/{group_id}/sessions/{session_id}", response_model=GroupSessionInviteResponse)
async def invite_group_to_session_api(
    group_id: str,
    session_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Invite a whole group to a session.

    Args:
        group_id (str): Group to invite, owned by the caller
        session_id (str): Session owned by the caller
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        GroupSessionInviteResponse: The new or existing invitation
    """
    return await group_service.invite_group_to_session(db, current_user, group_id, session_id)


@router.get("/sessions/{session_id}/invited", response_model=List[GroupResponse])
async def list_groups_invited_to_session_api(
    session_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await group_service.list_groups_invited_to_session(db, current_user, session_id)


@router.get("/{group_id}/permissions", response_model=ManageGroupResponse)
async def get_group_permissions_api(
    group_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """What the caller may do in this group."""
    await group_service.get_group(db, group_id)
    is_creator = await group_service.is_group_creator(db, current_user["uid"], group_id)
    is_admin = await group_service.is_group_admin(db, current_user["uid"], group_id)
    return ManageGroupResponse(can_manage=is_creator or is_admin, is_creator=is_creator, is_admin=is_admin)


@router.post("/{group_id}/members", response_model=List[GroupMemberResponse])
async def add_members_api(
    group_id: str,
    members: List[GroupMemberCreate],
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await group_service.add_members(db, current_user, group_id, members)


@router.post("/{group_id}/join", response_model=GroupMemberResponse)
async def request_to_join_api(
    group_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Join a group from an invite link. The membership waits for a manager's approval.

    Args:
        group_id (str): Group from the deep link
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        GroupMemberResponse: The caller's membership
    """
    return await group_service.request_to_join(db, current_user, group_id)


@router.post("/{group_id}/accept", response_model=GroupMemberResponse)
async def accept_group_invite_api(
    group_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await group_service.accept_group_invite(db, current_user, group_id)


@router.get("/{group_id}/pending-approvals", response_model=List[GroupMemberResponse])
async def get_pending_approvals_api(
    group_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await group_service.get_pending_approvals(db, current_user, group_id)


@router.get("/{group_id}/invited", response_model=List[GroupMemberResponse], dependencies=[Depends(get_current_user)])
async def list_invited_members_api(group_id: str, db: AsyncSession = Depends(get_db)):
    return await group_service.list_invited_members(db, group_id)


@router.post("/members/{member_id}/approve", response_model=GroupMemberResponse)
async def approve_member_api(
    member_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Approve a member who accepted their invite.

    Raises:
        HTTPException: 403 if the caller is not the group creator or an admin
    """
    return await group_service.approve_member(db, current_user, member_id)


@router.post("/members/{member_id}/deny", response_model=GroupMemberResponse)
async def deny_member_api(
    member_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await group_service.deny_member(db, current_user, member_id)


@router.put("/members/{member_id}/admin", response_model=GroupMemberResponse)
async def set_admin_api(
    member_id: str,
    body: AdminRoleUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await group_service.set_admin(db, current_user, member_id, body.is_admin)


@router.delete("/members/{member_id}", response_model=MemberRemovalResponse)
async def remove_member_api(
    member_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await group_service.remove_member(db, current_user, member_id)
    return MemberRemovalResponse(removed_member_id=result.removed_member_id, warning=result.warning)
