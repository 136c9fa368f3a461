import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import delete, select, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from netgains.models import Group, GroupMember, GroupSessionInvite, PlaySession, SessionInvite, User
from netgains.schemas.discussions import DiscussionType
from netgains.schemas.groups import ApprovalStatus, GroupCreate, GroupMemberCreate, GroupUpdate
from netgains.schemas.notifications import NotificationType
from netgains.services.notification_service import notify_user

# Configure logging
logger = logging.getLogger(__name__)

LAST_ADMIN_WARNING = "group will be left without an admin"


@dataclass
class RemovalResult:
    removed_member_id: str
    warning: Optional[str] = None


def is_active_member(member) -> bool:
    """
    A member is active only when they accepted the invite and a manager
    approved them. Either flag alone is not enough.
    """
    if not member.accepted_invite:
        return False
    match ApprovalStatus(member.approval_status):
        case ApprovalStatus.APPROVED:
            return True
        case ApprovalStatus.PENDING | ApprovalStatus.DENIED:
            return False


async def get_group(db: AsyncSession, group_id: str) -> Group:
    result = await db.execute(select(Group).where(Group.id == group_id))
    group = result.scalar_one_or_none()
    if group is None:
        raise NotFoundError("Group not found")
    return group


async def get_member(db: AsyncSession, member_id: str) -> GroupMember:
    result = await db.execute(select(GroupMember).where(GroupMember.id == member_id))
    member = result.scalar_one_or_none()
    if member is None:
        raise NotFoundError("Group member not found")
    return member


async def is_group_creator(db: AsyncSession, user_id: str, group_id: str) -> bool:
    result = await db.execute(select(Group.id).where(Group.id == group_id, Group.user_id == user_id))
    return result.scalar_one_or_none() is not None


async def is_group_admin(db: AsyncSession, user_id: str, group_id: str) -> bool:
    result = await db.execute(
        select(GroupMember.id).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id,
            GroupMember.is_admin == True,
        ).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def can_manage_group(db: AsyncSession, user_id: str, group_id: str) -> bool:
    """Creator or admin. Checked against the store on every call."""
    if await is_group_creator(db, user_id, group_id):
        return True
    return await is_group_admin(db, user_id, group_id)


async def _require_manager(db: AsyncSession, user_id: str, group_id: str) -> None:
    if not await can_manage_group(db, user_id, group_id):
        raise PermissionDeniedError("Only the group creator or an admin can do this")


def _new_member(group_id: str, data: GroupMemberCreate) -> GroupMember:
    return GroupMember(
        group_id=group_id,
        contact_name=data.contact_name,
        contact_phone=data.contact_phone,
        contact_email=data.contact_email,
        user_id=data.user_id,
        is_admin=False,
        accepted_invite=data.user_id is not None,
        approval_status=ApprovalStatus.PENDING,
    )


async def create_group(db: AsyncSession, current_user: dict, data: GroupCreate) -> Group:
    """
    Create a group with its creator as an approved admin member.

    Args:
        db (AsyncSession): Database session
        current_user (dict): Current authenticated user information
        data (GroupCreate): Group details and initial contacts

    Returns:
        Group: The new group with its members loaded
    """
    creator = await db.get(User, current_user["uid"])

    group = Group(user_id=current_user["uid"], name=data.name, description=data.description)
    db.add(group)
    await db.flush()

    db.add(GroupMember(
        group_id=group.id,
        contact_name=(creator.name if creator and creator.name else "Group creator"),
        contact_phone=creator.phone if creator else None,
        contact_email=creator.email if creator else None,
        user_id=current_user["uid"],
        is_admin=True,
        accepted_invite=True,
        approval_status=ApprovalStatus.APPROVED,
    ))
    for member in data.members:
        db.add(_new_member(group.id, member))

    await db.commit()
    await db.refresh(group, attribute_names=["members"])
    logger.info(f"Group {group.id} created by {current_user['uid']} with {len(data.members)} invited members")
    return group


async def update_group(db: AsyncSession, current_user: dict, group_id: str, data: GroupUpdate) -> Group:
    group = await get_group(db, group_id)
    await _require_manager(db, current_user["uid"], group_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(group, field, value)
    await db.commit()
    await db.refresh(group)
    return group


async def add_members(db: AsyncSession, current_user: dict, group_id: str, members: List[GroupMemberCreate]) -> List[GroupMember]:
    await get_group(db, group_id)
    await _require_manager(db, current_user["uid"], group_id)

    new_members = [_new_member(group_id, m) for m in members]
    db.add_all(new_members)
    await db.commit()
    for member in new_members:
        await db.refresh(member)
    return new_members


async def request_to_join(db: AsyncSession, current_user: dict, group_id: str) -> GroupMember:
    """
    Self-service join from a group invite link.

    The member ends up ``accepted_invite=True`` with approval pending. An
    existing membership for the caller is returned unchanged; an invited
    contact row matching the caller's phone or email is claimed instead of
    inserting a second row.
    """
    await get_group(db, group_id)
    uid = current_user["uid"]

    result = await db.execute(
        select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == uid)
    )
    existing = result.scalar_one_or_none()
    if existing:
        return existing

    user = await db.get(User, uid)
    member = await _find_contact_member(db, group_id, user)
    if member is None:
        member = GroupMember(
            group_id=group_id,
            contact_name=(user.name if user and user.name else uid),
            contact_phone=user.phone if user else None,
            contact_email=user.email if user else None,
            approval_status=ApprovalStatus.PENDING,
        )
        db.add(member)

    member.user_id = uid
    member.accepted_invite = True
    await db.commit()
    await db.refresh(member)
    logger.info(f"User {uid} requested to join group {group_id}")
    return member


async def _find_contact_member(db: AsyncSession, group_id: str, user: Optional[User]) -> Optional[GroupMember]:
    if user is None:
        return None
    matches = []
    if user.phone:
        matches.append(GroupMember.contact_phone == user.phone)
    if user.email:
        matches.append(GroupMember.contact_email == user.email)
    if not matches:
        return None
    result = await db.execute(
        select(GroupMember)
        .where(
            GroupMember.group_id == group_id,
            or_(*matches),
            or_(GroupMember.user_id.is_(None), GroupMember.user_id == user.id),
        )
        .order_by(GroupMember.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def accept_group_invite(db: AsyncSession, current_user: dict, group_id: str) -> GroupMember:
    """
    Flip ``accepted_invite`` on the invited contact row matching the caller.

    Raises:
        NotFoundError: If no invitation for the caller exists in the group
    """
    uid = current_user["uid"]
    user = await db.get(User, uid)

    result = await db.execute(
        select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == uid)
    )
    member = result.scalar_one_or_none() or await _find_contact_member(db, group_id, user)
    if member is None:
        raise NotFoundError("No group invitation found for this user")

    member.user_id = uid
    member.accepted_invite = True
    await db.commit()
    await db.refresh(member)
    return member


async def _set_approval(db: AsyncSession, current_user: dict, member_id: str, status: ApprovalStatus) -> GroupMember:
    """
    Move a pending membership to approved or denied.

    Raises:
        PermissionDeniedError: If the caller cannot manage the group, targets
            themself, the group creator or an admin
        ValidationError: If the membership was already decided, or is being
            approved before the invite was accepted
    """
    member = await get_member(db, member_id)
    await _require_manager(db, current_user["uid"], member.group_id)
    if member.user_id == current_user["uid"]:
        raise PermissionDeniedError("Managers cannot change their own approval")
    if member.is_admin or await is_group_creator(db, member.user_id, member.group_id):
        raise PermissionDeniedError("The approval of a group manager cannot be changed")
    if ApprovalStatus(member.approval_status) != ApprovalStatus.PENDING:
        raise ValidationError(f"Membership is already {ApprovalStatus(member.approval_status).value}")
    if status == ApprovalStatus.APPROVED and not member.accepted_invite:
        raise ValidationError("The invite has not been accepted yet")

    member.approval_status = status
    await db.commit()
    await db.refresh(member)
    logger.info(f"Member {member_id} of group {member.group_id} set to {status.value} by {current_user['uid']}")

    if member.user_id:
        group = await get_group(db, member.group_id)
        verb = "approved" if status == ApprovalStatus.APPROVED else "declined"
        await notify_user(
            db,
            member.user_id,
            NotificationType.GROUP_APPROVAL,
            "Group membership update",
            f"Your request to join {group.name} was {verb}.",
            {"group_id": group.id, "approval_status": status.value},
        )
    return member


async def approve_member(db: AsyncSession, current_user: dict, member_id: str) -> GroupMember:
    return await _set_approval(db, current_user, member_id, ApprovalStatus.APPROVED)


async def deny_member(db: AsyncSession, current_user: dict, member_id: str) -> GroupMember:
    return await _set_approval(db, current_user, member_id, ApprovalStatus.DENIED)


async def set_admin(db: AsyncSession, current_user: dict, member_id: str, is_admin: bool) -> GroupMember:
    member = await get_member(db, member_id)
    await _require_manager(db, current_user["uid"], member.group_id)
    if is_admin and not is_active_member(member):
        raise ValidationError("Only active members can be made admin")

    member.is_admin = is_admin
    await db.commit()
    await db.refresh(member)
    return member


async def remove_member(db: AsyncSession, current_user: dict, member_id: str) -> RemovalResult:
    """
    Remove a member. Members may remove themselves; managers may remove others.

    When the last admin removes themself the removal still happens, and the
    result carries a warning.

    Raises:
        PermissionDeniedError: If the caller is neither the member nor a manager
    """
    uid = current_user["uid"]
    member = await get_member(db, member_id)
    group = await get_group(db, member.group_id)

    is_self = member.user_id == uid
    if not is_self:
        await _require_manager(db, uid, group.id)
        if member.user_id == group.user_id:
            raise PermissionDeniedError("The group creator cannot be removed")

    warning = None
    if is_self and member.is_admin:
        result = await db.execute(
            select(func.count(GroupMember.id)).where(
                GroupMember.group_id == group.id,
                GroupMember.is_admin == True,
                GroupMember.id != member.id,
            )
        )
        if result.scalar_one() == 0:
            warning = LAST_ADMIN_WARNING
            logger.warning(f"Last admin {uid} left group {group.id}")

    await db.delete(member)
    await db.commit()
    return RemovalResult(removed_member_id=member_id, warning=warning)


async def get_pending_approvals(db: AsyncSession, current_user: dict, group_id: str) -> List[GroupMember]:
    """Members who accepted but still wait for a manager. Managers only."""
    await get_group(db, group_id)
    await _require_manager(db, current_user["uid"], group_id)
    result = await db.execute(
        select(GroupMember)
        .where(
            GroupMember.group_id == group_id,
            GroupMember.accepted_invite == True,
            GroupMember.approval_status == ApprovalStatus.PENDING,
        )
        .order_by(GroupMember.created_at)
    )
    return result.scalars().all()


async def list_invited_members(db: AsyncSession, group_id: str) -> List[GroupMember]:
    result = await db.execute(
        select(GroupMember)
        .where(GroupMember.group_id == group_id, GroupMember.accepted_invite == False)
        .order_by(GroupMember.created_at)
    )
    return result.scalars().all()


async def get_group_with_members(db: AsyncSession, group_id: str) -> dict:
    group = await get_group(db, group_id)
    await db.refresh(group, attribute_names=["members"])
    return {
        "id": group.id,
        "user_id": group.user_id,
        "name": group.name,
        "description": group.description,
        "created_at": group.created_at,
        "updated_at": group.updated_at,
        "members": group.members,
        "member_count": len([m for m in group.members if is_active_member(m)]),
    }


async def list_groups_for_user(db: AsyncSession, current_user: dict) -> List[Group]:
    uid = current_user["uid"]
    member_of = select(GroupMember.group_id).where(
        GroupMember.user_id == uid,
        GroupMember.approval_status != ApprovalStatus.DENIED,
    )
    result = await db.execute(
        select(Group)
        .where(or_(Group.user_id == uid, Group.id.in_(member_of)))
        .order_by(Group.created_at.desc())
    )
    return result.scalars().all()


async def get_active_member_user_ids(db: AsyncSession, group_id: str) -> List[str]:
    result = await db.execute(
        select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id.is_not(None))
    )
    return [m.user_id for m in result.scalars().all() if is_active_member(m)]


async def delete_group(db: AsyncSession, current_user: dict, group_id: str) -> dict:
    """
    Delete a group with its members, invitations and discussion.

    Raises:
        NotFoundError: If the group does not exist
        PermissionDeniedError: If the caller is not the group creator
    """
    # Imported here, discussion_service depends on this module
    from netgains.services import discussion_service

    uid = current_user["uid"]
    group = await get_group(db, group_id)
    if group.user_id != uid:
        raise PermissionDeniedError("Only the group creator can delete the group")

    await db.execute(delete(GroupSessionInvite).where(GroupSessionInvite.group_id == group_id))
    await db.execute(delete(SessionInvite).where(SessionInvite.group_id == group_id))
    await discussion_service.delete_entity_discussion(db, DiscussionType.GROUP, group_id)
    await db.execute(delete(GroupMember).where(GroupMember.group_id == group_id))
    await db.execute(delete(Group).where(Group.id == group_id))
    await db.commit()
    logger.info(f"Group {group_id} deleted by {uid}")
    return {"message": "Group deleted", "id": group_id}


async def invite_group_to_session(
    db: AsyncSession,
    current_user: dict,
    group_id: str,
    session_id: str,
) -> GroupSessionInvite:
    """
    Invite a whole group to a session. Inviting the same group twice returns
    the existing invitation.

    The caller must own both the session and the group. Active members other
    than the caller are notified best effort.

    Raises:
        NotFoundError: If the group or session does not exist
        PermissionDeniedError: If the caller does not own both
    """
    uid = current_user["uid"]
    group = await get_group(db, group_id)
    session = await db.get(PlaySession, session_id)
    if session is None:
        raise NotFoundError("Session not found")
    if session.user_id != uid or group.user_id != uid:
        raise PermissionDeniedError("You can only invite your own groups to your own sessions")

    key = (GroupSessionInvite.session_id == session_id, GroupSessionInvite.group_id == group_id)
    result = await db.execute(select(GroupSessionInvite).where(*key))
    existing = result.scalar_one_or_none()
    if existing:
        return existing

    invitation = GroupSessionInvite(session_id=session_id, group_id=group_id, invited_by=uid)
    db.add(invitation)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        result = await db.execute(select(GroupSessionInvite).where(*key))
        return result.scalar_one()
    await db.refresh(invitation)
    logger.info(f"Group {group_id} invited to session {session_id} by {uid}")

    for user_id in await get_active_member_user_ids(db, group_id):
        if user_id == uid:
            continue
        await notify_user(
            db,
            user_id,
            NotificationType.GROUP_SESSION_INVITE,
            "Session invite",
            f"{group.name} was invited to {session.name}.",
            {"session_id": session_id, "group_id": group_id},
        )
    return invitation


async def list_groups_invited_to_session(db: AsyncSession, current_user: dict, session_id: str) -> List[Group]:
    """Groups of the caller that were invited to a session, oldest invitation first."""
    result = await db.execute(
        select(Group)
        .join(GroupSessionInvite, GroupSessionInvite.group_id == Group.id)
        .where(GroupSessionInvite.session_id == session_id, Group.user_id == current_user["uid"])
        .order_by(GroupSessionInvite.created_at)
    )
    return result.scalars().all()
