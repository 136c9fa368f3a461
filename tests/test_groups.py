from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from netgains.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from netgains.models import Discussion, GroupMember, GroupSessionInvite, Notification, Post, SessionInvite
from netgains.schemas.discussions import DiscussionType, PostCreate
from netgains.schemas.groups import ApprovalStatus, GroupCreate, GroupMemberCreate
from netgains.schemas.invitation import InviteCreate, InviteOwnerRef, InviteOwnerType, InviteStatus
from netgains.services import discussion_service, group_service, invitation_service

from .conftest import as_user


@pytest.mark.parametrize("accepted_invite, approval_status, expected", [
    (False, ApprovalStatus.PENDING, False),
    (False, ApprovalStatus.APPROVED, False),
    (False, ApprovalStatus.DENIED, False),
    (True, ApprovalStatus.PENDING, False),
    (True, ApprovalStatus.APPROVED, True),
    (True, ApprovalStatus.DENIED, False),
])
def test_active_needs_acceptance_and_approval(accepted_invite, approval_status, expected):
    member = SimpleNamespace(accepted_invite=accepted_invite, approval_status=approval_status)
    assert group_service.is_active_member(member) is expected


async def make_group(db, owner_id="alice", members=()):
    return await group_service.create_group(
        db, as_user(owner_id), GroupCreate(name="Dink Club", members=list(members)),
    )


async def member_for(db, group_id, user_id):
    result = await db.execute(
        select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_creator_is_an_active_admin(db, alice):
    group = await make_group(db)

    assert len(group.members) == 1
    creator = group.members[0]
    assert creator.user_id == "alice"
    assert creator.is_admin is True
    assert creator.accepted_invite is True
    assert creator.approval_status == ApprovalStatus.APPROVED
    assert creator.is_active is True

    details = await group_service.get_group_with_members(db, group.id)
    assert details["member_count"] == 1


@pytest.mark.asyncio
async def test_join_waits_for_manager_approval(db, alice, bob, carol):
    group = await make_group(db)

    member = await group_service.request_to_join(db, as_user("bob"), group.id)
    assert member.accepted_invite is True
    assert member.approval_status == ApprovalStatus.PENDING
    assert member.is_active is False

    pending = await group_service.get_pending_approvals(db, as_user("alice"), group.id)
    assert [m.user_id for m in pending] == ["bob"]

    await group_service.request_to_join(db, as_user("carol"), group.id)
    with pytest.raises(PermissionDeniedError):
        await group_service.approve_member(db, as_user("carol"), member.id)

    approved = await group_service.approve_member(db, as_user("alice"), member.id)
    assert approved.approval_status == ApprovalStatus.APPROVED
    assert approved.is_active is True
    assert sorted(await group_service.get_active_member_user_ids(db, group.id)) == ["alice", "bob"]

    result = await db.execute(select(Notification).where(Notification.user_id == "bob"))
    assert result.scalar_one().type == "group_approval"


@pytest.mark.asyncio
async def test_joining_twice_returns_existing_row(db, alice, bob):
    group = await make_group(db)
    first = await group_service.request_to_join(db, as_user("bob"), group.id)
    second = await group_service.request_to_join(db, as_user("bob"), group.id)
    assert first.id == second.id


@pytest.mark.asyncio
async def test_admin_cannot_approve_themself(db, alice, bob):
    group = await make_group(db)
    member = await group_service.request_to_join(db, as_user("bob"), group.id)
    member.is_admin = True
    await db.commit()

    with pytest.raises(PermissionDeniedError):
        await group_service.approve_member(db, as_user("bob"), member.id)


@pytest.mark.asyncio
async def test_admin_role_requires_active_member(db, alice, bob):
    group = await make_group(db)
    member = await group_service.request_to_join(db, as_user("bob"), group.id)

    with pytest.raises(ValidationError):
        await group_service.set_admin(db, as_user("alice"), member.id, True)

    await group_service.approve_member(db, as_user("alice"), member.id)
    promoted = await group_service.set_admin(db, as_user("alice"), member.id, True)
    assert promoted.is_admin is True
    assert await group_service.can_manage_group(db, "bob", group.id) is True


@pytest.mark.asyncio
async def test_last_admin_leaving_gets_a_warning(db, alice):
    group = await make_group(db)
    creator = await member_for(db, group.id, "alice")

    result = await group_service.remove_member(db, as_user("alice"), creator.id)

    assert result.warning == group_service.LAST_ADMIN_WARNING
    with pytest.raises(NotFoundError):
        await group_service.get_member(db, creator.id)


@pytest.mark.asyncio
async def test_creator_cannot_be_removed_by_others(db, alice, bob):
    group = await make_group(db)
    member = await group_service.request_to_join(db, as_user("bob"), group.id)
    await group_service.approve_member(db, as_user("alice"), member.id)
    await group_service.set_admin(db, as_user("alice"), member.id, True)
    creator = await member_for(db, group.id, "alice")

    with pytest.raises(PermissionDeniedError):
        await group_service.remove_member(db, as_user("bob"), creator.id)


@pytest.mark.asyncio
async def test_group_invite_accepted_through_invitation(db, alice, user_factory):
    group = await make_group(db, members=[GroupMemberCreate(contact_name="Dana", contact_phone="555-0100")])
    owner = InviteOwnerRef(owner_type=InviteOwnerType.GROUP, owner_id=group.id)
    batch = await invitation_service.create_invites(
        db, as_user("alice"), owner, [InviteCreate(invitee_name="Dana", invitee_phone="555-0100")],
    )
    assert batch.sms[0].deep_link.startswith(f"https://netgains.app/g-{group.id}?")

    invited = await group_service.list_invited_members(db, group.id)
    assert [m.contact_name for m in invited] == ["Dana"]

    await user_factory("dana", phone="555-0100")
    await invitation_service.respond_to_invite(db, as_user("dana"), batch.created[0].id, InviteStatus.ACCEPTED)

    member = await member_for(db, group.id, "dana")
    assert member.contact_name == "Dana"
    assert member.accepted_invite is True
    assert member.approval_status == ApprovalStatus.PENDING
    assert await group_service.list_invited_members(db, group.id) == []


async def join_and_approve(db, group_id, user_id, approver="alice"):
    member = await group_service.request_to_join(db, as_user(user_id), group_id)
    return await group_service.approve_member(db, as_user(approver), member.id)


async def count(db, column, *criteria):
    result = await db.execute(select(func.count(column)).where(*criteria))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_only_pending_members_are_decided(db, alice, bob, carol):
    group = await make_group(db)
    bob_member = await join_and_approve(db, group.id, "bob")
    with pytest.raises(ValidationError):
        await group_service.deny_member(db, as_user("alice"), bob_member.id)

    carol_member = await group_service.request_to_join(db, as_user("carol"), group.id)
    denied = await group_service.deny_member(db, as_user("alice"), carol_member.id)
    assert denied.approval_status == ApprovalStatus.DENIED
    with pytest.raises(ValidationError):
        await group_service.approve_member(db, as_user("alice"), carol_member.id)

    assert (await group_service.get_member(db, bob_member.id)).approval_status == ApprovalStatus.APPROVED
    assert (await group_service.get_member(db, carol_member.id)).approval_status == ApprovalStatus.DENIED


@pytest.mark.asyncio
async def test_contact_must_accept_before_approval(db, alice):
    group = await make_group(db, members=[
        GroupMemberCreate(contact_name="Dana", contact_phone="555-0100"),
        GroupMemberCreate(contact_name="Eli", contact_phone="555-0101"),
    ])
    dana, eli = [next(m for m in group.members if m.contact_name == name) for name in ("Dana", "Eli")]

    with pytest.raises(ValidationError):
        await group_service.approve_member(db, as_user("alice"), dana.id)
    assert (await group_service.get_member(db, dana.id)).approval_status == ApprovalStatus.PENDING

    withdrawn = await group_service.deny_member(db, as_user("alice"), eli.id)
    assert withdrawn.approval_status == ApprovalStatus.DENIED


@pytest.mark.asyncio
async def test_manager_approval_cannot_be_changed(db, alice, bob, carol):
    group = await make_group(db)
    bob_member = await join_and_approve(db, group.id, "bob")
    await group_service.set_admin(db, as_user("alice"), bob_member.id, True)
    creator = await member_for(db, group.id, "alice")

    with pytest.raises(PermissionDeniedError):
        await group_service.deny_member(db, as_user("bob"), creator.id)
    with pytest.raises(PermissionDeniedError):
        await group_service.deny_member(db, as_user("alice"), bob_member.id)

    carol_member = await group_service.request_to_join(db, as_user("carol"), group.id)
    carol_member.is_admin = True
    await db.commit()
    with pytest.raises(PermissionDeniedError):
        await group_service.approve_member(db, as_user("alice"), carol_member.id)

    assert (await group_service.get_member(db, creator.id)).approval_status == ApprovalStatus.APPROVED
    assert (await group_service.get_member(db, bob_member.id)).approval_status == ApprovalStatus.APPROVED


@pytest.mark.asyncio
async def test_group_invited_to_session(db, alice, bob, play_session):
    group = await make_group(db)
    await join_and_approve(db, group.id, "bob")

    invitation = await group_service.invite_group_to_session(db, as_user("alice"), group.id, play_session.id)
    assert (invitation.session_id, invitation.group_id, invitation.invited_by) == (play_session.id, group.id, "alice")
    again = await group_service.invite_group_to_session(db, as_user("alice"), group.id, play_session.id)
    assert again.id == invitation.id
    assert await count(db, GroupSessionInvite.id) == 1

    result = await db.execute(select(Notification.type).where(Notification.user_id == "bob"))
    assert result.scalars().all().count("group_session_invite") == 1

    invited = await group_service.list_groups_invited_to_session(db, as_user("alice"), play_session.id)
    assert [g.id for g in invited] == [group.id]
    assert await group_service.list_groups_invited_to_session(db, as_user("bob"), play_session.id) == []

    with pytest.raises(NotFoundError):
        await group_service.invite_group_to_session(db, as_user("alice"), group.id, "missing")


@pytest.mark.asyncio
async def test_only_owner_of_both_invites_group_to_session(db, alice, bob, play_session):
    alices_group = await make_group(db)
    bobs_group = await make_group(db, owner_id="bob")
    await join_and_approve(db, alices_group.id, "bob")

    with pytest.raises(PermissionDeniedError):
        await group_service.invite_group_to_session(db, as_user("bob"), alices_group.id, play_session.id)
    with pytest.raises(PermissionDeniedError):
        await group_service.invite_group_to_session(db, as_user("bob"), bobs_group.id, play_session.id)
    with pytest.raises(PermissionDeniedError):
        await group_service.invite_group_to_session(db, as_user("alice"), bobs_group.id, play_session.id)
    assert await count(db, GroupSessionInvite.id) == 0


@pytest.mark.asyncio
async def test_only_creator_deletes_group(db, alice, bob, play_session):
    group = await make_group(db, members=[GroupMemberCreate(contact_name="Dana", contact_phone="555-0100")])
    group_id = group.id
    bob_member = await join_and_approve(db, group_id, "bob")
    await group_service.set_admin(db, as_user("alice"), bob_member.id, True)

    owner = InviteOwnerRef(owner_type=InviteOwnerType.GROUP, owner_id=group_id)
    await invitation_service.create_invites(
        db, as_user("alice"), owner, [InviteCreate(invitee_name="Dana", invitee_phone="555-0100")],
    )
    await group_service.invite_group_to_session(db, as_user("alice"), group_id, play_session.id)
    discussion = await discussion_service.get_or_create_discussion(db, as_user("alice"), DiscussionType.GROUP, group_id)
    await discussion_service.create_post(db, as_user("bob"), PostCreate(discussion_id=discussion.id, content="Ladder night?"))

    with pytest.raises(PermissionDeniedError):
        await group_service.delete_group(db, as_user("bob"), group_id)

    result = await group_service.delete_group(db, as_user("alice"), group_id)
    assert result["id"] == group_id

    with pytest.raises(NotFoundError):
        await group_service.get_group(db, group_id)
    assert await count(db, GroupMember.id, GroupMember.group_id == group_id) == 0
    assert await count(db, SessionInvite.id, SessionInvite.group_id == group_id) == 0
    assert await count(db, GroupSessionInvite.id, GroupSessionInvite.group_id == group_id) == 0
    assert await count(db, Discussion.id, Discussion.entity_id == group_id) == 0
    assert await count(db, Post.id) == 0
