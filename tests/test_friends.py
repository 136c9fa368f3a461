from types import SimpleNamespace

import pytest

from netgains.exceptions import NotFoundError
from netgains.schemas.friends import DeviceContact
from netgains.schemas.invitation import InviteCreate, InviteOwnerRef, InviteOwnerType, InviteStatus
from netgains.services import friends_service, invitation_service

from .conftest import as_user


@pytest.mark.parametrize("raw, expected", [
    ("(555) 010-0100", "5550100100"),
    ("555.010.0100", "5550100100"),
    ("+1 555 010 0100", "+15550100100"),
    ("", None),
    (None, None),
])
def test_normalize_phone(raw, expected):
    assert friends_service.normalize_phone(raw) == expected


def test_filter_hides_contacts_that_are_already_friends():
    friends = [SimpleNamespace(phone="+15550002222"), SimpleNamespace(phone=None)]
    contacts = [
        DeviceContact(name="Bob", phone_numbers=["+1 555-000-2222"]),
        DeviceContact(name="Dana", phone_numbers=["555-0100"]),
        DeviceContact(name="No phone"),
    ]

    selectable = friends_service.filter_selectable_contacts(contacts, friends)

    assert [c.name for c in selectable] == ["Dana", "No phone"]


@pytest.mark.asyncio
async def test_friends_are_accepted_invitees_only(db, alice, bob, carol, play_session):
    owner = InviteOwnerRef(owner_type=InviteOwnerType.SESSION, owner_id=play_session.id)
    batch = await invitation_service.create_invites(
        db, as_user(alice.id), owner,
        [
            InviteCreate(invitee_name="Bob", invitee_id=bob.id),
            InviteCreate(invitee_name="Carol", invitee_id=carol.id),
        ],
    )
    bob_invite, carol_invite = batch.created

    await invitation_service.respond_to_invite(db, as_user("bob"), bob_invite.id, InviteStatus.ACCEPTED)
    await invitation_service.respond_to_invite(db, as_user("carol"), carol_invite.id, InviteStatus.DECLINED)

    friends = await friends_service.get_friends(db, as_user("alice"))
    assert [f.id for f in friends] == ["bob"]

    # Friendship is not symmetric
    assert await friends_service.get_friends(db, as_user("bob")) == []


@pytest.mark.asyncio
async def test_check_contacts_reports_accounts_and_pending_invites(db, alice, bob, play_session):
    owner = InviteOwnerRef(owner_type=InviteOwnerType.SESSION, owner_id=play_session.id)
    await invitation_service.create_invites(
        db, as_user(alice.id), owner, [InviteCreate(invitee_name="Dana", invitee_phone="555-0100")],
    )

    checks = await friends_service.check_contacts(db, as_user("alice"), ["+15550002222", "555-0100", "555-0199"])
    by_phone = {c.phone_number: c for c in checks}

    assert by_phone["+15550002222"].is_registered is True
    assert by_phone["+15550002222"].user_id == "bob"
    assert by_phone["555-0100"].is_registered is False
    assert by_phone["555-0100"].is_invited is True
    assert by_phone["555-0199"].is_invited is False


@pytest.mark.asyncio
async def test_check_contacts_requires_account(db):
    with pytest.raises(NotFoundError):
        await friends_service.check_contacts(db, as_user("ghost"), ["555-0100"])
