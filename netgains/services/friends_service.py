import logging
import re
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.exceptions import NotFoundError
from netgains.models import SessionInvite, User
from netgains.schemas.friends import DeviceContact
from netgains.schemas.invitation import ContactCheckResponse, InviteStatus
from netgains.services.identity_service import resolve_accounts

# Configure logging for this module
logger = logging.getLogger(__name__)

_PHONE_FORMATTING = re.compile(r"[\s\-().]")


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Drop formatting characters so "(555) 010-0100" and "555.010.0100" compare equal.
    Country codes are kept as written.
    """
    if not phone:
        return None
    return _PHONE_FORMATTING.sub("", phone) or None


async def get_friends(db: AsyncSession, current_user: dict) -> List[User]:
    """
    Friends are derived, never stored: every account that accepted one of the
    caller's invites.

    Args:
        db (AsyncSession): Database session
        current_user (dict): Current authenticated user information

    Returns:
        List[User]: Distinct friend accounts
    """
    friend_ids = (
        select(SessionInvite.invitee_id)
        .where(
            SessionInvite.inviter_id == current_user["uid"],
            SessionInvite.status == InviteStatus.ACCEPTED,
            SessionInvite.invitee_id.is_not(None),
        )
        .distinct()
    )
    result = await db.execute(select(User).where(User.id.in_(friend_ids)).order_by(User.name))
    return result.scalars().all()


def filter_selectable_contacts(contacts: Iterable[DeviceContact], friends: Iterable[User]) -> List[DeviceContact]:
    """Device contacts that are not already friends, matched on normalized phone."""
    friend_phones = {normalize_phone(f.phone) for f in friends if f.phone}
    selectable = []
    for contact in contacts:
        phones = {normalize_phone(p) for p in contact.phone_numbers}
        if phones & friend_phones:
            continue
        selectable.append(contact)
    return selectable


async def get_selectable_contacts(db: AsyncSession, current_user: dict, contacts: List[DeviceContact]) -> List[DeviceContact]:
    friends = await get_friends(db, current_user)
    selectable = filter_selectable_contacts(contacts, friends)
    logger.info(f"{len(contacts) - len(selectable)} of {len(contacts)} contacts already friends of {current_user['uid']}")
    return selectable


async def check_contacts(db: AsyncSession, current_user: dict, phone_numbers: List[str]) -> List[ContactCheckResponse]:
    """
    Check, per phone number, whether it belongs to an account and whether the
    caller already has a pending invite out to it.

    Raises:
        NotFoundError: If the checking user has no account row
    """
    if await db.get(User, current_user["uid"]) is None:
        raise NotFoundError("User not found")

    accounts = await resolve_accounts(db, phone_numbers)
    users = {}
    found_ids = [a for a in accounts.values() if a]
    if found_ids:
        result = await db.execute(select(User).where(User.id.in_(found_ids)))
        users = {u.id: u for u in result.scalars().all()}

    result = await db.execute(
        select(SessionInvite).where(
            SessionInvite.inviter_id == current_user["uid"],
            SessionInvite.invitee_phone.in_(phone_numbers),
            SessionInvite.status == InviteStatus.PENDING,
        )
    )
    invite_map = {invite.invitee_phone: invite for invite in result.scalars().all()}

    response = []
    for phone in phone_numbers:
        user = users.get(accounts.get(phone))
        invite = invite_map.get(phone)
        response.append(ContactCheckResponse(
            phone_number=phone,
            is_registered=user is not None,
            is_invited=invite is not None,
            user_id=user.id if user else None,
            display_name=user.name if user else None,
            invited_at=invite.created_at if invite else None,
        ))
    return response
