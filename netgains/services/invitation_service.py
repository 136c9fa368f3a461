import logging
from typing import List, Optional, Union

from sqlalchemy import select, update, func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError, ValidationError
from netgains.models import Group, PlaySession, SessionInvite
from netgains.schemas.invitation import (
    InviteBatchResult,
    InviteCreate,
    InviteFailure,
    InviteOwnerRef,
    InviteOwnerType,
    InviteResponse,
    InviteStatus,
    SmsHandoff,
    UniqueInvitee,
)
from netgains.schemas.notifications import NotificationType
from netgains.services import group_service
from netgains.services.identity_service import get_account_phone, resolve_account
from netgains.services.invite_flow import InvitationFlow
from netgains.services.notification_service import compose_group_sms, compose_session_sms, notify_user
from netgains.utils.deep_links import InviteLink, build_invite_link, parse_invite_link
from netgains.utils.time_utils import utc_now

# Configure logging
logger = logging.getLogger(__name__)


def _require_user(current_user: Optional[dict]) -> str:
    if not current_user or not current_user.get("uid"):
        raise AuthenticationError()
    return current_user["uid"]


async def get_invite_owner(db: AsyncSession, current_user: dict, owner_ref: InviteOwnerRef) -> Union[PlaySession, Group]:
    """
    Load the session or group an invite belongs to and check the caller may invite to it.

    Raises:
        NotFoundError: If the session or group does not exist
        PermissionDeniedError: If the caller does not own the session or manage the group
    """
    uid = _require_user(current_user)
    match owner_ref.owner_type:
        case InviteOwnerType.SESSION:
            owner = await db.get(PlaySession, owner_ref.owner_id)
            if owner is None:
                raise NotFoundError("Session not found")
            if owner.user_id != uid:
                raise PermissionDeniedError("Only the session creator can invite players")
        case InviteOwnerType.GROUP:
            owner = await db.get(Group, owner_ref.owner_id)
            if owner is None:
                raise NotFoundError("Group not found")
            if not await group_service.can_manage_group(db, uid, owner.id):
                raise PermissionDeniedError("Only the group creator or an admin can invite members")
    return owner


def _sms_handoff(owner_ref: InviteOwnerRef, owner, invite: SessionInvite) -> SmsHandoff:
    deep_link = build_invite_link(owner_ref.owner_type, owner_ref.owner_id, invite.invitee_phone)
    match owner_ref.owner_type:
        case InviteOwnerType.SESSION:
            message = compose_session_sms(owner, deep_link)
        case InviteOwnerType.GROUP:
            message = compose_group_sms(owner, deep_link)
    return SmsHandoff(invite_id=invite.id, phone=invite.invitee_phone, message=message, deep_link=deep_link)


async def create_invites(
    db: AsyncSession,
    current_user: dict,
    owner_ref: InviteOwnerRef,
    invites: List[InviteCreate],
) -> InviteBatchResult:
    """
    Create one invite row per contact, each independently.

    Contacts with an account id (picked from friends, or resolved from their
    phone/email) are internal and get a push notification. The rest are
    external: the row is stored with ``sms_sent`` set and an SMS hand-off is
    returned for the client to open in the native composer.

    Args:
        db (AsyncSession): Database session
        current_user (dict): Current authenticated user information
        owner_ref (InviteOwnerRef): Session or group being invited to
        invites (List[InviteCreate]): Contacts to invite

    Returns:
        InviteBatchResult: Created invites, SMS hand-offs and per-contact failures

    Raises:
        NotFoundError: If the session or group does not exist
        PermissionDeniedError: If the caller cannot invite to it
    """
    uid = _require_user(current_user)
    owner = await get_invite_owner(db, current_user, owner_ref)
    owner_name = owner.name
    batch = InviteBatchResult()

    for contact in invites:
        flow = InvitationFlow().stage(contact)
        try:
            invitee_id = contact.invitee_id or await resolve_account(
                db, phone=contact.invitee_phone, email=contact.invitee_email
            )
            invite = SessionInvite(
                session_id=owner_ref.owner_id if owner_ref.owner_type == InviteOwnerType.SESSION else None,
                group_id=owner_ref.owner_id if owner_ref.owner_type == InviteOwnerType.GROUP else None,
                inviter_id=uid,
                invitee_name=contact.invitee_name,
                invitee_phone=contact.invitee_phone,
                invitee_email=contact.invitee_email,
                invitee_id=invitee_id,
                status=InviteStatus.PENDING,
                notification_sent=False,
                sms_sent=invitee_id is None and bool(contact.invitee_phone),
            )
            db.add(invite)
            await db.commit()
            await db.refresh(invite)
        except SQLAlchemyError as e:
            await db.rollback()
            await db.refresh(owner)
            logger.error(f"Failed to create invite for {contact.invitee_name}: {str(e)}")
            batch.failed.append(InviteFailure(
                invitee_name=contact.invitee_name,
                invitee_phone=contact.invitee_phone,
                reason="Could not save invitation",
            ))
            continue

        flow.dispatch(invite)
        if flow.is_external:
            if invite.invitee_phone:
                batch.sms.append(_sms_handoff(owner_ref, owner, invite))
            else:
                logger.warning(f"External invite {invite.id} has no phone number, no SMS hand-off")
        else:
            delivered = await notify_user(
                db,
                invite.invitee_id,
                NotificationType.SESSION_INVITE if owner_ref.owner_type == InviteOwnerType.SESSION else NotificationType.GROUP_INVITE,
                "You're invited!",
                f"You've been invited to join {owner_name}.",
                {"invite_id": invite.id, "owner_type": owner_ref.owner_type.value, "owner_id": owner_ref.owner_id},
            )
            if delivered:
                invite.notification_sent = True
                await db.commit()
                await db.refresh(invite)

        batch.created.append(InviteResponse.model_validate(invite))

    logger.info(
        f"Invites for {owner_ref.owner_type.value} {owner_ref.owner_id}: "
        f"{len(batch.created)} created, {len(batch.sms)} via SMS, {len(batch.failed)} failed"
    )
    return batch


async def get_invite(db: AsyncSession, invite_id: str) -> SessionInvite:
    result = await db.execute(
        select(SessionInvite).where(SessionInvite.id == invite_id).execution_options(populate_existing=True)
    )
    invite = result.scalar_one_or_none()
    if invite is None:
        raise NotFoundError("Invite not found")
    return invite


async def respond_to_invite(db: AsyncSession, current_user: dict, invite_id: str, response: InviteStatus) -> SessionInvite:
    """
    Record the caller's answer to an invite.

    The row is matched by account id, or by the caller's phone while the invite
    is still external; either way the same row is updated and bound to the
    caller. An invite already bound to a different account is never rebound.

    Args:
        db (AsyncSession): Database session
        current_user (dict): Current authenticated user information
        invite_id (str): Invite being answered
        response (InviteStatus): accepted, declined or maybe

    Returns:
        SessionInvite: The updated invite

    Raises:
        AuthenticationError: If there is no authenticated caller
        NotFoundError: If no invite matches the caller
        InvalidFlowTransition: If the invite is bound to another account
    """
    uid = _require_user(current_user)
    if response == InviteStatus.PENDING:
        raise ValidationError("pending is not a valid response")

    caller_phone = await get_account_phone(db, uid)
    invite = await get_invite(db, invite_id)

    flow = InvitationFlow.from_invite(invite)
    if invite.invitee_id == uid or (caller_phone and invite.invitee_phone == caller_phone):
        flow.reconcile(uid)

    matches_caller = SessionInvite.invitee_id == uid
    if caller_phone:
        matches_caller = or_(
            matches_caller,
            and_(
                SessionInvite.invitee_phone == caller_phone,
                or_(SessionInvite.invitee_id.is_(None), SessionInvite.invitee_id == uid),
            ),
        )
    stmt = (
        update(SessionInvite)
        .where(SessionInvite.id == invite_id, matches_caller)
        .values(invitee_id=uid, status=response, responded_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Invite not found")
    await db.commit()
    logger.info(f"User {uid} responded '{response.value}' to invite {invite_id}")

    invite = await get_invite(db, invite_id)
    if response == InviteStatus.ACCEPTED:
        if invite.session_id:
            await _add_accepted_participant(db, invite.session_id, uid)
        if invite.group_id:
            await _join_invited_group(db, current_user, invite.group_id)

    if invite.inviter_id != uid:
        await notify_user(
            db,
            invite.inviter_id,
            NotificationType.INVITE_RESPONSE,
            "Invitation response",
            f"{invite.invitee_name} responded '{response.value}' to your invitation.",
            {"invite_id": invite.id, "status": response.value},
        )
    return await get_invite(db, invite_id)


async def _add_accepted_participant(db: AsyncSession, session_id: str, user_id: str) -> None:
    try:
        session = await db.get(PlaySession, session_id, populate_existing=True)
        if session is None:
            logger.warning(f"Session {session_id} not found while adding participant {user_id}")
            return
        participants = list(session.accepted_participants or [])
        if user_id in participants:
            return
        session.accepted_participants = participants + [user_id]
        await db.commit()
    except Exception:
        logger.exception(f"Failed to add {user_id} to accepted participants of session {session_id}")
        await db.rollback()


async def _join_invited_group(db: AsyncSession, current_user: dict, group_id: str) -> None:
    try:
        await group_service.request_to_join(db, current_user, group_id)
    except Exception:
        logger.exception(f"Failed to record group acceptance for {current_user['uid']} in group {group_id}")
        await db.rollback()


async def get_invite_for_deep_link(db: AsyncSession, link: InviteLink) -> Optional[SessionInvite]:
    """Most recent invite matching the owner (and phone, when present) of a parsed deep link."""
    match link.owner_type:
        case InviteOwnerType.SESSION:
            stmt = select(SessionInvite).where(SessionInvite.session_id == link.owner_id)
        case InviteOwnerType.GROUP:
            stmt = select(SessionInvite).where(SessionInvite.group_id == link.owner_id)
    if link.phone:
        stmt = stmt.where(SessionInvite.invitee_phone == link.phone)
    result = await db.execute(stmt.order_by(SessionInvite.created_at.desc()).limit(1))
    return result.scalar_one_or_none()


async def find_invite_by_link(db: AsyncSession, link: str) -> SessionInvite:
    parsed = parse_invite_link(link)
    if parsed is None:
        raise ValidationError("Not an invitation link")
    invite = await get_invite_for_deep_link(db, parsed)
    if invite is None:
        raise NotFoundError("Invite not found")
    return invite


async def list_sent_invites(db: AsyncSession, current_user: dict, owner_ref: Optional[InviteOwnerRef] = None) -> List[SessionInvite]:
    stmt = select(SessionInvite).where(SessionInvite.inviter_id == current_user["uid"])
    if owner_ref is not None:
        match owner_ref.owner_type:
            case InviteOwnerType.SESSION:
                stmt = stmt.where(SessionInvite.session_id == owner_ref.owner_id)
            case InviteOwnerType.GROUP:
                stmt = stmt.where(SessionInvite.group_id == owner_ref.owner_id)
    result = await db.execute(stmt.order_by(SessionInvite.created_at.desc()))
    return result.scalars().all()


async def list_received_invites(db: AsyncSession, current_user: dict) -> List[SessionInvite]:
    """Invites addressed to the caller's account, or to their phone while still external."""
    uid = current_user["uid"]
    phone = await get_account_phone(db, uid)
    matches = SessionInvite.invitee_id == uid
    if phone:
        matches = or_(matches, and_(SessionInvite.invitee_phone == phone, SessionInvite.invitee_id.is_(None)))
    result = await db.execute(select(SessionInvite).where(matches).order_by(SessionInvite.created_at.desc()))
    return result.scalars().all()


async def get_invitation_stats(db: AsyncSession, current_user: dict) -> dict:
    """
    Retrieves invitation statistics for the current user.

    Returns:
        dict: ``total_invites`` and ``accepted_invites``
    """
    total = await db.execute(
        select(func.count(SessionInvite.id)).where(SessionInvite.inviter_id == current_user["uid"])
    )
    accepted = await db.execute(
        select(func.count(SessionInvite.id)).where(
            SessionInvite.inviter_id == current_user["uid"],
            SessionInvite.status == InviteStatus.ACCEPTED,
        )
    )
    return {"total_invites": total.scalar_one(), "accepted_invites": accepted.scalar_one()}


async def get_unique_invitees(db: AsyncSession, current_user: dict) -> List[UniqueInvitee]:
    """Everyone the caller has invited by phone, one entry per phone, most recent first."""
    result = await db.execute(
        select(SessionInvite)
        .where(SessionInvite.inviter_id == current_user["uid"], SessionInvite.invitee_phone.is_not(None))
        .order_by(SessionInvite.created_at.desc())
    )
    seen = {}
    for invite in result.scalars().all():
        if invite.invitee_phone not in seen:
            seen[invite.invitee_phone] = UniqueInvitee(
                invitee_name=invite.invitee_name,
                invitee_phone=invite.invitee_phone,
                invitee_email=invite.invitee_email,
            )
    return list(seen.values())
