import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.schemas.invitation import (
    BulkInviteCreate,
    DeepLinkLookup,
    InvitationStats,
    InviteBatchResult,
    InviteOwnerRef,
    InviteOwnerType,
    InviteRespond,
    InviteResponse,
    UniqueInvitee,
)
from netgains.services import invitation_service

# Configure logging
logger = logging.getLogger(__name__)

# Router for invitation-related endpoints
router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.post("/send", response_model=InviteBatchResult)
async def send_invitations_api(
    invitation_data: BulkInviteCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Invite contacts to a session or a group.

    Args:
        invitation_data (BulkInviteCreate): Session or group, and the contacts to invite
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        InviteBatchResult: Created invites, SMS hand-offs for external contacts and per-contact failures
    """
    return await invitation_service.create_invites(db, current_user, invitation_data.owner, invitation_data.invites)


@router.post("/{invite_id}/respond", response_model=InviteResponse)
async def respond_to_invite_api(
    invite_id: str,
    body: InviteRespond,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Accept, decline or answer maybe to an invite.

    Args:
        invite_id (str): Invite being answered
        body (InviteRespond): The response
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        InviteResponse: The updated invite

    Raises:
        HTTPException: 404 if the invite is not addressed to the caller
    """
    return await invitation_service.respond_to_invite(db, current_user, invite_id, body.response)


@router.post("/lookup", response_model=InviteResponse, dependencies=[Depends(get_current_user)])
async def lookup_invite_api(body: DeepLinkLookup, db: AsyncSession = Depends(get_db)):
    """Find the invite a deep link was generated for."""
    return await invitation_service.find_invite_by_link(db, body.link)


@router.get("/sent", response_model=List[InviteResponse])
async def list_sent_invites_api(
    owner_type: Optional[InviteOwnerType] = None,
    owner_id: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    owner_ref = InviteOwnerRef(owner_type=owner_type, owner_id=owner_id) if owner_type and owner_id else None
    return await invitation_service.list_sent_invites(db, current_user, owner_ref)


@router.get("/received", response_model=List[InviteResponse])
async def list_received_invites_api(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await invitation_service.list_received_invites(db, current_user)


@router.get("/stats", response_model=InvitationStats)
async def get_invitation_stats_api(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await invitation_service.get_invitation_stats(db, current_user)


@router.get("/unique-invitees", response_model=List[UniqueInvitee])
async def get_unique_invitees_api(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await invitation_service.get_unique_invitees(db, current_user)
