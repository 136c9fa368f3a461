import logging
from typing import List

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.schemas.friends import DeviceContact, FriendResponse, SelectableContactsRequest
from netgains.schemas.invitation import ContactCheckResponse
from netgains.services import friends_service

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/friends", tags=["friends"])


@router.get("", response_model=List[FriendResponse])
async def get_friends_api(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Accounts that accepted one of the caller's invites.

    Args:
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        List[FriendResponse]: Distinct friends
    """
    return await friends_service.get_friends(db, current_user)


@router.post("/selectable-contacts", response_model=List[DeviceContact])
async def get_selectable_contacts_api(
    body: SelectableContactsRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Drop device contacts that are already friends."""
    return await friends_service.get_selectable_contacts(db, current_user, body.contacts)


@router.post("/check-contacts", response_model=List[ContactCheckResponse])
async def check_contacts_api(
    phone_numbers: List[str] = Body(..., embed=True),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Check which phone numbers belong to accounts and which already have a
    pending invite from the caller.
    """
    return await friends_service.check_contacts(db, current_user, phone_numbers)
