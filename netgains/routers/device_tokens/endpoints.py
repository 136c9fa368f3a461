import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.schemas.device_token import DeviceTokenCreate, DeviceTokenResponse
from netgains.services.device_token_service import get_device_token, register_device_token, unregister_device_token

# Configure logger for this module
logger = logging.getLogger(__name__)

# Router for device token management endpoints
router = APIRouter(prefix="/device-tokens", tags=["device-tokens"])


@router.post("/register", response_model=DeviceTokenResponse)
async def register_device_token_api(
    device_token_data: DeviceTokenCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a device token for push notifications.

    Args:
        device_token_data: The device token information to register
        current_user: The authenticated user making the request
        db: Database session

    Returns:
        DeviceTokenResponse: The registered device token information
    """
    return await register_device_token(db, current_user, device_token_data)


@router.post("/unregister", response_model=dict)
async def unregister_device_token_api(
    token: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await unregister_device_token(db, current_user, token)


@router.get("", response_model=List[DeviceTokenResponse])
async def list_device_tokens_api(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_device_token(db, current_user["uid"])
