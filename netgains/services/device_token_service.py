import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from netgains.exceptions import NotFoundError
from netgains.models.device_token import DeviceToken
from netgains.schemas.device_token import DeviceTokenCreate

# Configure logger for this module
logger = logging.getLogger(__name__)


async def register_device_token(
    db: AsyncSession,
    current_user: dict,
    device_token_data: DeviceTokenCreate
) -> DeviceToken:
    """
    Register a new device token for push notifications or reactivate an existing one.

    Args:
        db (AsyncSession): Database session
        current_user (dict): Current authenticated user information
        device_token_data (DeviceTokenCreate): Device token data including token and platform

    Returns:
        DeviceToken: The registered or reactivated device token
    """
    stmt = select(DeviceToken).where(
        DeviceToken.user_id == current_user["uid"],
        DeviceToken.token == device_token_data.token
    )
    result = await db.execute(stmt)
    existing_token = result.scalar_one_or_none()

    if existing_token:
        if not existing_token.is_active:
            existing_token.is_active = True
            await db.commit()
            await db.refresh(existing_token)
        return existing_token

    new_token = DeviceToken(
        user_id=current_user["uid"],
        token=device_token_data.token,
        platform=device_token_data.platform
    )
    db.add(new_token)
    await db.commit()
    await db.refresh(new_token)
    logger.info(f"Registered {new_token.platform} device token for user {current_user['uid']}")
    return new_token


async def unregister_device_token(db: AsyncSession, current_user: dict, token: str) -> dict:
    """
    Deactivate a device token. The row is kept so it can be reactivated.

    Raises:
        NotFoundError: If the caller has no such token
    """
    stmt = select(DeviceToken).where(
        DeviceToken.user_id == current_user["uid"],
        DeviceToken.token == token
    )
    result = await db.execute(stmt)
    device_token = result.scalar_one_or_none()
    if not device_token:
        raise NotFoundError("Device token not found")

    device_token.is_active = False
    await db.commit()
    return {"message": "Device token unregistered successfully"}


async def get_device_token(db: AsyncSession, user_id: str) -> List[DeviceToken]:
    """Active push targets for a user id."""
    stmt = select(DeviceToken).where(
        DeviceToken.user_id == user_id,
        DeviceToken.is_active == True
    )
    result = await db.execute(stmt)
    return result.scalars().all()
