import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.schemas.notifications import NotificationResponse, NotificationStatusUpdate
from netgains.services.notification_service import get_notifications, update_notification_status

# Configure logging for notification-related operations
logger = logging.getLogger(__name__)

# Initialize router with prefix and tags for API documentation
router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/list", response_model=List[NotificationResponse])
async def get_notifications_api(
    unread_only: bool = True,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Retrieve the current user's notifications.

    Args:
        unread_only (bool): Only return notifications not yet read
        db (AsyncSession): Database session dependency
        current_user (dict): Current authenticated user information

    Returns:
        List[NotificationResponse]: Notifications, newest first
    """
    return await get_notifications(db, current_user, unread_only)


@router.post("/update_status", response_model=dict)
async def update_notification_status_api(
    request: NotificationStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """
    Mark notifications as read or unread.

    Args:
        request (NotificationStatusUpdate): Notification ids and the new status
        db (AsyncSession): Database session dependency
        current_user (dict): Current authenticated user information

    Returns:
        dict: The ids touched and the status applied
    """
    return await update_notification_status(request, db, current_user)
