import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.config import settings
from netgains.models.device_token import DeviceToken
from netgains.models.notifications import Notification
from netgains.schemas.notifications import NotificationStatusUpdate, NotificationType
from netgains.services.device_token_service import get_device_token

# Configure logging
logger = logging.getLogger(__name__)


async def send_single_notification(client: httpx.AsyncClient, device_token: str, notification: Notification) -> Dict[str, Any]:
    payload = {
        "deviceToken": device_token,
        "title": notification.title,
        "message": notification.message,
        "badge": 1,
        "data": json.loads(notification.data) if notification.data else {},
    }
    logger.info(f"Sending push notification to device {device_token}")

    try:
        response = await client.post(settings.push_notification_url.get_secret_value(), json=payload)
        return {
            "device_token": device_token,
            "status_code": response.status_code,
            "response": response.text,
        }
    except httpx.HTTPError as e:
        return {
            "device_token": device_token,
            "status_code": 500,
            "error": f"Error sending notification: {str(e)}",
        }


async def send_push_notifications(device_tokens: List[DeviceToken], notification: Notification) -> List[Dict[str, Any]]:
    """
    Deliver a notification to every device token, one request per device.

    Args:
        device_tokens (List[DeviceToken]): Active tokens of the recipient
        notification (Notification): The stored in-app notification

    Returns:
        List[Dict[str, Any]]: One outcome per device, with ``status_code``
    """
    push_responses = []
    async with httpx.AsyncClient(timeout=10.0) as client:
        for token_obj in device_tokens:
            push_responses.append(await send_single_notification(client, token_obj.token, notification))
    return push_responses


async def notify_user(
    db: AsyncSession,
    user_id: str,
    notification_type: NotificationType,
    title: str,
    message: str,
    data: Optional[dict] = None,
) -> bool:
    """
    Store an in-app notification for a user, then push it to their devices.

    Best effort: any failure is logged and reported as ``False``. Callers must
    have committed their own work before calling, since this commits.

    Returns:
        bool: True when at least one device accepted the push
    """
    stored = False
    try:
        notification = Notification(
            user_id=user_id,
            type=notification_type.value,
            title=title,
            message=message,
            data=json.dumps(data) if data else None,
        )
        db.add(notification)
        await db.commit()
        stored = True

        device_tokens = await get_device_token(db, user_id)
        if not device_tokens:
            logger.info(f"No active device tokens for user {user_id}")
            return False

        responses = await send_push_notifications(device_tokens, notification)
        logger.info(f"Push notifications sent: {len(responses)} responses")
        return any(r.get("status_code") == 200 for r in responses)
    except Exception:
        logger.exception(f"Error while notifying user {user_id}.")
        if not stored:
            await db.rollback()
        return False


async def get_notifications(db: AsyncSession, current_user: dict, unread_only: bool = True):
    """List the caller's notifications, newest first."""
    stmt = select(Notification).where(Notification.user_id == current_user["uid"])
    if unread_only:
        stmt = stmt.where(Notification.is_read == False)
    result = await db.execute(stmt.order_by(Notification.created_at.desc()))
    return result.scalars().all()


async def update_notification_status(request: NotificationStatusUpdate, db: AsyncSession, current_user: dict):
    """
    Update the read status of the caller's notifications.

    Args:
        request (NotificationStatusUpdate): Notification ids and the new status
        db (AsyncSession): Database session dependency
        current_user (dict): Current authenticated user information

    Returns:
        dict: The ids touched and the status applied
    """
    stmt = (
        update(Notification)
        .where(Notification.user_id == current_user["uid"], Notification.id.in_(request.ids))
        .values(is_read=request.is_read)
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(stmt)
    await db.commit()
    return {"updated_ids": request.ids, "is_read": request.is_read}


def _dupr_text(dupr_min: Optional[float], dupr_max: Optional[float]) -> str:
    if dupr_min and dupr_max:
        return f"\nDUPR: {dupr_min:.2f} - {dupr_max:.2f}"
    if dupr_min:
        return f"\nDUPR: {dupr_min:.2f}+"
    if dupr_max:
        return f"\nDUPR: Up to {dupr_max:.2f}"
    return ""


def compose_session_sms(session, deep_link: str) -> str:
    """SMS body for an external session invitee. The client opens the native composer with it."""
    lines = [
        "Hey! I'm inviting you to a pickleball session:",
        "",
        session.session_type or session.name or "Pickleball Session",
    ]
    if session.session_datetime:
        when = session.session_datetime.strftime("%a, %b %d %I:%M %p")
        if session.end_datetime:
            when = f"{when} - {session.end_datetime.strftime('%I:%M %p')}"
        lines.append(when)
    if session.location:
        lines.append(session.location)
    if session.max_players:
        guests = " (guests welcome)" if session.allow_guests else ""
        lines.append(f"Max {session.max_players} players{guests}")
    body = "\n".join(lines) + _dupr_text(session.dupr_min, session.dupr_max)
    return f"{body}\n\nJoin me! Download Net Gains: {deep_link}\n\nSee you on the court!"


def compose_group_sms(group, deep_link: str) -> str:
    return (
        f"Hey! I'm inviting you to join my group \"{group.name}\" on Net Gains!\n\n"
        "Join our group to stay connected and get invited to future sessions.\n\n"
        f"Download Net Gains and join the group: {deep_link}\n\n"
        "See you there!"
    )
