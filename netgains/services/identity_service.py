import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.models import User
from netgains.schemas.users import UserUpsert

# Configure logging
logger = logging.getLogger(__name__)


async def resolve_account(db: AsyncSession, phone: Optional[str] = None, email: Optional[str] = None) -> Optional[str]:
    """
    Decide whether a contact already has an account.

    Phone is tried first, then email. When several accounts share a phone
    or email the oldest one wins; accounts are never merged. A miss is not
    an error.

    Args:
        db (AsyncSession): Database session
        phone (str): Contact phone number, matched exactly
        email (str): Contact email, matched exactly

    Returns:
        Optional[str]: The matching account id, or None
    """
    if phone:
        result = await db.execute(
            select(User.id).where(User.phone == phone).order_by(User.created_at, User.id).limit(1)
        )
        user_id = result.scalar_one_or_none()
        if user_id:
            return user_id

    if email:
        result = await db.execute(
            select(User.id).where(User.email == email).order_by(User.created_at, User.id).limit(1)
        )
        user_id = result.scalar_one_or_none()
        if user_id:
            return user_id

    logger.debug(f"No account for contact phone={phone} email={email}")
    return None


async def resolve_accounts(db: AsyncSession, phones: List[str]) -> Dict[str, Optional[str]]:
    """Batch form of ``resolve_account`` for phone numbers only."""
    if not phones:
        return {}
    result = await db.execute(
        select(User.phone, User.id).where(User.phone.in_(phones)).order_by(User.created_at, User.id)
    )
    found = {}
    for phone, user_id in result.all():
        found.setdefault(phone, user_id)
    return {phone: found.get(phone) for phone in phones}


async def get_account_phone(db: AsyncSession, user_id: str) -> Optional[str]:
    result = await db.execute(select(User.phone).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def upsert_current_user(db: AsyncSession, current_user: dict, data: UserUpsert) -> User:
    """
    Create or update the account row for the authenticated caller.

    The identity provider owns the id; phone and email default to the claims
    carried by the token when the request does not supply them.
    """
    user = await get_user_by_id(db, current_user["uid"])
    if user is None:
        user = User(id=current_user["uid"])
        db.add(user)
        logger.info(f"Creating account row for {current_user['uid']}")

    user.name = data.name or user.name or current_user.get("name")
    user.phone = data.phone or user.phone or current_user.get("phone_number")
    user.email = data.email or user.email or current_user.get("email")

    await db.commit()
    await db.refresh(user)
    return user
