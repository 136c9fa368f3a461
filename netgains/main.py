import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .common import app, get_current_user
from .exceptions import NotFoundError
from .init_db import get_db
from .routers.attachments.endpoints import router as AttachmentsEndpoints
from .routers.device_tokens.endpoints import router as DeviceTokenEndpoints
from .routers.discussions.endpoints import router as DiscussionsEndpoints
from .routers.friends.endpoints import router as FriendsEndpoints
from .routers.groups.endpoints import router as GroupsEndpoints
from .routers.invitations.endpoints import router as InvitationsEndpoints
from .routers.notifications.endpoints import router as NotificationsEndpoints
from .routers.posts.endpoints import router as PostsEndpoints
from .routers.replies.endpoints import router as RepliesEndpoints
from .schemas.users import UserResponse, UserUpsert
from .services.identity_service import get_user_by_id, upsert_current_user

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Include routers
app.include_router(InvitationsEndpoints)
app.include_router(FriendsEndpoints)
app.include_router(GroupsEndpoints)
app.include_router(DiscussionsEndpoints)
app.include_router(PostsEndpoints)
app.include_router(RepliesEndpoints)
app.include_router(AttachmentsEndpoints)
app.include_router(NotificationsEndpoints)
app.include_router(DeviceTokenEndpoints)


@app.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await get_user_by_id(db, current_user["uid"])
    if user is None:
        raise NotFoundError("User not found in database")
    return user


@app.post("/me", response_model=UserResponse)
async def upsert_current_user_info(
    data: UserUpsert,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create or update the caller's account row.

    Phone and email stored here are what external invites are matched
    against when the caller responds to them.
    """
    return await upsert_current_user(db, current_user, data)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
