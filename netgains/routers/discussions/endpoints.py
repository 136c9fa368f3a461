import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.schemas.discussions import (
    DiscussionFilters,
    DiscussionResponse,
    DiscussionType,
    PostResponse,
    PostSortBy,
    PostType,
    ReplyResponse,
    UnreadCountResponse,
)
from netgains.services import discussion_service

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/discussions", tags=["discussions"])


@router.post("/{discussion_type}/{entity_id}/open", response_model=DiscussionResponse)
async def open_discussion_api(
    discussion_type: DiscussionType,
    entity_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Open the discussion of a group or session, creating it on first use.

    Args:
        discussion_type (DiscussionType): group or session
        entity_id (str): Group or session id
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        DiscussionResponse: The discussion and its participant ids
    """
    return await discussion_service.get_or_create_discussion(db, current_user, discussion_type, entity_id)


@router.get("/{discussion_id}", response_model=DiscussionResponse)
async def get_discussion_api(
    discussion_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.get_discussion_for_participant(db, current_user, discussion_id)


@router.post("/{discussion_id}/join", response_model=DiscussionResponse)
async def join_discussion_api(
    discussion_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.join_discussion(db, current_user, discussion_id)


@router.get("/{discussion_id}/posts", response_model=List[PostResponse])
async def list_posts_api(
    discussion_id: str,
    post_type: Optional[PostType] = None,
    sort_by: PostSortBy = PostSortBy.NEWEST,
    pinned_only: bool = False,
    include_archived: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List posts of a discussion. Archived posts are hidden unless asked for.

    Returns:
        List[PostResponse]: Posts in the requested order

    Raises:
        HTTPException: 403 if the caller is not a participant
    """
    filters = DiscussionFilters(
        post_type=post_type,
        sort_by=sort_by,
        pinned_only=pinned_only,
        include_archived=include_archived,
    )
    return await discussion_service.list_posts(db, current_user, discussion_id, filters, limit, offset)


@router.get("/{discussion_id}/archived", response_model=List[PostResponse])
async def get_archived_posts_api(
    discussion_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.get_archived_posts(db, current_user, discussion_id)


@router.get("/{discussion_id}/search", response_model=List[PostResponse])
async def search_posts_api(
    discussion_id: str,
    q: str = Query(..., min_length=1),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.search_posts(db, current_user, discussion_id, q)


@router.get("/{discussion_id}/search/replies", response_model=List[ReplyResponse])
async def search_replies_api(
    discussion_id: str,
    q: str = Query(..., min_length=1),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.search_replies(db, current_user, discussion_id, q)


@router.post("/{discussion_id}/read", response_model=dict)
async def mark_discussion_as_read_api(
    discussion_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    participant = await discussion_service.mark_discussion_as_read(db, current_user, discussion_id)
    return {"discussion_id": discussion_id, "last_read_at": participant.last_read_at}


@router.get("/{discussion_id}/unread-count", response_model=UnreadCountResponse)
async def get_unread_count_api(
    discussion_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    count = await discussion_service.get_unread_count(db, current_user, discussion_id)
    return UnreadCountResponse(discussion_id=discussion_id, unread_count=count)
