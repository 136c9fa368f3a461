import logging
from typing import List, Optional

import pydantic
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.routers.posts.endpoints import submission_attachments
from netgains.schemas.discussions import (
    ReactionRequest,
    ReactionResponse,
    ReactionTarget,
    ReplyCreate,
    ReplyResponse,
    ReplySubmissionResponse,
    ReplyUpdate,
)
from netgains.services import attachment_service, discussion_service

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/replies", tags=["replies"])


@router.post("", response_model=ReplySubmissionResponse)
async def create_reply_api(
    post_id: str = Form(...),
    content: str = Form(...),
    parent_reply_id: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Reply to a post, or to another reply of the same post.

    Args:
        post_id (str): Post being replied to
        content (str): Reply body
        parent_reply_id (str): Optional reply being answered
        files (List[UploadFile]): Attachments
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        ReplySubmissionResponse: The reply and the outcome of each attachment

    Raises:
        HTTPException: 400 if the post is locked or archived
    """
    try:
        data = ReplyCreate(post_id=post_id, parent_reply_id=parent_reply_id, content=content)
    except pydantic.ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors(include_url=False))

    pending = await attachment_service.stage_uploads(files)
    submission = await discussion_service.create_reply(db, current_user, data, pending)
    return ReplySubmissionResponse(reply=ReplyResponse.model_validate(submission.item), **submission_attachments(submission))


@router.get("/{reply_id}/replies", response_model=List[ReplyResponse])
async def get_nested_replies_api(
    reply_id: str,
    include_archived: bool = False,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.get_nested_replies(db, current_user, reply_id, include_archived)


@router.patch("/{reply_id}", response_model=ReplyResponse)
async def update_reply_api(
    reply_id: str,
    body: ReplyUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.update_reply(db, current_user, reply_id, body.content)


@router.delete("/{reply_id}", response_model=dict)
async def delete_reply_api(
    reply_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.delete_reply(db, current_user, reply_id)


@router.post("/{reply_id}/reactions", response_model=ReactionResponse)
async def add_reply_reaction_api(
    reply_id: str,
    body: ReactionRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    reaction, created = await discussion_service.add_reaction(
        db, current_user, ReactionTarget.REPLY, reply_id, body.reaction_type
    )
    return ReactionResponse(
        target=ReactionTarget.REPLY,
        target_id=reply_id,
        user_id=reaction.user_id,
        reaction_type=reaction.reaction_type,
        created=created,
    )


@router.delete("/{reply_id}/reactions/{reaction_type}", response_model=dict)
async def remove_reply_reaction_api(
    reply_id: str,
    reaction_type: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    removed = await discussion_service.remove_reaction(db, current_user, ReactionTarget.REPLY, reply_id, reaction_type)
    return {"removed": removed}
