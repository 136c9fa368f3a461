import logging
from typing import List, Optional

import pydantic
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.schemas.attachments import AttachmentFailure, AttachmentResponse
from netgains.schemas.discussions import (
    PostCreate,
    PostResponse,
    PostSubmissionResponse,
    PostType,
    PostUpdate,
    ReactionRequest,
    ReactionResponse,
    ReactionTarget,
    ReplyResponse,
)
from netgains.services import attachment_service, discussion_service

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


def submission_attachments(submission) -> dict:
    return {
        "attachments": [AttachmentResponse.model_validate(a) for a in submission.attachments],
        "failed_attachments": [
            AttachmentFailure(file_name=name, reason=reason) for name, reason in submission.failed_attachments
        ],
    }


@router.post("", response_model=PostSubmissionResponse)
async def create_post_api(
    discussion_id: str = Form(...),
    content: str = Form(...),
    title: Optional[str] = Form(None),
    post_type: PostType = Form(PostType.DISCUSSION),
    files: Optional[List[UploadFile]] = File(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a post with optional attachments.

    The post is saved first; attachments are uploaded against it afterwards.
    A failed attachment is reported in ``failed_attachments`` and does not
    undo the post.

    Args:
        discussion_id (str): Discussion to post in
        content (str): Post body
        title (str): Optional title
        post_type (PostType): discussion or announcement
        files (List[UploadFile]): Attachments
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        PostSubmissionResponse: The post and the outcome of each attachment
    """
    try:
        data = PostCreate(discussion_id=discussion_id, title=title, content=content, post_type=post_type)
    except pydantic.ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors(include_url=False))

    pending = await attachment_service.stage_uploads(files)
    submission = await discussion_service.create_post(db, current_user, data, pending)
    return PostSubmissionResponse(post=PostResponse.model_validate(submission.item), **submission_attachments(submission))


@router.get("/{post_id}", response_model=PostResponse)
async def get_post_api(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Fetch a post. Each fetch counts as a view."""
    return await discussion_service.get_post(db, current_user, post_id)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post_api(
    post_id: str,
    body: PostUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.update_post(db, current_user, post_id, body)


@router.delete("/{post_id}", response_model=dict)
async def delete_post_api(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.delete_post(db, current_user, post_id)


@router.post("/{post_id}/archive", response_model=PostResponse)
async def archive_post_api(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Archive a post together with all of its replies.

    Raises:
        HTTPException: 403 unless the caller is the author or a discussion admin
    """
    return await discussion_service.archive_post(db, current_user, post_id)


@router.post("/{post_id}/unarchive", response_model=PostResponse)
async def unarchive_post_api(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.unarchive_post(db, current_user, post_id)


@router.get("/{post_id}/replies", response_model=List[ReplyResponse])
async def get_replies_api(
    post_id: str,
    include_archived: bool = False,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.get_replies(db, current_user, post_id, include_archived)


@router.post("/{post_id}/reactions", response_model=ReactionResponse)
async def add_post_reaction_api(
    post_id: str,
    body: ReactionRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    reaction, created = await discussion_service.add_reaction(
        db, current_user, ReactionTarget.POST, post_id, body.reaction_type
    )
    return ReactionResponse(
        target=ReactionTarget.POST,
        target_id=post_id,
        user_id=reaction.user_id,
        reaction_type=reaction.reaction_type,
        created=created,
    )


@router.delete("/{post_id}/reactions/{reaction_type}", response_model=dict)
async def remove_post_reaction_api(
    post_id: str,
    reaction_type: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    removed = await discussion_service.remove_reaction(db, current_user, ReactionTarget.POST, post_id, reaction_type)
    return {"removed": removed}
