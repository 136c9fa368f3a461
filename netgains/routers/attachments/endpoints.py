import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.common import get_current_user
from netgains.init_db import get_db
from netgains.routers.posts.endpoints import submission_attachments
from netgains.schemas.attachments import AttachmentOwnerType, AttachmentResponse
from netgains.services import attachment_service, discussion_service

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attachments", tags=["attachments"])


@router.get("/{owner_type}/{owner_id}", response_model=List[AttachmentResponse])
async def get_attachments_api(
    owner_type: AttachmentOwnerType,
    owner_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await discussion_service.list_attachments(db, current_user, owner_type, owner_id)


@router.post("/{owner_type}/{owner_id}", response_model=dict)
async def upload_attachments_api(
    owner_type: AttachmentOwnerType,
    owner_id: str,
    files: List[UploadFile] = File(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Attach files to an existing post or reply.

    Args:
        owner_type (AttachmentOwnerType): post or reply
        owner_id (str): Id of the post or reply
        files (List[UploadFile]): Files to upload
        current_user (dict): Current authenticated user
        db (AsyncSession): Database session

    Returns:
        dict: ``attachments`` stored and ``failed_attachments`` with reasons

    Raises:
        HTTPException: 409 if the post or reply does not exist, 403 if the
            caller is not its author
    """
    pending = await attachment_service.stage_uploads(files)
    submission = await discussion_service.attach_files(db, current_user, owner_type, owner_id, pending)
    return submission_attachments(submission)


@router.delete("/{attachment_id}", response_model=dict)
async def delete_attachment_api(
    attachment_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await attachment_service.delete_attachment(db, current_user, attachment_id)
