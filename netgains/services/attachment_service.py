"""
Attachment lifecycle.

Files are staged in memory while a post or reply is being composed and only
reach storage once their owner row exists. A staged file is ``Unowned``; it
becomes ``OwnedBy`` a post or reply when it is committed. Staged files are
never written to the database.
"""
import asyncio
import io
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.config import settings
from netgains.exceptions import (
    AttachmentOwnerNotFound,
    AttachmentUploadTimeout,
    NotFoundError,
    PermissionDeniedError,
)
from netgains.models import Attachment, Post, Reply
from netgains.schemas.attachments import AttachmentOwnerType, FileType
from netgains.services.storage_service import ObjectStorage, get_object_storage
from netgains.utils.time_utils import timestamp_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unowned:
    pass


@dataclass(frozen=True)
class OwnedBy:
    owner_type: AttachmentOwnerType
    owner_id: str


AttachmentOwner = Union[Unowned, OwnedBy]


@dataclass
class PendingAttachment:
    file_name: str
    mime_type: str
    content: bytes
    file_type: FileType
    id: str = field(default_factory=lambda: f"pending-{uuid.uuid4()}")
    owner: AttachmentOwner = field(default_factory=Unowned)

    @property
    def file_size(self) -> int:
        return len(self.content)


@dataclass
class UploadedFile:
    pending: PendingAttachment
    storage_key: str
    public_url: str
    mime_type: str
    file_size: int


def file_type_for(mime_type: str) -> FileType:
    if mime_type.startswith("image/"):
        return FileType.IMAGE
    if mime_type.startswith("video/"):
        return FileType.VIDEO
    if mime_type.startswith("audio/"):
        return FileType.AUDIO
    return FileType.DOCUMENT


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def stage(file_name: str, mime_type: str, content: bytes) -> PendingAttachment:
    """Hold a picked file in memory until its post or reply is submitted."""
    return PendingAttachment(
        file_name=file_name,
        mime_type=mime_type or "application/octet-stream",
        content=content,
        file_type=file_type_for(mime_type or ""),
    )


def _reencode_image(content: bytes, max_dimension: int, quality: int) -> bytes:
    with Image.open(io.BytesIO(content)) as image:
        image.thumbnail((max_dimension, max_dimension))
        if image.mode != "RGB":
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality)
        return buffer.getvalue()


async def optimize_image(content: bytes, mime_type: str) -> Tuple[bytes, str]:
    """
    Shrink an image to fit the configured max dimension and re-encode it as JPEG.

    Falls back to the original bytes when the image cannot be decoded or is
    too large to decode safely.
    """
    try:
        optimized = await asyncio.to_thread(
            _reencode_image, content, settings.image_max_dimension, settings.image_quality
        )
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning(f"Image optimization failed, uploading original: {e}")
        return content, mime_type
    logger.debug(f"Image optimized: {len(content)} -> {len(optimized)} bytes")
    return optimized, "image/jpeg"


def storage_key_for(owner_type: AttachmentOwnerType, owner_id: str, file_name: str) -> str:
    return f"{owner_type.value}s/{owner_id}/{timestamp_ms()}_{file_name}"


async def _owner_exists(db: AsyncSession, owner_type: AttachmentOwnerType, owner_id: str) -> bool:
    match owner_type:
        case AttachmentOwnerType.POST:
            model = Post
        case AttachmentOwnerType.REPLY:
            model = Reply
    result = await db.execute(select(model.id).where(model.id == owner_id))
    return result.scalar_one_or_none() is not None


async def _require_owner(db: AsyncSession, owner_type: AttachmentOwnerType, owner_id: str) -> None:
    if not owner_id or not await _owner_exists(db, owner_type, owner_id):
        raise AttachmentOwnerNotFound(f"Cannot attach files to missing {owner_type.value} {owner_id}")


async def _upload(
    pending: PendingAttachment,
    owner_type: AttachmentOwnerType,
    owner_id: str,
    storage: ObjectStorage,
) -> UploadedFile:
    content, mime_type = pending.content, pending.mime_type
    if pending.file_type == FileType.IMAGE:
        content, mime_type = await optimize_image(content, mime_type)

    key = storage_key_for(owner_type, owner_id, pending.file_name)
    try:
        url = await asyncio.wait_for(
            storage.put(key, content, mime_type),
            timeout=settings.upload_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error(f"Upload of {pending.file_name} timed out after {settings.upload_timeout_seconds}s")
        raise AttachmentUploadTimeout(
            f"Upload timeout after {settings.upload_timeout_seconds:g} seconds"
        )

    pending.owner = OwnedBy(owner_type, owner_id)
    return UploadedFile(pending, key, url, mime_type, len(content))


def _to_row(uploaded: UploadedFile, created_by: Optional[str]) -> Attachment:
    owner = uploaded.pending.owner
    return Attachment(
        post_id=owner.owner_id if owner.owner_type == AttachmentOwnerType.POST else None,
        reply_id=owner.owner_id if owner.owner_type == AttachmentOwnerType.REPLY else None,
        file_name=uploaded.pending.file_name,
        file_path=uploaded.public_url,
        storage_key=uploaded.storage_key,
        file_size=uploaded.file_size,
        mime_type=uploaded.mime_type,
        file_type=uploaded.pending.file_type,
        created_by=created_by,
    )


async def commit(
    db: AsyncSession,
    pending: PendingAttachment,
    owner_type: AttachmentOwnerType,
    owner_id: str,
    created_by: Optional[str] = None,
    storage: Optional[ObjectStorage] = None,
) -> Attachment:
    """
    Upload a staged file and record it against an existing post or reply.

    Raises:
        AttachmentOwnerNotFound: If the owner row does not exist yet
        AttachmentUploadTimeout: If storage does not answer in time
        AttachmentUploadError: If storage rejects the upload
    """
    await _require_owner(db, owner_type, owner_id)
    uploaded = await _upload(pending, owner_type, owner_id, storage or get_object_storage())

    attachment = _to_row(uploaded, created_by)
    db.add(attachment)
    await db.commit()
    await db.refresh(attachment)
    logger.info(f"Attachment {attachment.id} stored at {attachment.storage_key}")
    return attachment


async def commit_all(
    db: AsyncSession,
    pendings: List[PendingAttachment],
    owner_type: AttachmentOwnerType,
    owner_id: str,
    created_by: Optional[str] = None,
    storage: Optional[ObjectStorage] = None,
) -> List[Union[Attachment, Exception]]:
    """
    Commit several staged files to one owner.

    Uploads run concurrently and are joined; one failed upload does not affect
    the others. The result has one entry per input, in order: the stored
    ``Attachment`` or the exception that stopped it.

    Raises:
        AttachmentOwnerNotFound: If the owner row does not exist yet
    """
    if not pendings:
        return []
    await _require_owner(db, owner_type, owner_id)
    storage = storage or get_object_storage()

    uploads = await asyncio.gather(
        *[_upload(p, owner_type, owner_id, storage) for p in pendings],
        return_exceptions=True,
    )

    results: List[Union[Attachment, Exception]] = []
    rows = []
    for pending, outcome in zip(pendings, uploads):
        if isinstance(outcome, Exception):
            logger.error(f"Attachment {pending.file_name} failed: {outcome}")
            results.append(outcome)
            continue
        row = _to_row(outcome, created_by)
        rows.append(row)
        results.append(row)

    if rows:
        db.add_all(rows)
        await db.commit()
        for row in rows:
            await db.refresh(row)
    return results


async def get_attachments(db: AsyncSession, owner_type: AttachmentOwnerType, owner_id: str) -> List[Attachment]:
    match owner_type:
        case AttachmentOwnerType.POST:
            owner_column = Attachment.post_id
        case AttachmentOwnerType.REPLY:
            owner_column = Attachment.reply_id
    result = await db.execute(
        select(Attachment).where(owner_column == owner_id).order_by(Attachment.created_at)
    )
    return result.scalars().all()


async def delete_attachment(
    db: AsyncSession,
    current_user: dict,
    attachment_id: str,
    storage: Optional[ObjectStorage] = None,
) -> dict:
    """
    Delete an attachment row. The stored object is removed best effort; the
    row deletion is what counts.

    Raises:
        NotFoundError: If the attachment does not exist
        PermissionDeniedError: If the caller did not upload it
    """
    attachment = await db.get(Attachment, attachment_id)
    if attachment is None:
        raise NotFoundError("Attachment not found")
    if attachment.created_by != current_user["uid"]:
        raise PermissionDeniedError("Only the uploader can delete an attachment")

    storage = storage or get_object_storage()
    try:
        await storage.delete(attachment.storage_key)
    except Exception:
        logger.exception(f"Failed to delete stored object {attachment.storage_key}")

    await db.delete(attachment)
    await db.commit()
    return {"message": "Attachment deleted", "id": attachment_id}


async def stage_uploads(files) -> List[PendingAttachment]:
    """Stage uploaded files (anything with ``filename``, ``content_type`` and async ``read``)."""
    staged = []
    for upload in files or []:
        content = await upload.read()
        staged.append(stage(upload.filename or "file", upload.content_type, content))
    return staged
