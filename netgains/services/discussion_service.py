import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, update, delete, func, or_, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from netgains.exceptions import AttachmentOwnerNotFound, NotFoundError, PermissionDeniedError, ValidationError
from netgains.models import (
    Attachment,
    Discussion,
    DiscussionParticipant,
    Group,
    PlaySession,
    Post,
    PostReaction,
    Reply,
    ReplyReaction,
)
from netgains.schemas.attachments import AttachmentOwnerType
from netgains.schemas.discussions import (
    DiscussionFilters,
    DiscussionType,
    PostCreate,
    PostSortBy,
    PostUpdate,
    ReactionTarget,
    ReplyCreate,
    ReplyResponse,
)
from netgains.schemas.notifications import NotificationType
from netgains.services import attachment_service, group_service
from netgains.services.attachment_service import PendingAttachment
from netgains.services.notification_service import notify_user
from netgains.utils.time_utils import utc_now

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class Submission:
    """A committed post or reply plus the outcome of each of its attachments."""
    item: Union[Post, Reply]
    attachments: List[Attachment] = field(default_factory=list)
    failed_attachments: List[Tuple[str, str]] = field(default_factory=list)


# Discussions


async def _entity_for(db: AsyncSession, discussion_type: DiscussionType, entity_id: str) -> Union[Group, PlaySession]:
    match discussion_type:
        case DiscussionType.GROUP:
            entity = await db.get(Group, entity_id)
        case DiscussionType.SESSION:
            entity = await db.get(PlaySession, entity_id)
    if entity is None:
        raise NotFoundError(f"{discussion_type.value.capitalize()} not found")
    return entity


async def _initial_participants(db: AsyncSession, discussion_type: DiscussionType, entity) -> List[str]:
    match discussion_type:
        case DiscussionType.GROUP:
            user_ids = [entity.user_id] + await group_service.get_active_member_user_ids(db, entity.id)
        case DiscussionType.SESSION:
            user_ids = [entity.user_id] + list(entity.accepted_participants or [])
    return list(dict.fromkeys(user_ids))


async def _can_access_entity(db: AsyncSession, user_id: str, discussion_type: DiscussionType, entity) -> bool:
    match discussion_type:
        case DiscussionType.GROUP:
            if await group_service.can_manage_group(db, user_id, entity.id):
                return True
            return user_id in await group_service.get_active_member_user_ids(db, entity.id)
        case DiscussionType.SESSION:
            return user_id == entity.user_id or user_id in (entity.accepted_participants or [])


async def get_discussion(db: AsyncSession, discussion_id: str) -> Discussion:
    result = await db.execute(select(Discussion).where(Discussion.id == discussion_id))
    discussion = result.scalar_one_or_none()
    if discussion is None:
        raise NotFoundError("Discussion not found")
    return discussion


async def _find_discussion(db: AsyncSession, discussion_type: DiscussionType, entity_id: str) -> Optional[Discussion]:
    result = await db.execute(
        select(Discussion).where(
            Discussion.discussion_type == discussion_type,
            Discussion.entity_id == entity_id,
        )
    )
    return result.scalar_one_or_none()


async def get_or_create_discussion(
    db: AsyncSession,
    current_user: dict,
    discussion_type: DiscussionType,
    entity_id: str,
) -> Discussion:
    """
    Return the discussion for a group or session, creating it on first use.

    There is exactly one discussion per (type, entity). It starts with the
    entity's active people as participants, the entity owner as admin. The
    caller is joined if they are not a participant yet.

    Args:
        db (AsyncSession): Database session
        current_user (dict): Current authenticated user information
        discussion_type (DiscussionType): group or session
        entity_id (str): Group or session id

    Returns:
        Discussion: The discussion with its participants loaded

    Raises:
        NotFoundError: If the group or session does not exist
        PermissionDeniedError: If the caller is not part of it
    """
    uid = current_user["uid"]
    entity = await _entity_for(db, discussion_type, entity_id)
    if not await _can_access_entity(db, uid, discussion_type, entity):
        raise PermissionDeniedError("You are not a member of this discussion")

    discussion = await _find_discussion(db, discussion_type, entity_id)
    if discussion is None:
        user_ids = await _initial_participants(db, discussion_type, entity)
        discussion = Discussion(discussion_type=discussion_type, entity_id=entity_id, name=entity.name)
        db.add(discussion)
        try:
            await db.flush()
            for user_id in user_ids:
                db.add(DiscussionParticipant(
                    discussion_id=discussion.id,
                    user_id=user_id,
                    is_admin=user_id == entity.user_id,
                ))
            await db.commit()
            logger.info(f"Created {discussion_type.value} discussion {discussion.id} for {entity_id}")
        except IntegrityError:
            # Created concurrently by another request
            await db.rollback()
            discussion = await _find_discussion(db, discussion_type, entity_id)
            if discussion is None:
                raise

    return await join_discussion(db, current_user, discussion.id)


async def join_discussion(db: AsyncSession, current_user: dict, discussion_id: str) -> Discussion:
    """
    Add the caller to a discussion they are entitled to.

    Only people who can see the underlying group or session may join: the
    group's managers and active members, or the session owner and its
    accepted participants.

    Raises:
        NotFoundError: If the discussion or its group/session does not exist
        PermissionDeniedError: If the caller is not part of the group or session
    """
    uid = current_user["uid"]
    discussion = await get_discussion(db, discussion_id)
    if await _get_participant(db, discussion_id, uid) is None:
        entity = await _entity_for(db, discussion.discussion_type, discussion.entity_id)
        if not await _can_access_entity(db, uid, discussion.discussion_type, entity):
            raise PermissionDeniedError("You are not a member of this discussion")
        db.add(DiscussionParticipant(discussion_id=discussion_id, user_id=uid))
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()

    result = await db.execute(
        select(Discussion).where(Discussion.id == discussion_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _get_participant(db: AsyncSession, discussion_id: str, user_id: str) -> Optional[DiscussionParticipant]:
    result = await db.execute(
        select(DiscussionParticipant).where(
            DiscussionParticipant.discussion_id == discussion_id,
            DiscussionParticipant.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def _require_participant(db: AsyncSession, discussion_id: str, user_id: str) -> DiscussionParticipant:
    participant = await _get_participant(db, discussion_id, user_id)
    if participant is None:
        raise PermissionDeniedError("You are not a participant of this discussion")
    return participant


async def delete_entity_discussion(db: AsyncSession, discussion_type: DiscussionType, entity_id: str) -> None:
    """Delete the discussion of a group or session with all its posts. Does not commit."""
    discussion = await _find_discussion(db, discussion_type, entity_id)
    if discussion is None:
        return

    result = await db.execute(select(Post.id).where(Post.discussion_id == discussion.id))
    post_ids = list(result.scalars().all())
    if post_ids:
        result = await db.execute(select(Reply.id).where(Reply.post_id.in_(post_ids)))
        await _delete_replies(db, list(result.scalars().all()))
        await db.execute(delete(Attachment).where(Attachment.post_id.in_(post_ids)))
        await db.execute(delete(PostReaction).where(PostReaction.post_id.in_(post_ids)))
        await db.execute(delete(Post).where(Post.id.in_(post_ids)))
    await db.execute(delete(DiscussionParticipant).where(DiscussionParticipant.discussion_id == discussion.id))
    await db.execute(delete(Discussion).where(Discussion.id == discussion.id))
    logger.info(f"Deleted {discussion_type.value} discussion {discussion.id} with {len(post_ids)} posts")


async def get_discussion_for_participant(db: AsyncSession, current_user: dict, discussion_id: str) -> Discussion:
    discussion = await get_discussion(db, discussion_id)
    await _require_participant(db, discussion_id, current_user["uid"])
    return discussion


async def get_participant_ids(db: AsyncSession, discussion_id: str) -> List[str]:
    result = await db.execute(
        select(DiscussionParticipant.user_id).where(DiscussionParticipant.discussion_id == discussion_id)
    )
    return list(result.scalars().all())


# Posts


async def _collect_attachments(
    db: AsyncSession,
    submission: Submission,
    pendings: List[PendingAttachment],
    owner_type: AttachmentOwnerType,
    created_by: str,
) -> None:
    outcomes = await attachment_service.commit_all(db, pendings, owner_type, submission.item.id, created_by)
    for pending, outcome in zip(pendings, outcomes):
        if isinstance(outcome, Exception):
            submission.failed_attachments.append((pending.file_name, str(outcome)))
        else:
            submission.attachments.append(outcome)


async def create_post(
    db: AsyncSession,
    current_user: dict,
    data: PostCreate,
    attachments: Optional[List[PendingAttachment]] = None,
) -> Submission:
    """
    Create a post, then commit its staged attachments against it.

    The post stays committed whatever happens to the attachments; failed ones
    are reported in the submission.

    Raises:
        NotFoundError: If the discussion does not exist
        PermissionDeniedError: If the caller is not a participant
    """
    uid = current_user["uid"]
    await get_discussion(db, data.discussion_id)
    await _require_participant(db, data.discussion_id, uid)

    post = Post(
        discussion_id=data.discussion_id,
        author_id=uid,
        title=data.title,
        content=data.content,
        post_type=data.post_type,
    )
    db.add(post)
    await db.commit()
    await db.refresh(post)
    logger.info(f"Post {post.id} created in discussion {data.discussion_id}")

    submission = Submission(item=post)
    if attachments:
        await _collect_attachments(db, submission, attachments, AttachmentOwnerType.POST, uid)
    return submission


def _post_ordering(sort_by: PostSortBy):
    match sort_by:
        case PostSortBy.PINNED_FIRST:
            return [Post.is_pinned.desc(), Post.created_at.desc()]
        case PostSortBy.NEWEST:
            return [Post.created_at.desc()]
        case PostSortBy.OLDEST:
            return [Post.created_at.asc()]
        case PostSortBy.MOST_REPLIES:
            return [Post.reply_count.desc(), Post.created_at.desc()]
        case PostSortBy.MOST_VIEWS:
            return [Post.view_count.desc(), Post.created_at.desc()]


async def list_posts(
    db: AsyncSession,
    current_user: dict,
    discussion_id: str,
    filters: Optional[DiscussionFilters] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Post]:
    await get_discussion(db, discussion_id)
    await _require_participant(db, discussion_id, current_user["uid"])
    filters = filters or DiscussionFilters()
    stmt = select(Post).where(Post.discussion_id == discussion_id)
    if not filters.include_archived:
        stmt = stmt.where(Post.is_archived == False)
    if filters.post_type is not None:
        stmt = stmt.where(Post.post_type == filters.post_type)
    if filters.pinned_only:
        stmt = stmt.where(Post.is_pinned == True)

    result = await db.execute(stmt.order_by(*_post_ordering(filters.sort_by)).limit(limit).offset(offset))
    return result.scalars().all()


async def _load_post(db: AsyncSession, post_id: str) -> Post:
    result = await db.execute(
        select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    )
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundError("Post not found")
    return post


async def _load_visible_post(db: AsyncSession, user_id: str, post_id: str) -> Post:
    post = await _load_post(db, post_id)
    await _require_participant(db, post.discussion_id, user_id)
    return post


async def get_post(db: AsyncSession, current_user: dict, post_id: str) -> Post:
    """Fetch a post and count the view. Every open counts, including repeat opens."""
    await _load_visible_post(db, current_user["uid"], post_id)
    result = await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(view_count=Post.view_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Post not found")
    await db.commit()
    return await _load_post(db, post_id)


async def update_post(db: AsyncSession, current_user: dict, post_id: str, data: PostUpdate) -> Post:
    post = await _load_post(db, post_id)
    if post.author_id != current_user["uid"]:
        raise PermissionDeniedError("Only the author can edit this post")

    for field_name, value in data.model_dump(exclude_unset=True).items():
        setattr(post, field_name, value)
    await db.commit()
    return await _load_post(db, post_id)


async def _delete_replies(db: AsyncSession, reply_ids: List[str]) -> None:
    if not reply_ids:
        return
    await db.execute(delete(Attachment).where(Attachment.reply_id.in_(reply_ids)))
    await db.execute(delete(ReplyReaction).where(ReplyReaction.reply_id.in_(reply_ids)))
    await db.execute(update(Reply).where(Reply.id.in_(reply_ids)).values(parent_reply_id=None))
    await db.execute(delete(Reply).where(Reply.id.in_(reply_ids)))


async def delete_post(db: AsyncSession, current_user: dict, post_id: str) -> dict:
    """Delete a post with its replies, reactions and attachment rows, in one transaction."""
    post = await _load_post(db, post_id)
    if post.author_id != current_user["uid"]:
        raise PermissionDeniedError("Only the author can delete this post")

    result = await db.execute(select(Reply.id).where(Reply.post_id == post_id))
    await _delete_replies(db, list(result.scalars().all()))
    await db.execute(delete(Attachment).where(Attachment.post_id == post_id))
    await db.execute(delete(PostReaction).where(PostReaction.post_id == post_id))
    await db.execute(delete(Post).where(Post.id == post_id))
    await db.commit()
    logger.info(f"Post {post_id} deleted by {current_user['uid']}")
    return {"message": "Post deleted", "id": post_id}


# Replies


async def _load_reply(db: AsyncSession, reply_id: str) -> Reply:
    result = await db.execute(
        select(Reply).where(Reply.id == reply_id).execution_options(populate_existing=True)
    )
    reply = result.scalar_one_or_none()
    if reply is None:
        raise NotFoundError("Reply not found")
    return reply


async def create_reply(
    db: AsyncSession,
    current_user: dict,
    data: ReplyCreate,
    attachments: Optional[List[PendingAttachment]] = None,
) -> Submission:
    """
    Add a reply to a post, optionally under another reply of the same post.

    The reply insert and the post's ``reply_count``/``last_reply_at`` bump
    are one transaction. Attachments follow, then other participants are
    notified best effort.

    Raises:
        NotFoundError: If the post or parent reply does not exist
        PermissionDeniedError: If the caller is not a participant
        ValidationError: If the post is locked or archived, or the parent
            reply belongs to another post
    """
    uid = current_user["uid"]
    post = await _load_post(db, data.post_id)
    await _require_participant(db, post.discussion_id, uid)
    if post.is_locked:
        raise ValidationError("This post is locked")
    if post.is_archived:
        raise ValidationError("This post is archived")
    if data.parent_reply_id:
        parent = await _load_reply(db, data.parent_reply_id)
        if parent.post_id != post.id:
            raise ValidationError("Parent reply belongs to a different post")

    now = utc_now()
    reply = Reply(
        post_id=post.id,
        parent_reply_id=data.parent_reply_id,
        author_id=uid,
        content=data.content,
        created_at=now,
    )
    db.add(reply)
    await db.execute(
        update(Post)
        .where(Post.id == post.id)
        .values(reply_count=Post.reply_count + 1, last_reply_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(reply)

    submission = Submission(item=reply)
    if attachments:
        await _collect_attachments(db, submission, attachments, AttachmentOwnerType.REPLY, uid)

    await _notify_reply(db, post, reply)
    return submission


async def _notify_reply(db: AsyncSession, post: Post, reply: Reply) -> None:
    try:
        recipients = [p for p in await get_participant_ids(db, post.discussion_id) if p != reply.author_id]
        preview = reply.content if len(reply.content) <= 100 else f"{reply.content[:97]}..."
        for user_id in recipients:
            await notify_user(
                db,
                user_id,
                NotificationType.REPLY,
                f"New reply on {post.title or 'a post'}",
                preview,
                {"post_id": post.id, "reply_id": reply.id, "discussion_id": post.discussion_id},
            )
        logger.info(f"Reply {reply.id} fanned out to {len(recipients)} participants")
    except Exception:
        logger.exception(f"Failed to send reply notifications for reply {reply.id}")


async def get_replies(
    db: AsyncSession,
    current_user: dict,
    post_id: str,
    include_archived: bool = False,
) -> List[ReplyResponse]:
    """
    Top-level replies of a post, oldest first, each with its direct child
    replies attached. Deeper levels come from ``get_nested_replies``.
    """
    await _load_visible_post(db, current_user["uid"], post_id)
    stmt = select(Reply).where(Reply.post_id == post_id, Reply.parent_reply_id.is_(None))
    if not include_archived:
        stmt = stmt.where(Reply.is_archived == False)
    result = await db.execute(stmt.order_by(Reply.created_at.asc()))
    top_level = result.scalars().all()
    if not top_level:
        return []

    stmt = select(Reply).where(Reply.parent_reply_id.in_([r.id for r in top_level]))
    if not include_archived:
        stmt = stmt.where(Reply.is_archived == False)
    result = await db.execute(stmt.order_by(Reply.created_at.asc()))
    children = {}
    for child in result.scalars().all():
        children.setdefault(child.parent_reply_id, []).append(ReplyResponse.model_validate(child))

    threads = []
    for reply in top_level:
        response = ReplyResponse.model_validate(reply)
        response.replies = children.get(reply.id, [])
        threads.append(response)
    return threads


async def get_nested_replies(
    db: AsyncSession,
    current_user: dict,
    parent_reply_id: str,
    include_archived: bool = False,
) -> List[Reply]:
    parent = await _load_reply(db, parent_reply_id)
    await _load_visible_post(db, current_user["uid"], parent.post_id)
    stmt = select(Reply).where(Reply.parent_reply_id == parent_reply_id)
    if not include_archived:
        stmt = stmt.where(Reply.is_archived == False)
    result = await db.execute(stmt.order_by(Reply.created_at.asc()))
    return result.scalars().all()


async def update_reply(db: AsyncSession, current_user: dict, reply_id: str, content: str) -> Reply:
    reply = await _load_reply(db, reply_id)
    if reply.author_id != current_user["uid"]:
        raise PermissionDeniedError("Only the author can edit this reply")

    reply.content = content
    reply.is_edited = True
    reply.edited_at = utc_now()
    await db.commit()
    return await _load_reply(db, reply_id)


async def delete_reply(db: AsyncSession, current_user: dict, reply_id: str) -> dict:
    """Delete a reply and everything nested under it, adjusting the post's reply count."""
    reply = await _load_reply(db, reply_id)
    if reply.author_id != current_user["uid"]:
        raise PermissionDeniedError("Only the author can delete this reply")
    post_id = reply.post_id

    doomed = [reply.id]
    frontier = [reply.id]
    while frontier:
        result = await db.execute(select(Reply.id).where(Reply.parent_reply_id.in_(frontier)))
        frontier = list(result.scalars().all())
        doomed.extend(frontier)

    await _delete_replies(db, doomed)
    await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(reply_count=case((Post.reply_count > len(doomed), Post.reply_count - len(doomed)), else_=0))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return {"message": "Reply deleted", "deleted_ids": doomed}


# Archive


async def _require_archive_rights(db: AsyncSession, user_id: str, post: Post) -> None:
    if post.author_id == user_id:
        return
    participant = await _get_participant(db, post.discussion_id, user_id)
    if participant is None or not participant.is_admin:
        raise PermissionDeniedError("Only the author or a discussion admin can archive this post")


async def _set_archived(db: AsyncSession, current_user: dict, post_id: str, archived: bool) -> Post:
    uid = current_user["uid"]
    post = await _load_post(db, post_id)
    await _require_archive_rights(db, uid, post)

    values = {
        "is_archived": archived,
        "archived_at": utc_now() if archived else None,
        "archived_by": uid if archived else None,
    }
    await db.execute(
        update(Post).where(Post.id == post_id).values(**values).execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Reply).where(Reply.post_id == post_id).values(**values).execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info(f"Post {post_id} {'archived' if archived else 'unarchived'} with its replies by {uid}")
    return await _load_post(db, post_id)


async def archive_post(db: AsyncSession, current_user: dict, post_id: str) -> Post:
    """Archive a post and all of its replies together."""
    return await _set_archived(db, current_user, post_id, True)


async def unarchive_post(db: AsyncSession, current_user: dict, post_id: str) -> Post:
    return await _set_archived(db, current_user, post_id, False)


async def get_archived_posts(db: AsyncSession, current_user: dict, discussion_id: str) -> List[Post]:
    await _require_participant(db, discussion_id, current_user["uid"])
    result = await db.execute(
        select(Post)
        .where(Post.discussion_id == discussion_id, Post.is_archived == True)
        .order_by(Post.archived_at.desc())
    )
    return result.scalars().all()


# Reactions


def _reaction_model(target: ReactionTarget):
    match target:
        case ReactionTarget.POST:
            return PostReaction, PostReaction.post_id
        case ReactionTarget.REPLY:
            return ReplyReaction, ReplyReaction.reply_id


async def _require_target_participant(db: AsyncSession, user_id: str, target: ReactionTarget, target_id: str) -> None:
    match target:
        case ReactionTarget.POST:
            await _load_visible_post(db, user_id, target_id)
        case ReactionTarget.REPLY:
            reply = await _load_reply(db, target_id)
            await _load_visible_post(db, user_id, reply.post_id)


async def add_reaction(
    db: AsyncSession,
    current_user: dict,
    target: ReactionTarget,
    target_id: str,
    reaction_type: str,
) -> Tuple[Union[PostReaction, ReplyReaction], bool]:
    """
    Add a reaction. Reacting twice with the same type is a no-op.

    Returns:
        The reaction row and whether it was newly created
    """
    model, target_column = _reaction_model(target)
    await _require_target_participant(db, current_user["uid"], target, target_id)

    key = (target_column == target_id, model.user_id == current_user["uid"], model.reaction_type == reaction_type)
    result = await db.execute(select(model).where(*key))
    existing = result.scalar_one_or_none()
    if existing:
        return existing, False

    reaction = model(user_id=current_user["uid"], reaction_type=reaction_type)
    setattr(reaction, target_column.key, target_id)
    db.add(reaction)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        result = await db.execute(select(model).where(*key))
        return result.scalar_one(), False
    await db.refresh(reaction)
    return reaction, True


async def remove_reaction(
    db: AsyncSession,
    current_user: dict,
    target: ReactionTarget,
    target_id: str,
    reaction_type: str,
) -> bool:
    model, target_column = _reaction_model(target)
    result = await db.execute(
        delete(model).where(
            target_column == target_id,
            model.user_id == current_user["uid"],
            model.reaction_type == reaction_type,
        )
    )
    await db.commit()
    return result.rowcount > 0


async def get_reactions(
    db: AsyncSession,
    current_user: dict,
    target: ReactionTarget,
    target_id: str,
) -> List[Union[PostReaction, ReplyReaction]]:
    await _require_target_participant(db, current_user["uid"], target, target_id)
    model, target_column = _reaction_model(target)
    result = await db.execute(select(model).where(target_column == target_id).order_by(model.created_at))
    return result.scalars().all()


# Attachments


async def _attachment_owner(db: AsyncSession, owner_type: AttachmentOwnerType, owner_id: str) -> Union[Post, Reply]:
    match owner_type:
        case AttachmentOwnerType.POST:
            owner = await db.get(Post, owner_id)
        case AttachmentOwnerType.REPLY:
            owner = await db.get(Reply, owner_id)
    if owner is None:
        raise AttachmentOwnerNotFound(f"Cannot attach files to missing {owner_type.value} {owner_id}")
    return owner


async def attach_files(
    db: AsyncSession,
    current_user: dict,
    owner_type: AttachmentOwnerType,
    owner_id: str,
    pendings: List[PendingAttachment],
) -> Submission:
    """
    Attach staged files to an existing post or reply written by the caller.

    Raises:
        AttachmentOwnerNotFound: If the post or reply does not exist
        PermissionDeniedError: If the caller is not its author
    """
    uid = current_user["uid"]
    owner = await _attachment_owner(db, owner_type, owner_id)
    if owner.author_id != uid:
        raise PermissionDeniedError(f"Only the author can attach files to this {owner_type.value}")

    submission = Submission(item=owner)
    if pendings:
        await _collect_attachments(db, submission, pendings, owner_type, uid)
    return submission


async def list_attachments(
    db: AsyncSession,
    current_user: dict,
    owner_type: AttachmentOwnerType,
    owner_id: str,
) -> List[Attachment]:
    match owner_type:
        case AttachmentOwnerType.POST:
            post_id = owner_id
        case AttachmentOwnerType.REPLY:
            post_id = (await _load_reply(db, owner_id)).post_id
    await _load_visible_post(db, current_user["uid"], post_id)
    return await attachment_service.get_attachments(db, owner_type, owner_id)


# Search


async def search_posts(db: AsyncSession, current_user: dict, discussion_id: str, query: str) -> List[Post]:
    """Case-insensitive substring match on title or content. Archived posts are skipped."""
    await _require_participant(db, discussion_id, current_user["uid"])
    result = await db.execute(
        select(Post)
        .where(
            Post.discussion_id == discussion_id,
            Post.is_archived == False,
            or_(
                Post.title.icontains(query, autoescape=True),
                Post.content.icontains(query, autoescape=True),
            ),
        )
        .order_by(Post.created_at.desc())
    )
    return result.scalars().all()


async def search_replies(db: AsyncSession, current_user: dict, discussion_id: str, query: str) -> List[Reply]:
    await _require_participant(db, discussion_id, current_user["uid"])
    result = await db.execute(
        select(Reply)
        .join(Post, Post.id == Reply.post_id)
        .where(
            Post.discussion_id == discussion_id,
            Reply.is_archived == False,
            Reply.content.icontains(query, autoescape=True),
        )
        .order_by(Reply.created_at.desc())
    )
    return result.scalars().all()


# Read tracking


async def mark_discussion_as_read(db: AsyncSession, current_user: dict, discussion_id: str) -> DiscussionParticipant:
    participant = await _require_participant(db, discussion_id, current_user["uid"])
    participant.last_read_at = utc_now()
    await db.commit()
    await db.refresh(participant)
    return participant


async def get_unread_count(db: AsyncSession, current_user: dict, discussion_id: str) -> int:
    """Non-archived posts created since the caller last read the discussion."""
    participant = await _get_participant(db, discussion_id, current_user["uid"])
    if participant is None:
        return 0

    stmt = select(func.count(Post.id)).where(Post.discussion_id == discussion_id, Post.is_archived == False)
    if participant.last_read_at is not None:
        stmt = stmt.where(Post.created_at > participant.last_read_at)
    result = await db.execute(stmt)
    return result.scalar_one()
