import pytest
import pytest_asyncio
from sqlalchemy import func, select

from netgains.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from netgains.models import Discussion, Notification, Reply
from netgains.schemas.discussions import (
    DiscussionFilters,
    DiscussionType,
    PostCreate,
    PostSortBy,
    PostUpdate,
    ReactionTarget,
    ReplyCreate,
)
from netgains.services import discussion_service

from .conftest import as_user


@pytest_asyncio.fixture
async def discussion(db, alice, bob, play_session):
    play_session.accepted_participants = ["bob"]
    await db.commit()
    discussion = await discussion_service.get_or_create_discussion(
        db, as_user("alice"), DiscussionType.SESSION, play_session.id
    )
    return discussion


async def post_in(discussion, db, author="alice", **fields):
    fields.setdefault("content", "Who is bringing balls?")
    submission = await discussion_service.create_post(
        db, as_user(author), PostCreate(discussion_id=discussion.id, **fields)
    )
    return submission.item


async def reply_to(db, post_id, content, author="bob", parent_reply_id=None):
    submission = await discussion_service.create_reply(
        db, as_user(author), ReplyCreate(post_id=post_id, content=content, parent_reply_id=parent_reply_id)
    )
    return submission.item


@pytest.mark.asyncio
async def test_one_discussion_per_entity(db, discussion, play_session):
    assert discussion.discussion_type == DiscussionType.SESSION
    assert sorted(discussion.participant_ids) == ["alice", "bob"]
    admins = [p.user_id for p in discussion.participants if p.is_admin]
    assert admins == ["alice"]

    again = await discussion_service.get_or_create_discussion(
        db, as_user("bob"), DiscussionType.SESSION, play_session.id
    )
    assert again.id == discussion.id

    result = await db.execute(select(func.count(Discussion.id)))
    assert result.scalar_one() == 1


@pytest.mark.asyncio
async def test_outsiders_cannot_open_or_post(db, discussion, play_session, carol):
    with pytest.raises(PermissionDeniedError):
        await discussion_service.get_or_create_discussion(
            db, as_user("carol"), DiscussionType.SESSION, play_session.id
        )
    with pytest.raises(PermissionDeniedError):
        await post_in(discussion, db, author="carol")
    with pytest.raises(NotFoundError):
        await discussion_service.get_or_create_discussion(db, as_user("alice"), DiscussionType.GROUP, "missing")


@pytest.mark.asyncio
async def test_pinned_first_ordering(db, discussion):
    first = await post_in(discussion, db, title="first")
    second = await post_in(discussion, db, title="second")
    third = await post_in(discussion, db, title="third")
    await discussion_service.update_post(db, as_user("alice"), first.id, PostUpdate(is_pinned=True))

    pinned_first = await discussion_service.list_posts(
        db, as_user("alice"), discussion.id, DiscussionFilters(sort_by=PostSortBy.PINNED_FIRST)
    )
    assert [p.id for p in pinned_first] == [first.id, third.id, second.id]

    oldest = await discussion_service.list_posts(
        db, as_user("alice"), discussion.id, DiscussionFilters(sort_by=PostSortBy.OLDEST)
    )
    assert [p.id for p in oldest] == [first.id, second.id, third.id]

    pinned_only = await discussion_service.list_posts(
        db, as_user("alice"), discussion.id, DiscussionFilters(pinned_only=True)
    )
    assert [p.id for p in pinned_only] == [first.id]


@pytest.mark.asyncio
async def test_reply_updates_post_counters(db, discussion):
    post = await post_in(discussion, db)
    for text in ("me", "me too", "I have some"):
        await reply_to(db, post.id, text)

    post = await discussion_service.get_post(db, as_user("alice"), post.id)
    assert post.reply_count == 3
    assert post.last_reply_at is not None

    by_replies = await discussion_service.list_posts(
        db, as_user("alice"), discussion.id, DiscussionFilters(sort_by=PostSortBy.MOST_REPLIES)
    )
    assert by_replies[0].id == post.id


@pytest.mark.asyncio
async def test_archive_covers_post_and_replies(db, discussion):
    post = await post_in(discussion, db)
    for text in ("one", "two", "three"):
        await reply_to(db, post.id, text)

    archived = await discussion_service.archive_post(db, as_user("alice"), post.id)
    assert archived.is_archived is True
    assert archived.archived_by == "alice"

    archived_posts = await discussion_service.get_archived_posts(db, as_user("alice"), discussion.id)
    result = await db.execute(select(func.count(Reply.id)).where(Reply.post_id == post.id, Reply.is_archived == True))
    assert len(archived_posts) + result.scalar_one() == 4

    assert await discussion_service.list_posts(db, as_user("alice"), discussion.id) == []
    assert await discussion_service.get_replies(db, as_user("alice"), post.id) == []

    with_archived = await discussion_service.list_posts(
        db, as_user("alice"), discussion.id, DiscussionFilters(include_archived=True)
    )
    assert [p.id for p in with_archived] == [post.id]
    assert with_archived[0].reply_count == 3
    archived_replies = await discussion_service.get_replies(db, as_user("alice"), post.id, include_archived=True)
    assert len(archived_replies) == 3
    assert all(r.is_archived for r in archived_replies)
    with pytest.raises(ValidationError):
        await reply_to(db, post.id, "too late")

    restored = await discussion_service.unarchive_post(db, as_user("alice"), post.id)
    assert restored.is_archived is False
    assert restored.archived_at is None
    assert len(await discussion_service.get_replies(db, as_user("alice"), post.id)) == 3
    assert await discussion_service.get_archived_posts(db, as_user("alice"), discussion.id) == []


@pytest.mark.asyncio
async def test_only_author_or_admin_archives(db, discussion):
    post = await post_in(discussion, db, author="alice")
    with pytest.raises(PermissionDeniedError):
        await discussion_service.archive_post(db, as_user("bob"), post.id)

    bobs_post = await post_in(discussion, db, author="bob")
    archived = await discussion_service.archive_post(db, as_user("alice"), bobs_post.id)
    assert archived.is_archived is True


@pytest.mark.asyncio
async def test_locked_post_rejects_replies(db, discussion):
    post = await post_in(discussion, db)
    await discussion_service.update_post(db, as_user("alice"), post.id, PostUpdate(is_locked=True))
    with pytest.raises(ValidationError):
        await reply_to(db, post.id, "can I still?")


@pytest.mark.asyncio
async def test_parent_reply_must_belong_to_same_post(db, discussion):
    post = await post_in(discussion, db)
    other = await post_in(discussion, db)
    parent = await reply_to(db, post.id, "parent")

    with pytest.raises(ValidationError):
        await reply_to(db, other.id, "wrong thread", parent_reply_id=parent.id)


@pytest.mark.asyncio
async def test_nested_replies(db, discussion):
    post = await post_in(discussion, db)
    top = await reply_to(db, post.id, "top")
    child = await reply_to(db, post.id, "child", author="alice", parent_reply_id=top.id)
    grandchild = await reply_to(db, post.id, "grandchild", parent_reply_id=child.id)

    threads = await discussion_service.get_replies(db, as_user("alice"), post.id)
    assert [t.id for t in threads] == [top.id]
    assert [r.id for r in threads[0].replies] == [child.id]

    deeper = await discussion_service.get_nested_replies(db, as_user("alice"), child.id)
    assert [r.id for r in deeper] == [grandchild.id]


@pytest.mark.asyncio
async def test_delete_reply_removes_subtree_and_adjusts_count(db, discussion):
    post = await post_in(discussion, db)
    top = await reply_to(db, post.id, "top")
    child = await reply_to(db, post.id, "child", parent_reply_id=top.id)
    await reply_to(db, post.id, "grandchild", parent_reply_id=child.id)
    await reply_to(db, post.id, "sibling")

    result = await discussion_service.delete_reply(db, as_user("bob"), top.id)
    assert len(result["deleted_ids"]) == 3

    post = await discussion_service.get_post(db, as_user("alice"), post.id)
    assert post.reply_count == 1
    assert [r.content for r in await discussion_service.get_replies(db, as_user("alice"), post.id)] == ["sibling"]


@pytest.mark.asyncio
async def test_reply_notifies_other_participants(db, discussion):
    post = await post_in(discussion, db)
    await reply_to(db, post.id, "count me in")

    result = await db.execute(select(Notification.user_id, Notification.type))
    assert result.all() == [("alice", "reply")]


@pytest.mark.asyncio
async def test_every_open_counts_as_a_view(db, discussion):
    post = await post_in(discussion, db)
    await discussion_service.get_post(db, as_user("alice"), post.id)
    await discussion_service.get_post(db, as_user("alice"), post.id)
    viewed = await discussion_service.get_post(db, as_user("alice"), post.id)
    assert viewed.view_count == 3

    with pytest.raises(NotFoundError):
        await discussion_service.get_post(db, as_user("alice"), "missing")


@pytest.mark.asyncio
async def test_reactions_are_idempotent(db, discussion):
    post = await post_in(discussion, db)

    first, created = await discussion_service.add_reaction(db, as_user("bob"), ReactionTarget.POST, post.id, "👍")
    assert created is True
    again, created = await discussion_service.add_reaction(db, as_user("bob"), ReactionTarget.POST, post.id, "👍")
    assert created is False
    assert again.id == first.id
    await discussion_service.add_reaction(db, as_user("bob"), ReactionTarget.POST, post.id, "🔥")

    reactions = await discussion_service.get_reactions(db, as_user("bob"), ReactionTarget.POST, post.id)
    assert sorted(r.reaction_type for r in reactions) == ["👍", "🔥"]

    assert await discussion_service.remove_reaction(db, as_user("bob"), ReactionTarget.POST, post.id, "👍") is True
    assert await discussion_service.remove_reaction(db, as_user("bob"), ReactionTarget.POST, post.id, "👍") is False

    reply = await reply_to(db, post.id, "nice")
    _, created = await discussion_service.add_reaction(db, as_user("alice"), ReactionTarget.REPLY, reply.id, "❤️")
    assert created is True


@pytest.mark.asyncio
async def test_search_is_case_insensitive(db, discussion):
    post = await post_in(discussion, db, title="Court Change", content="We moved to court 4")
    await post_in(discussion, db, title="Snacks", content="Bring water")
    await reply_to(db, post.id, "Court 4 works for me")

    posts = await discussion_service.search_posts(db, as_user("alice"), discussion.id, "court")
    assert [p.id for p in posts] == [post.id]

    replies = await discussion_service.search_replies(db, as_user("alice"), discussion.id, "COURT")
    assert [r.content for r in replies] == ["Court 4 works for me"]

    assert await discussion_service.search_posts(db, as_user("alice"), discussion.id, "100%") == []


@pytest.mark.asyncio
async def test_unread_count(db, discussion, carol):
    await post_in(discussion, db)
    await post_in(discussion, db)
    assert await discussion_service.get_unread_count(db, as_user("bob"), discussion.id) == 2

    await discussion_service.mark_discussion_as_read(db, as_user("bob"), discussion.id)
    assert await discussion_service.get_unread_count(db, as_user("bob"), discussion.id) == 0

    await post_in(discussion, db)
    assert await discussion_service.get_unread_count(db, as_user("bob"), discussion.id) == 1
    assert await discussion_service.get_unread_count(db, as_user("carol"), discussion.id) == 0


@pytest.mark.asyncio
async def test_delete_post_removes_thread(db, discussion):
    post = await post_in(discussion, db)
    await reply_to(db, post.id, "reply")
    await discussion_service.add_reaction(db, as_user("bob"), ReactionTarget.POST, post.id, "👍")

    with pytest.raises(PermissionDeniedError):
        await discussion_service.delete_post(db, as_user("bob"), post.id)

    await discussion_service.delete_post(db, as_user("alice"), post.id)
    with pytest.raises(NotFoundError):
        await discussion_service.get_post(db, as_user("alice"), post.id)
    result = await db.execute(select(func.count(Reply.id)))
    assert result.scalar_one() == 0


@pytest.mark.asyncio
async def test_outsiders_cannot_join_by_id(db, discussion, play_session, carol):
    with pytest.raises(PermissionDeniedError):
        await discussion_service.join_discussion(db, as_user("carol"), discussion.id)
    assert "carol" not in await discussion_service.get_participant_ids(db, discussion.id)

    play_session.accepted_participants = ["bob", "carol"]
    await db.commit()
    joined = await discussion_service.join_discussion(db, as_user("carol"), discussion.id)
    assert "carol" in joined.participant_ids


@pytest.mark.asyncio
async def test_outsiders_cannot_read(db, discussion, carol):
    post = await post_in(discussion, db, title="Court Change", content="We moved to court 4")
    reply = await reply_to(db, post.id, "Court 4 works for me")
    await discussion_service.archive_post(db, as_user("alice"), (await post_in(discussion, db)).id)
    outsider = as_user("carol")

    reads = [
        lambda: discussion_service.get_discussion_for_participant(db, outsider, discussion.id),
        lambda: discussion_service.list_posts(db, outsider, discussion.id),
        lambda: discussion_service.get_post(db, outsider, post.id),
        lambda: discussion_service.get_replies(db, outsider, post.id),
        lambda: discussion_service.get_nested_replies(db, outsider, reply.id),
        lambda: discussion_service.get_archived_posts(db, outsider, discussion.id),
        lambda: discussion_service.search_posts(db, outsider, discussion.id, "court"),
        lambda: discussion_service.search_replies(db, outsider, discussion.id, "court"),
        lambda: discussion_service.get_reactions(db, outsider, ReactionTarget.POST, post.id),
        lambda: discussion_service.add_reaction(db, outsider, ReactionTarget.REPLY, reply.id, "👍"),
    ]
    for read in reads:
        with pytest.raises(PermissionDeniedError):
            await read()

    viewed = await discussion_service.get_post(db, as_user("bob"), post.id)
    assert viewed.view_count == 1
