from datetime import datetime
from enum import Enum as PyEnum
from typing import List, Optional

from pydantic import BaseModel, Field

from .attachments import AttachmentResponse, AttachmentFailure


class DiscussionType(str, PyEnum):
    GROUP = "group"
    SESSION = "session"


class PostType(str, PyEnum):
    DISCUSSION = "discussion"
    ANNOUNCEMENT = "announcement"


class PostSortBy(str, PyEnum):
    NEWEST = "newest"
    OLDEST = "oldest"
    MOST_REPLIES = "most_replies"
    MOST_VIEWS = "most_views"
    PINNED_FIRST = "pinned_first"


class ReactionTarget(str, PyEnum):
    POST = "post"
    REPLY = "reply"


class DiscussionFilters(BaseModel):
    post_type: Optional[PostType] = None
    sort_by: PostSortBy = PostSortBy.NEWEST
    pinned_only: bool = False
    include_archived: bool = False


class DiscussionResponse(BaseModel):
    id: str
    discussion_type: DiscussionType
    entity_id: str
    name: Optional[str] = None
    participant_ids: List[str] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PostCreate(BaseModel):
    discussion_id: str
    title: Optional[str] = None
    content: str = Field(min_length=1)
    post_type: PostType = PostType.DISCUSSION


class PostUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    post_type: Optional[PostType] = None
    is_pinned: Optional[bool] = None
    is_locked: Optional[bool] = None


class PostResponse(BaseModel):
    id: str
    discussion_id: str
    author_id: str
    title: Optional[str] = None
    content: str
    post_type: PostType
    is_pinned: bool
    is_locked: bool
    is_archived: bool
    archived_at: Optional[datetime] = None
    archived_by: Optional[str] = None
    view_count: int
    reply_count: int
    last_reply_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReplyCreate(BaseModel):
    post_id: str
    parent_reply_id: Optional[str] = None
    content: str = Field(min_length=1)


class ReplyUpdate(BaseModel):
    content: str = Field(min_length=1)


class ReplyResponse(BaseModel):
    id: str
    post_id: str
    parent_reply_id: Optional[str] = None
    author_id: str
    content: str
    is_edited: bool
    edited_at: Optional[datetime] = None
    is_archived: bool
    archived_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    replies: List["ReplyResponse"] = []

    class Config:
        from_attributes = True


class PostSubmissionResponse(BaseModel):
    post: PostResponse
    attachments: List[AttachmentResponse] = []
    failed_attachments: List[AttachmentFailure] = []


class ReplySubmissionResponse(BaseModel):
    reply: ReplyResponse
    attachments: List[AttachmentResponse] = []
    failed_attachments: List[AttachmentFailure] = []


class ReactionRequest(BaseModel):
    reaction_type: str = Field(min_length=1, max_length=32)


class ReactionResponse(BaseModel):
    target: ReactionTarget
    target_id: str
    user_id: str
    reaction_type: str
    created: bool


class UnreadCountResponse(BaseModel):
    discussion_id: str
    unread_count: int
