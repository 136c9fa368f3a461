from .user import User
from .session import PlaySession
from .session_invite import SessionInvite
from .group import Group, GroupMember
from .group_invitation import GroupSessionInvite
from .discussion import Discussion, DiscussionParticipant
from .post import Post, PostReaction
from .reply import Reply, ReplyReaction
from .attachment import Attachment
from .notifications import Notification
from .device_token import DeviceToken

__all__ = [
    "User", "PlaySession", "SessionInvite", "Group", "GroupMember", "GroupSessionInvite",
    "Discussion", "DiscussionParticipant", "Post", "PostReaction",
    "Reply", "ReplyReaction", "Attachment", "Notification", "DeviceToken",
]
