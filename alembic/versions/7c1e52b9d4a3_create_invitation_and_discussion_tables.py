"""Create invitation, group and discussion tables

Revision ID: 7c1e52b9d4a3
Revises:
Create Date: 2025-06-02 18:41:07.512093

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '7c1e52b9d4a3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum labels are the member names, matching how SQLAlchemy stores Python enums
invite_status = sa.Enum('PENDING', 'ACCEPTED', 'DECLINED', 'MAYBE', name='invite_status')
approval_status = sa.Enum('PENDING', 'APPROVED', 'DENIED', name='approval_status')
discussion_type = sa.Enum('GROUP', 'SESSION', name='discussion_type')
post_type = sa.Enum('DISCUSSION', 'ANNOUNCEMENT', name='post_type')
file_type = sa.Enum('IMAGE', 'DOCUMENT', 'VIDEO', 'AUDIO', name='file_type')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create every table used by invitations, groups and discussions.

    Order follows foreign keys: users and sessions first, then groups and
    invites, then the discussion hierarchy and its attachments.
    """
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_phone'), 'users', ['phone'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=False)

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('session_type', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('session_datetime', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_datetime', sa.DateTime(timezone=True), nullable=True),
        sa.Column('max_players', sa.Integer(), nullable=True),
        sa.Column('allow_guests', sa.Boolean(), nullable=True),
        sa.Column('dupr_min', sa.Float(), nullable=True),
        sa.Column('dupr_max', sa.Float(), nullable=True),
        sa.Column('visibility', sa.String(), nullable=True),
        sa.Column('accepted_participants', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_sessions_id'), 'sessions', ['id'], unique=False)
    op.create_index(op.f('ix_sessions_user_id'), 'sessions', ['user_id'], unique=False)

    op.create_table(
        'groups',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_groups_id'), 'groups', ['id'], unique=False)
    op.create_index(op.f('ix_groups_user_id'), 'groups', ['user_id'], unique=False)

    op.create_table(
        'group_members',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('group_id', sa.String(), nullable=False),
        sa.Column('contact_name', sa.String(), nullable=False),
        sa.Column('contact_phone', sa.String(), nullable=True),
        sa.Column('contact_email', sa.String(), nullable=True),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('accepted_invite', sa.Boolean(), nullable=False),
        sa.Column('approval_status', approval_status, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_group_members_id'), 'group_members', ['id'], unique=False)
    op.create_index(op.f('ix_group_members_group_id'), 'group_members', ['group_id'], unique=False)
    op.create_index(op.f('ix_group_members_contact_phone'), 'group_members', ['contact_phone'], unique=False)
    op.create_index(op.f('ix_group_members_user_id'), 'group_members', ['user_id'], unique=False)

    op.create_table(
        'session_invites',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('session_id', sa.String(), nullable=True),
        sa.Column('group_id', sa.String(), nullable=True),
        sa.Column('inviter_id', sa.String(), nullable=False),
        sa.Column('invitee_name', sa.String(), nullable=False),
        sa.Column('invitee_phone', sa.String(), nullable=True),
        sa.Column('invitee_email', sa.String(), nullable=True),
        sa.Column('invitee_id', sa.String(), nullable=True),
        sa.Column('status', invite_status, nullable=False),
        sa.Column('notification_sent', sa.Boolean(), nullable=True),
        sa.Column('sms_sent', sa.Boolean(), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('(session_id IS NULL) <> (group_id IS NULL)', name='ck_session_invites_single_owner'),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id']),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id']),
        sa.ForeignKeyConstraint(['inviter_id'], ['users.id']),
        sa.ForeignKeyConstraint(['invitee_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('id', 'session_id', 'group_id', 'inviter_id', 'invitee_phone', 'invitee_email', 'invitee_id'):
        op.create_index(op.f(f'ix_session_invites_{column}'), 'session_invites', [column], unique=False)

    op.create_table(
        'discussions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('discussion_type', discussion_type, nullable=False),
        sa.Column('entity_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('discussion_type', 'entity_id', name='uq_discussions_type_entity'),
    )
    op.create_index(op.f('ix_discussions_id'), 'discussions', ['id'], unique=False)
    op.create_index(op.f('ix_discussions_entity_id'), 'discussions', ['entity_id'], unique=False)

    op.create_table(
        'discussion_participants',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('discussion_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('last_read_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['discussion_id'], ['discussions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('discussion_id', 'user_id', name='uq_discussion_participants_user'),
    )
    op.create_index(op.f('ix_discussion_participants_id'), 'discussion_participants', ['id'], unique=False)
    op.create_index(op.f('ix_discussion_participants_discussion_id'), 'discussion_participants', ['discussion_id'], unique=False)
    op.create_index(op.f('ix_discussion_participants_user_id'), 'discussion_participants', ['user_id'], unique=False)

    op.create_table(
        'posts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('discussion_id', sa.String(), nullable=False),
        sa.Column('author_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('post_type', post_type, nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False),
        sa.Column('is_locked', sa.Boolean(), nullable=False),
        sa.Column('is_archived', sa.Boolean(), nullable=False),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_by', sa.String(), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False),
        sa.Column('reply_count', sa.Integer(), nullable=False),
        sa.Column('last_reply_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['discussion_id'], ['discussions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id']),
        sa.ForeignKeyConstraint(['archived_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('id', 'discussion_id', 'author_id', 'created_at'):
        op.create_index(op.f(f'ix_posts_{column}'), 'posts', [column], unique=False)

    op.create_table(
        'replies',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('post_id', sa.String(), nullable=False),
        sa.Column('parent_reply_id', sa.String(), nullable=True),
        sa.Column('author_id', sa.String(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_edited', sa.Boolean(), nullable=False),
        sa.Column('edited_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_by', sa.String(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_reply_id'], ['replies.id']),
        sa.ForeignKeyConstraint(['author_id'], ['users.id']),
        sa.ForeignKeyConstraint(['archived_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('id', 'post_id', 'parent_reply_id', 'author_id', 'created_at'):
        op.create_index(op.f(f'ix_replies_{column}'), 'replies', [column], unique=False)

    op.create_table(
        'post_reactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('post_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('reaction_type', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('post_id', 'user_id', 'reaction_type', name='uq_post_reactions_key'),
    )
    op.create_index(op.f('ix_post_reactions_id'), 'post_reactions', ['id'], unique=False)
    op.create_index(op.f('ix_post_reactions_post_id'), 'post_reactions', ['post_id'], unique=False)

    op.create_table(
        'reply_reactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('reply_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('reaction_type', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['reply_id'], ['replies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reply_id', 'user_id', 'reaction_type', name='uq_reply_reactions_key'),
    )
    op.create_index(op.f('ix_reply_reactions_id'), 'reply_reactions', ['id'], unique=False)
    op.create_index(op.f('ix_reply_reactions_reply_id'), 'reply_reactions', ['reply_id'], unique=False)

    op.create_table(
        'attachments',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('post_id', sa.String(), nullable=True),
        sa.Column('reply_id', sa.String(), nullable=True),
        sa.Column('file_name', sa.String(), nullable=False),
        sa.Column('file_path', sa.String(), nullable=False),
        sa.Column('storage_key', sa.String(), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('mime_type', sa.String(), nullable=False),
        sa.Column('file_type', file_type, nullable=False),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('post_id IS NULL OR reply_id IS NULL', name='ck_attachments_single_owner'),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reply_id'], ['replies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_attachments_id'), 'attachments', ['id'], unique=False)
    op.create_index(op.f('ix_attachments_post_id'), 'attachments', ['post_id'], unique=False)
    op.create_index(op.f('ix_attachments_reply_id'), 'attachments', ['reply_id'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('type', sa.String(), nullable=True),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('message', sa.String(), nullable=True),
        sa.Column('data', sa.Text(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_notifications_id'), 'notifications', ['id'], unique=False)
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)

    op.create_table(
        'device_tokens',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('token', sa.String(), nullable=True),
        sa.Column('platform', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_device_tokens_id'), 'device_tokens', ['id'], unique=False)
    op.create_index(op.f('ix_device_tokens_user_id'), 'device_tokens', ['user_id'], unique=False)
    op.create_index(op.f('ix_device_tokens_token'), 'device_tokens', ['token'], unique=False)


def downgrade() -> None:
    """Drop the tables in reverse dependency order, then the enum types."""
    for table in (
        'device_tokens', 'notifications', 'attachments', 'reply_reactions', 'post_reactions',
        'replies', 'posts', 'discussion_participants', 'discussions', 'session_invites',
        'group_members', 'groups', 'sessions', 'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (file_type, post_type, discussion_type, approval_status, invite_status):
        enum_type.drop(bind, checkfirst=True)
