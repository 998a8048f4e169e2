"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True),
                     server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True)


def _user_fk(name='user_id'):
    return sa.Column(name, sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)


def _post_fk():
    return sa.Column('post_id', sa.Integer(), sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False)


def upgrade() -> None:
    # Users first; every other table hangs off it
    op.create_table('users',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('full_name', sa.String(), nullable=True),
                    sa.Column('email', sa.String(), nullable=False),
                    sa.Column('password', sa.String(), nullable=False),
                    sa.Column('phone', sa.String(), nullable=True),
                    sa.Column('image', sa.String(), nullable=True),
                    sa.Column('address', sa.String(), nullable=True),
                    sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
                    sa.Column('block', sa.Boolean(), nullable=False, server_default=sa.false()),
                    sa.Column('public_profile', sa.Boolean(), nullable=False, server_default=sa.true()),
                    sa.Column('instagram_sync', sa.Boolean(), nullable=False, server_default=sa.false()),
                    sa.Column('contact_sync', sa.Boolean(), nullable=False, server_default=sa.false()),
                    sa.Column('location_sharing', sa.Boolean(), nullable=False, server_default=sa.false()),
                    sa.Column('message_request', sa.Boolean(), nullable=False, server_default=sa.true()),
                    sa.Column('notification_type', sa.String(), nullable=False, server_default='0'),
                    sa.Column('instagram_access_token', sa.Text(), nullable=True),
                    sa.Column('instagram_user_id', sa.String(), nullable=True),
                    sa.Column('instagram_token_expires_in', sa.Integer(), nullable=True),
                    sa.Column('instagram_token_last_refreshed', sa.BigInteger(), nullable=True),
                    sa.Column('terms_accepted', sa.Boolean(), nullable=False, server_default=sa.false()),
                    sa.Column('terms_accepted_at', sa.DateTime(timezone=True), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_phone'), 'users', ['phone'], unique=False)

    op.create_table('admin_users',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('full_name', sa.String(), nullable=True),
                    sa.Column('email', sa.String(), nullable=False),
                    sa.Column('password', sa.String(), nullable=False),
                    sa.Column('image', sa.String(), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_admin_users_id'), 'admin_users', ['id'], unique=False)
    op.create_index(op.f('ix_admin_users_email'), 'admin_users', ['email'], unique=True)

    op.create_table('posts',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    sa.Column('country', sa.String(), nullable=False),
                    sa.Column('city', sa.String(), nullable=False),
                    sa.Column('continent', sa.String(), nullable=True),
                    sa.Column('longitude', sa.Float(), nullable=True),
                    sa.Column('latitude', sa.Float(), nullable=True),
                    sa.Column('visit_date', sa.Date(), nullable=False),
                    sa.Column('reason_for_visit', sa.String(), nullable=False),
                    sa.Column('overall_rating', sa.Integer(), nullable=True),
                    sa.Column('cost_rating', sa.Integer(), nullable=True),
                    sa.Column('safety_rating', sa.Integer(), nullable=True),
                    sa.Column('food_rating', sa.Integer(), nullable=True),
                    sa.Column('experience', sa.Text(), nullable=True),
                    sa.Column('place_type', sa.String(), nullable=True),
                    sa.Column('tags', sa.String(), nullable=True),
                    sa.Column('like_count', sa.Integer(), nullable=False, server_default='0'),
                    sa.Column('comment_count', sa.Integer(), nullable=False, server_default='0'),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_posts_id'), 'posts', ['id'], unique=False)
    op.create_index(op.f('ix_posts_user_id'), 'posts', ['user_id'], unique=False)
    op.create_index(op.f('ix_posts_country'), 'posts', ['country'], unique=False)
    op.create_index(op.f('ix_posts_city'), 'posts', ['city'], unique=False)
    op.create_index(op.f('ix_posts_created_at'), 'posts', ['created_at'], unique=False)

    op.create_table('photos',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _post_fk(),
                    sa.Column('image_url', sa.String(), nullable=False),
                    _created_at(),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_photos_id'), 'photos', ['id'], unique=False)
    op.create_index(op.f('ix_photos_post_id'), 'photos', ['post_id'], unique=False)

    op.create_table('followers',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    _user_fk('follower_id'),
                    _created_at(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('follower_id', 'user_id', name='uq_followers_follower_user')
                    )
    op.create_index(op.f('ix_followers_id'), 'followers', ['id'], unique=False)
    op.create_index(op.f('ix_followers_user_id'), 'followers', ['user_id'], unique=False)
    op.create_index(op.f('ix_followers_follower_id'), 'followers', ['follower_id'], unique=False)

    op.create_table('follow_requests',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk('requester_id'),
                    _user_fk('target_user_id'),
                    sa.Column('status', sa.String(), nullable=False, server_default='pending'),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_follow_requests_id'), 'follow_requests', ['id'], unique=False)
    op.create_index(op.f('ix_follow_requests_requester_id'), 'follow_requests', ['requester_id'], unique=False)
    op.create_index(op.f('ix_follow_requests_target_user_id'), 'follow_requests', ['target_user_id'], unique=False)

    op.create_table('likes',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    _post_fk(),
                    _created_at(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'post_id', name='uq_likes_user_post')
                    )
    op.create_index(op.f('ix_likes_id'), 'likes', ['id'], unique=False)
    op.create_index(op.f('ix_likes_user_id'), 'likes', ['user_id'], unique=False)
    op.create_index(op.f('ix_likes_post_id'), 'likes', ['post_id'], unique=False)

    op.create_table('comments',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    _post_fk(),
                    sa.Column('comment', sa.Text(), nullable=False),
                    _created_at(),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_comments_id'), 'comments', ['id'], unique=False)
    op.create_index(op.f('ix_comments_user_id'), 'comments', ['user_id'], unique=False)
    op.create_index(op.f('ix_comments_post_id'), 'comments', ['post_id'], unique=False)

    op.create_table('wishlists',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    _post_fk(),
                    sa.Column('destination', sa.String(), nullable=True),
                    _created_at(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'post_id', name='uq_wishlists_user_post')
                    )
    op.create_index(op.f('ix_wishlists_id'), 'wishlists', ['id'], unique=False)
    op.create_index(op.f('ix_wishlists_user_id'), 'wishlists', ['user_id'], unique=False)
    op.create_index(op.f('ix_wishlists_post_id'), 'wishlists', ['post_id'], unique=False)

    op.create_table('highlights',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    sa.Column('type', sa.String(), nullable=False),
                    sa.Column('value', sa.String(), nullable=False),
                    sa.Column('count', sa.Integer(), nullable=False, server_default='1'),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'type', 'value', name='uq_highlights_user_type_value')
                    )
    op.create_index(op.f('ix_highlights_id'), 'highlights', ['id'], unique=False)
    op.create_index(op.f('ix_highlights_user_id'), 'highlights', ['user_id'], unique=False)

    op.create_table('top_destinations',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    sa.Column('type', sa.String(), nullable=False),
                    sa.Column('value', sa.String(), nullable=False),
                    sa.Column('count', sa.Integer(), nullable=False, server_default='1'),
                    sa.Column('visited', sa.Boolean(), nullable=False, server_default=sa.true()),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'type', 'value', name='uq_top_destinations_user_type_value')
                    )
    op.create_index(op.f('ix_top_destinations_id'), 'top_destinations', ['id'], unique=False)
    op.create_index(op.f('ix_top_destinations_user_id'), 'top_destinations', ['user_id'], unique=False)
    op.create_index('ix_top_destinations_user_type', 'top_destinations', ['user_id', 'type'], unique=False)

    op.create_table('user_otps',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    sa.Column('otp', sa.String(length=6), nullable=False),
                    sa.Column('reset_token', sa.String(length=64), nullable=False),
                    sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
                    _created_at(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id')
                    )
    op.create_index(op.f('ix_user_otps_id'), 'user_otps', ['id'], unique=False)
    op.create_index(op.f('ix_user_otps_reset_token'), 'user_otps', ['reset_token'], unique=False)

    op.create_table('flagged_content',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _post_fk(),
                    _user_fk(),
                    sa.Column('reason', sa.Text(), nullable=True),
                    sa.Column('status', sa.String(), nullable=False, server_default='pending'),
                    sa.Column('admin_response', sa.Text(), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_flagged_content_id'), 'flagged_content', ['id'], unique=False)
    op.create_index(op.f('ix_flagged_content_post_id'), 'flagged_content', ['post_id'], unique=False)
    op.create_index(op.f('ix_flagged_content_user_id'), 'flagged_content', ['user_id'], unique=False)
    op.create_index(op.f('ix_flagged_content_status'), 'flagged_content', ['status'], unique=False)

    op.create_table('user_blocks',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    _user_fk('target_user_id'),
                    _created_at(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('user_id', 'target_user_id', name='uq_user_blocks_user_target')
                    )
    op.create_index(op.f('ix_user_blocks_id'), 'user_blocks', ['id'], unique=False)
    op.create_index(op.f('ix_user_blocks_user_id'), 'user_blocks', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_blocks_target_user_id'), 'user_blocks', ['target_user_id'], unique=False)

    op.create_table('notifications',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    sa.Column('notification_type', sa.Integer(), nullable=False),
                    sa.Column('title', sa.String(), nullable=True),
                    sa.Column('message', sa.String(), nullable=False),
                    sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
                    _created_at(),
                    sa.PrimaryKeyConstraint('id')
                    )
    op.create_index(op.f('ix_notifications_id'), 'notifications', ['id'], unique=False)
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)
    op.create_index(op.f('ix_notifications_created_at'), 'notifications', ['created_at'], unique=False)

    op.create_table('fcm_tokens',
                    sa.Column('id', sa.Integer(), nullable=False),
                    _user_fk(),
                    sa.Column('token', sa.String(), nullable=False),
                    sa.Column('device_type', sa.String(), nullable=True),
                    *_timestamps(),
                    sa.PrimaryKeyConstraint('id'),
                    sa.UniqueConstraint('token')
                    )
    op.create_index(op.f('ix_fcm_tokens_id'), 'fcm_tokens', ['id'], unique=False)
    op.create_index(op.f('ix_fcm_tokens_user_id'), 'fcm_tokens', ['user_id'], unique=False)


def downgrade() -> None:
    for table in (
        'fcm_tokens',
        'notifications',
        'user_blocks',
        'flagged_content',
        'user_otps',
        'top_destinations',
        'highlights',
        'wishlists',
        'comments',
        'likes',
        'follow_requests',
        'followers',
        'photos',
        'posts',
        'admin_users',
        'users',
    ):
        op.drop_table(table)
