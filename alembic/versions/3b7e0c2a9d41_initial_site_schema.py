"""initial_site_schema

Revision ID: 3b7e0c2a9d41
Revises:
Create Date: 2026-10-18 11:42:10.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b7e0c2a9d41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'gallery',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('src', sa.String(), nullable=False),
        sa.Column('blob_key', sa.String(), nullable=True),
        sa.Column('alt', sa.String(), nullable=False),
        sa.Column('placeholder_position', sa.Integer(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        # One active image per slot; archived rows have NULL and never collide
        sa.UniqueConstraint('placeholder_position'),
        sa.UniqueConstraint('src'),
    )
    op.create_index(op.f('ix_gallery_is_archived'), 'gallery', ['is_archived'], unique=False)

    op.create_table(
        'events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('date', sa.String(), nullable=False),
        sa.Column('venue', sa.String(), nullable=False),
        sa.Column('event_name', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('postcode', sa.String(), nullable=True),
        sa.Column('time_start', sa.String(), nullable=True),
        sa.Column('time_end', sa.String(), nullable=True),
        sa.Column('ticket_link', sa.String(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_events_position'), 'events', ['position'], unique=False)

    op.create_table(
        'booking_requests',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('venue', sa.String(), nullable=False),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('event_time', sa.String(), nullable=True),
        sa.Column('event_type', sa.String(), nullable=True),
        sa.Column('additional_info', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='new'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_booking_requests_event_date'), 'booking_requests', ['event_date'], unique=False)
    op.create_index(op.f('ix_booking_requests_status'), 'booking_requests', ['status'], unique=False)

    op.create_table(
        'videos',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('src', sa.String(), nullable=False),
        sa.Column('thumbnail_src', sa.String(), nullable=False),
        sa.Column('video_key', sa.String(), nullable=True),
        sa.Column('thumbnail_key', sa.String(), nullable=True),
        sa.Column('auto_thumbnail', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_videos_is_archived'), 'videos', ['is_archived'], unique=False)
    op.create_index(op.f('ix_videos_order_index'), 'videos', ['order_index'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_videos_order_index'), table_name='videos')
    op.drop_index(op.f('ix_videos_is_archived'), table_name='videos')
    op.drop_table('videos')

    op.drop_index(op.f('ix_booking_requests_status'), table_name='booking_requests')
    op.drop_index(op.f('ix_booking_requests_event_date'), table_name='booking_requests')
    op.drop_table('booking_requests')

    op.drop_index(op.f('ix_events_position'), table_name='events')
    op.drop_table('events')

    op.drop_index(op.f('ix_gallery_is_archived'), table_name='gallery')
    op.drop_table('gallery')
