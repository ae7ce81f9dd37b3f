"""create_place_lifecycle_tables

Revision ID: 3f1a7c2d9e01
Revises:
Create Date: 2026-03-01 09:00:12.118204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1a7c2d9e01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('email', sa.TEXT(), nullable=True),
        sa.Column('subscription_tier', sa.TEXT(), nullable=False, server_default='free'),
        sa.Column('subscription_status', sa.TEXT(), nullable=False, server_default='none'),
        sa.Column('billing_id', sa.TEXT(), nullable=True),
        sa.Column('max_places', sa.INTEGER(), nullable=False, server_default='1'),
        sa.Column('remaining_place_changes', sa.INTEGER(), nullable=False, server_default='0'),
        sa.Column('first_place_change_used', sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column('next_place_change_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'places',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('user_id', sa.TEXT(), nullable=False),
        sa.Column('place_id', sa.TEXT(), nullable=False),
        sa.Column('place_url', sa.TEXT(), nullable=False),
        sa.Column('place_name', sa.TEXT(), nullable=True),
        sa.Column('place_address', sa.TEXT(), nullable=True),
        sa.Column('place_image_url', sa.TEXT(), nullable=True),
        sa.Column('crawled_data', sa.JSON(), nullable=True),
        sa.Column('status', sa.TEXT(), nullable=False),
        sa.Column('error_message', sa.TEXT(), nullable=True),
        sa.Column('remaining_refreshes', sa.INTEGER(), nullable=False, server_default='0'),
        sa.Column('pending_change_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_crawled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('content_last_changed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'place_id', name='uq_places_user_naver_place'),
    )
    op.create_index('idx_places_user_created', 'places', ['user_id', 'created_at'])

    op.create_table(
        'ai_generated_copies',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('place_id', sa.TEXT(), nullable=False),
        sa.Column('user_id', sa.TEXT(), nullable=False),
        sa.Column('content', sa.TEXT(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['place_id'], ['places.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_ai_generated_copies_place', 'ai_generated_copies', ['place_id'])

    op.create_table(
        'place_refresh_logs',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('place_id', sa.TEXT(), nullable=False),
        sa.Column('user_id', sa.TEXT(), nullable=False),
        sa.Column('refreshed_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('is_successful', sa.BOOLEAN(), nullable=False),
        sa.Column('error_message', sa.TEXT(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_place_refresh_logs_place', 'place_refresh_logs', ['place_id', 'refreshed_at'])


def downgrade() -> None:
    op.drop_index('idx_place_refresh_logs_place', table_name='place_refresh_logs')
    op.drop_table('place_refresh_logs')
    op.drop_index('idx_ai_generated_copies_place', table_name='ai_generated_copies')
    op.drop_table('ai_generated_copies')
    op.drop_index('idx_places_user_created', table_name='places')
    op.drop_table('places')
    op.drop_table('profiles')
