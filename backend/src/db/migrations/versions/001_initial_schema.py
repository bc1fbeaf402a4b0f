"""Initial gigboard schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-14

Creates:
- users: one row per identity-provider subject
- groups: bands/artist projects (tenants)
- memberships: user <-> group with role and per-group alias
- events: group events and personal unavailability (exactly one owner)
- songs, song_readiness, song_vetoes: per-group song lists
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _uuid_column() -> sa.Column:
    return sa.Column(
        'uuid',
        postgresql.UUID(as_uuid=True).with_variant(sa.LargeBinary(16), 'sqlite'),
        nullable=False,
    )


def _uuid_index(table_name: str) -> None:
    op.create_index(f'ix_{table_name}_uuid', table_name, ['uuid'], unique=True)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('external_subject', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('hometown', sa.String(length=255), nullable=True),
        sa.Column('instrument', sa.String(length=100), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('profile_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_platform_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('phone'),
    )
    _uuid_index('users')
    op.create_index('ix_users_external_subject', 'users', ['external_subject'], unique=True)

    op.create_table(
        'groups',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('allowed_event_types_json', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    _uuid_index('groups')
    op.create_index('ix_groups_slug', 'groups', ['slug'], unique=True)
    op.create_index('ix_groups_created_by_user_id', 'groups', ['created_by_user_id'])

    op.create_table(
        'memberships',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='member'),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('icon', sa.String(length=50), nullable=False, server_default='music'),
        sa.Column('color', sa.String(length=20), nullable=False, server_default='#6b7280'),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'group_id', name='uq_memberships_user_group'),
    )
    _uuid_index('memberships')
    op.create_index('ix_memberships_user_id', 'memberships', ['user_id'])
    op.create_index('ix_memberships_group_id', 'memberships', ['group_id'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('group_id', sa.Integer(), nullable=True),
        sa.Column('authored_by_membership_id', sa.Integer(), nullable=True),
        sa.Column('owner_user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=30), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('is_all_day', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('venue', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('recurrence_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(
            ['authored_by_membership_id'], ['memberships.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            '(group_id IS NULL) <> (owner_user_id IS NULL)',
            name='ck_events_single_owner',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    _uuid_index('events')
    op.create_index('ix_events_group_id', 'events', ['group_id'])
    op.create_index('ix_events_authored_by_membership_id', 'events', ['authored_by_membership_id'])
    op.create_index('ix_events_owner_user_id', 'events', ['owner_user_id'])
    op.create_index('ix_events_event_date', 'events', ['event_date'])
    op.create_index('idx_events_group_date', 'events', ['group_id', 'event_date'])
    op.create_index('idx_events_owner_date', 'events', ['owner_user_id', 'event_date'])

    op.create_table(
        'songs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _uuid_column(),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('catalog_id', sa.String(length=100), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('artist', sa.String(length=255), nullable=False),
        sa.Column('album', sa.String(length=255), nullable=True),
        sa.Column('catalog_url', sa.Text(), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('preview_url', sa.Text(), nullable=True),
        sa.Column('added_by_membership_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(
            ['added_by_membership_id'], ['memberships.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('group_id', 'catalog_id', name='uq_songs_group_catalog'),
    )
    _uuid_index('songs')
    op.create_index('ix_songs_group_id', 'songs', ['group_id'])

    op.create_table(
        'song_readiness',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('song_id', sa.Integer(), nullable=False),
        sa.Column('membership_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['song_id'], ['songs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['membership_id'], ['memberships.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('song_id', 'membership_id', name='uq_song_readiness_pair'),
    )
    op.create_index('ix_song_readiness_song_id', 'song_readiness', ['song_id'])
    op.create_index('ix_song_readiness_membership_id', 'song_readiness', ['membership_id'])

    op.create_table(
        'song_vetoes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('song_id', sa.Integer(), nullable=False),
        sa.Column('membership_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['song_id'], ['songs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['membership_id'], ['memberships.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('song_id', 'membership_id', name='uq_song_vetoes_pair'),
    )
    op.create_index('ix_song_vetoes_song_id', 'song_vetoes', ['song_id'])
    op.create_index('ix_song_vetoes_membership_id', 'song_vetoes', ['membership_id'])


def downgrade() -> None:
    op.drop_table('song_vetoes')
    op.drop_table('song_readiness')
    op.drop_table('songs')
    op.drop_table('events')
    op.drop_table('memberships')
    op.drop_table('groups')
    op.drop_table('users')
