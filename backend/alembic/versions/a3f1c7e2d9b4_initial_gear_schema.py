"""Initial gear tracker schema

Revision ID: a3f1c7e2d9b4
Revises:
Create Date: 2025-06-24 00:00:00.000000

Creates the nine gear tracker tables:
- users, bands, band_members
- instruments, instrument_images, value_history
- maintenance_records, maintenance_schedule
- gigs, gig_gear

instruments.band_id is SET NULL on band delete; every other child cascades.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = 'a3f1c7e2d9b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # --- users ---
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),  # identity-provider uid
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('photo_url', sa.String(), nullable=True),
        sa.Column('role', sa.Enum('USER', 'ADMIN', 'BAND_MANAGER', name='userrole'), nullable=False, server_default='USER'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    # --- bands ---
    op.create_table(
        'bands',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('photo_url', sa.String(), nullable=True),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_bands_owner_id', 'bands', ['owner_id'])

    # --- band_members ---
    op.create_table(
        'band_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('band_id', sa.Integer(), sa.ForeignKey('bands.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.Enum('OWNER', 'ADMIN', 'MEMBER', name='bandrole'), nullable=False, server_default='MEMBER'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('band_id', 'user_id', name='uq_band_members_band_user'),
    )
    op.create_index('ix_band_members_band_id', 'band_members', ['band_id'])
    op.create_index('ix_band_members_user_id', 'band_members', ['user_id'])

    # --- instruments ---
    op.create_table(
        'instruments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('make', sa.String(), nullable=True),
        sa.Column('model', sa.String(), nullable=True),
        sa.Column('serial_number', sa.String(), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('purchase_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('current_value', sa.Numeric(10, 2), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('condition', sa.String(), nullable=True),
        sa.Column('insured', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('insurance_policy', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('band_id', sa.Integer(), sa.ForeignKey('bands.id', ondelete='SET NULL'), nullable=True),
        sa.Column('storage_location', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_instruments_owner_id', 'instruments', ['owner_id'])
    op.create_index('ix_instruments_band_id', 'instruments', ['band_id'])
    op.create_index('idx_instrument_owner_name', 'instruments', ['owner_id', 'name'])

    # --- instrument_images ---
    op.create_table(
        'instrument_images',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('instrument_id', sa.Integer(), sa.ForeignKey('instruments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('image_url', sa.String(), nullable=False),
        sa.Column('thumbnail_url', sa.String(), nullable=True),
        sa.Column('caption', sa.String(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=True, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_instrument_images_instrument_id', 'instrument_images', ['instrument_id'])

    # --- maintenance_records ---
    op.create_table(
        'maintenance_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('instrument_id', sa.Integer(), sa.ForeignKey('instruments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('performed_by', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_maintenance_records_instrument_id', 'maintenance_records', ['instrument_id'])

    # --- maintenance_schedule ---
    op.create_table(
        'maintenance_schedule',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('instrument_id', sa.Integer(), sa.ForeignKey('instruments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('recurrence_type', sa.Enum('NONE', 'DAILY', 'WEEKLY', 'MONTHLY', 'YEARLY', name='recurrencetype'), nullable=True, server_default='NONE'),
        sa.Column('recurrence_interval', sa.Integer(), nullable=True),
        sa.Column('reminder_enabled', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('reminder_days_before', sa.Integer(), nullable=True, server_default='7'),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_maintenance_schedule_instrument_id', 'maintenance_schedule', ['instrument_id'])
    op.create_index('ix_maintenance_schedule_due_date', 'maintenance_schedule', ['due_date'])

    # --- gigs ---
    op.create_table(
        'gigs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('venue', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('postal_code', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('band_id', sa.Integer(), sa.ForeignKey('bands.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_by', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_gigs_band_id', 'gigs', ['band_id'])
    op.create_index('idx_gig_band_start', 'gigs', ['band_id', 'start_time'])

    # --- gig_gear ---
    op.create_table(
        'gig_gear',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('gig_id', sa.Integer(), sa.ForeignKey('gigs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('instrument_id', sa.Integer(), sa.ForeignKey('instruments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('is_packed', sa.Boolean(), nullable=True, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('gig_id', 'instrument_id', name='uq_gig_gear_gig_instrument'),
    )
    op.create_index('ix_gig_gear_gig_id', 'gig_gear', ['gig_id'])
    op.create_index('ix_gig_gear_instrument_id', 'gig_gear', ['instrument_id'])

    # --- value_history ---
    op.create_table(
        'value_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('instrument_id', sa.Integer(), sa.ForeignKey('instruments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('value', sa.Numeric(10, 2), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('source', sa.Enum('MANUAL', 'APPRAISAL', 'MARKET_LOOKUP', name='valuesource'), nullable=True, server_default='MANUAL'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_value_history_instrument_id', 'value_history', ['instrument_id'])
    op.create_index('idx_value_history_instrument_date', 'value_history', ['instrument_id', 'date'])


def downgrade() -> None:
    op.drop_table('value_history')
    op.drop_table('gig_gear')
    op.drop_table('gigs')
    op.drop_table('maintenance_schedule')
    op.drop_table('maintenance_records')
    op.drop_table('instrument_images')
    op.drop_table('instruments')
    op.drop_table('band_members')
    op.drop_table('bands')
    op.drop_table('users')
    for enum_name in ('valuesource', 'recurrencetype', 'bandrole', 'userrole'):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
