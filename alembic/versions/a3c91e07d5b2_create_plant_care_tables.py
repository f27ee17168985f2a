"""create plant care tables

Revision ID: a3c91e07d5b2
Revises:
Create Date: 2026-10-12 09:41:17.204518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'a3c91e07d5b2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.Enum('user', 'admin', name='user_role'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'plants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column(
            'plant_type',
            sa.Enum('tomato', 'lettuce', 'basil', 'pepper', 'cucumber', 'strawberry', 'herbs', 'other',
                    name='plant_type_enum'),
            nullable=False,
        ),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_watered', sa.DateTime(timezone=True), nullable=False),
        sa.Column('watering_interval_hours', sa.Integer(), nullable=False),
        sa.Column('soil_moisture', sa.Integer(), nullable=False),
        sa.Column('temperature', sa.Integer(), nullable=False),
        sa.Column('humidity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_plants_user_id'), 'plants', ['user_id'], unique=False)
    op.create_index(op.f('ix_plants_is_active'), 'plants', ['is_active'], unique=False)

    op.create_table(
        'watering_schedules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('plant_id', sa.Integer(), nullable=True),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('days_of_week', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['plant_id'], ['plants.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_watering_schedules_user_id'), 'watering_schedules', ['user_id'], unique=False)
    op.create_index(op.f('ix_watering_schedules_plant_id'), 'watering_schedules', ['plant_id'], unique=False)
    op.create_index(op.f('ix_watering_schedules_is_active'), 'watering_schedules', ['is_active'], unique=False)

    op.create_table(
        'watering_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('plant_id', sa.Integer(), nullable=False),
        sa.Column('schedule_id', sa.Integer(), nullable=True),
        sa.Column('source', sa.Enum('manual', 'schedule', name='watering_source_enum'), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_seconds', sa.Integer(), nullable=False),
        sa.Column('moisture_before', sa.Integer(), nullable=False),
        sa.Column('moisture_after', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['plant_id'], ['plants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['schedule_id'], ['watering_schedules.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_watering_events_plant_id'), 'watering_events', ['plant_id'], unique=False)
    op.create_index(op.f('ix_watering_events_schedule_id'), 'watering_events', ['schedule_id'], unique=False)
    op.create_index(op.f('ix_watering_events_timestamp'), 'watering_events', ['timestamp'], unique=False)

    op.create_table(
        'window_firings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('schedule_id', sa.Integer(), nullable=False),
        sa.Column('window_date', sa.Date(), nullable=False),
        sa.Column('fired_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['schedule_id'], ['watering_schedules.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('schedule_id', 'window_date', name='uq_window_firings_schedule_date'),
    )

    op.create_table(
        'pipeline_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pipeline_name', sa.String(length=100), nullable=False),
        sa.Column(
            'status',
            sa.Enum('running', 'success', 'failed', 'skipped', name='pipeline_status_enum'),
            nullable=False,
        ),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('records_processed', sa.Integer(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_pipeline_runs_pipeline_name'), 'pipeline_runs', ['pipeline_name'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_pipeline_runs_pipeline_name'), table_name='pipeline_runs')
    op.drop_table('pipeline_runs')
    op.drop_table('window_firings')
    op.drop_index(op.f('ix_watering_events_timestamp'), table_name='watering_events')
    op.drop_index(op.f('ix_watering_events_schedule_id'), table_name='watering_events')
    op.drop_index(op.f('ix_watering_events_plant_id'), table_name='watering_events')
    op.drop_table('watering_events')
    op.drop_index(op.f('ix_watering_schedules_is_active'), table_name='watering_schedules')
    op.drop_index(op.f('ix_watering_schedules_plant_id'), table_name='watering_schedules')
    op.drop_index(op.f('ix_watering_schedules_user_id'), table_name='watering_schedules')
    op.drop_table('watering_schedules')
    op.drop_index(op.f('ix_plants_is_active'), table_name='plants')
    op.drop_index(op.f('ix_plants_user_id'), table_name='plants')
    op.drop_table('plants')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')

    # Enum types outlive their tables in PostgreSQL
    for enum_name in ('pipeline_status_enum', 'watering_source_enum', 'plant_type_enum', 'user_role'):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
