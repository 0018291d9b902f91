"""create booking engine tables

Revision ID: 4b1f0c2d7a93
Revises:
Create Date: 2026-10-16 09:12:40.512311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b1f0c2d7a93'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Businesses and weekly hours
    op.create_table(
        'businesses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('timezone', sa.String(50), nullable=True),
        sa.Column('webhook_urls', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('is_active', sa.Boolean(), nullable=True),
    )

    op.create_table(
        'business_hours',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('is_open', sa.Boolean(), nullable=False),
        sa.Column('open_time', sa.String(5), nullable=True),
        sa.Column('close_time', sa.String(5), nullable=True),
        sa.Column('breaks', sa.JSON(), nullable=True),
        sa.UniqueConstraint('business_id', 'day_of_week', name='uq_business_hours_day'),
    )
    op.create_index('ix_business_hours_business_id', 'business_hours', ['business_id'])

    # 2. Staff
    op.create_table(
        'staff',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_staff_business_id', 'staff', ['business_id'])

    # 3. Date overrides
    op.create_table(
        'availability_overrides',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=True),
        sa.Column('end_time', sa.String(5), nullable=True),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('business_id', 'date', name='uq_availability_override_date'),
    )
    op.create_index('ix_availability_overrides_business_id', 'availability_overrides', ['business_id'])

    op.create_table(
        'staff_availability_overrides',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('staff_id', sa.String(36), sa.ForeignKey('staff.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=True),
        sa.Column('end_time', sa.String(5), nullable=True),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('staff_id', 'date', name='uq_staff_override_date'),
    )
    op.create_index('ix_staff_availability_overrides_staff_id', 'staff_availability_overrides', ['staff_id'])
    op.create_index('ix_staff_availability_overrides_business_id', 'staff_availability_overrides', ['business_id'])

    # 4. Blocked periods (one-off or recurring templates)
    op.create_table(
        'blocked_periods',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('staff_id', sa.String(36), sa.ForeignKey('staff.id', ondelete='CASCADE'), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('recurrence_pattern', sa.String(10), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('idx_blocked_periods_business_date', 'blocked_periods', ['business_id', 'date'])
    op.create_index('ix_blocked_periods_staff_id', 'blocked_periods', ['staff_id'])

    # 5. Appointments
    op.create_table(
        'appointments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('business_id', sa.String(36), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('staff_id', sa.String(36), sa.ForeignKey('staff.id'), nullable=True),
        sa.Column('customer_id', sa.String(64), nullable=True),
        sa.Column('service_type', sa.String(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('reschedule_history', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
    )
    op.create_index('idx_appointments_business_date', 'appointments', ['business_id', 'date'])
    op.create_index('idx_appointments_staff_date', 'appointments', ['staff_id', 'date'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_appointments_staff_date', table_name='appointments')
    op.drop_index('idx_appointments_business_date', table_name='appointments')
    op.drop_table('appointments')

    op.drop_index('ix_blocked_periods_staff_id', table_name='blocked_periods')
    op.drop_index('idx_blocked_periods_business_date', table_name='blocked_periods')
    op.drop_table('blocked_periods')

    op.drop_index('ix_staff_availability_overrides_business_id', table_name='staff_availability_overrides')
    op.drop_index('ix_staff_availability_overrides_staff_id', table_name='staff_availability_overrides')
    op.drop_table('staff_availability_overrides')

    op.drop_index('ix_availability_overrides_business_id', table_name='availability_overrides')
    op.drop_table('availability_overrides')

    op.drop_index('ix_staff_business_id', table_name='staff')
    op.drop_table('staff')

    op.drop_index('ix_business_hours_business_id', table_name='business_hours')
    op.drop_table('business_hours')

    op.drop_table('businesses')
