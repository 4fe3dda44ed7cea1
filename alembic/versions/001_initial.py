"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create tenants table
    op.create_table(
        'tenants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('timezone', sa.String(50), default='Europe/Madrid'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE')),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255)),
        sa.Column('role', sa.Enum('SUPER_ADMIN', 'RESTAURANT_ADMIN', 'STAFF', name='userrole')),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create tenant_settings table (key/value policy)
    op.create_table(
        'tenant_settings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('tenant_id', 'key', name='uq_tenant_settings_key'),
    )

    # Create closed_dates table
    op.create_table(
        'closed_dates',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(255)),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.UniqueConstraint('tenant_id', 'date', name='uq_closed_dates_date'),
    )

    # Create zones table
    op.create_table(
        'zones',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('name_es', sa.String(255)),
        sa.Column('name_en', sa.String(255)),
        sa.Column('description', sa.Text()),
        sa.Column('capacity', sa.Integer()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create dining_tables table
    op.create_table(
        'dining_tables',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('zone_id', sa.Integer(), sa.ForeignKey('zones.id', ondelete='CASCADE'), nullable=False),
        sa.Column('table_number', sa.String(20), nullable=False),
        sa.Column('min_pax', sa.Integer(), nullable=False, default=1),
        sa.Column('max_pax', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.CheckConstraint('min_pax >= 1', name='ck_dining_tables_min_pax'),
        sa.CheckConstraint('min_pax <= max_pax', name='ck_dining_tables_pax_range'),
        sa.UniqueConstraint('zone_id', 'table_number', name='uq_dining_tables_number'),
    )

    # Create bookings table
    op.create_table(
        'bookings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('token', postgresql.UUID(as_uuid=True), unique=True, nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('turn', sa.String(10), nullable=False),
        sa.Column('time', sa.String(5), nullable=False),
        sa.Column('pax', sa.Integer(), nullable=False),
        sa.Column('zone_id', sa.Integer(), sa.ForeignKey('zones.id', ondelete='SET NULL')),
        sa.Column('assigned_table_id', sa.Integer()),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_email', sa.String(255)),
        sa.Column('customer_phone', sa.String(30)),
        sa.Column('comments', sa.Text()),
        sa.Column('status', sa.String(30), nullable=False, default='confirmed'),
        sa.Column('deposit_amount', sa.Numeric(10, 2), nullable=False, default=0),
        sa.Column('payment_id', sa.String(255)),
        sa.Column('payment_requested_at', sa.DateTime()),
        sa.Column('consumes_capacity', sa.Boolean(), default=True),
        sa.Column('is_manual', sa.Boolean(), default=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.CheckConstraint('pax >= 1', name='ck_bookings_pax'),
        sa.CheckConstraint('deposit_amount >= 0', name='ck_bookings_deposit'),
    )

    # Create indexes
    op.create_index('ix_zones_tenant_id', 'zones', ['tenant_id'])
    op.create_index('ix_dining_tables_tenant_id', 'dining_tables', ['tenant_id'])
    op.create_index('ix_dining_tables_zone_id', 'dining_tables', ['zone_id'])
    op.create_index('ix_bookings_service', 'bookings', ['tenant_id', 'booking_date', 'turn'])

    # At most one occupying booking per table and service
    op.create_index(
        'uq_bookings_table_occupancy',
        'bookings',
        ['tenant_id', 'booking_date', 'turn', 'assigned_table_id'],
        unique=True,
        postgresql_where=sa.text(
            "assigned_table_id IS NOT NULL "
            "AND status NOT IN ('cancelled', 'waiting_list') "
            "AND consumes_capacity IS NOT false"
        ),
    )


def downgrade() -> None:
    op.drop_index('uq_bookings_table_occupancy', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('dining_tables')
    op.drop_table('zones')
    op.drop_table('closed_dates')
    op.drop_table('tenant_settings')
    op.drop_table('users')
    op.drop_table('tenants')
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
