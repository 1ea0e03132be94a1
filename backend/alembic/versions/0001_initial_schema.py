"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('role', sa.String(length=8), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_audit_columns(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'travel_packages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('agent_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('destination', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quota', sa.Integer(), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=True),
        *_audit_columns(),
        sa.CheckConstraint('quota >= 0', name='ck_travel_packages_quota_non_negative'),
    )
    op.create_index('ix_travel_packages_id', 'travel_packages', ['id'])
    op.create_index('ix_travel_packages_agent_id', 'travel_packages', ['agent_id'])

    op.create_table(
        'hotels',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('agent_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('city', sa.String(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('price_per_night', sa.Numeric(12, 2), nullable=False),
        sa.Column('star_rating', sa.Integer(), nullable=True),
        *_audit_columns(),
    )
    op.create_index('ix_hotels_id', 'hotels', ['id'])
    op.create_index('ix_hotels_agent_id', 'hotels', ['agent_id'])

    op.create_table(
        'flights',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('agent_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('airline_name', sa.String(), nullable=False),
        sa.Column('flight_number', sa.String(), nullable=False),
        sa.Column('origin', sa.String(), nullable=False),
        sa.Column('destination', sa.String(), nullable=False),
        sa.Column('departure_time', sa.DateTime(), nullable=True),
        sa.Column('arrival_time', sa.DateTime(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        *_audit_columns(),
    )
    op.create_index('ix_flights_id', 'flights', ['id'])
    op.create_index('ix_flights_agent_id', 'flights', ['agent_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('travel_packages.id'), nullable=True),
        sa.Column('type', sa.String(length=7), nullable=False),
        sa.Column('travel_date', sa.DateTime(), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(length=11), nullable=False),
        sa.Column('payment_status', sa.String(length=6), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancellation_reason', sa.String(), nullable=True),
        *_audit_columns(),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'])
    op.create_index('ix_bookings_package_id', 'bookings', ['package_id'])
    op.create_index('ix_bookings_travel_date', 'bookings', ['travel_date'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index('ix_bookings_payment_status', 'bookings', ['payment_status'])

    op.create_table(
        'booking_hotels',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('hotel_id', sa.Integer(), sa.ForeignKey('hotels.id'), nullable=False),
        sa.Column('check_in_date', sa.DateTime(), nullable=False),
        sa.Column('check_out_date', sa.DateTime(), nullable=False),
        sa.Column('nights', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        *_audit_columns(),
    )
    op.create_index('ix_booking_hotels_id', 'booking_hotels', ['id'])
    op.create_index('ix_booking_hotels_booking_id', 'booking_hotels', ['booking_id'])
    op.create_index('ix_booking_hotels_hotel_id', 'booking_hotels', ['hotel_id'])

    op.create_table(
        'booking_flights',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('flight_id', sa.Integer(), sa.ForeignKey('flights.id'), nullable=False),
        sa.Column('passenger_name', sa.String(), nullable=False),
        sa.Column('seat_class', sa.String(length=15), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        *_audit_columns(),
    )
    op.create_index('ix_booking_flights_id', 'booking_flights', ['id'])
    op.create_index('ix_booking_flights_booking_id', 'booking_flights', ['booking_id'])
    op.create_index('ix_booking_flights_flight_id', 'booking_flights', ['flight_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_id', sa.String(), nullable=False),
        sa.Column('method', sa.String(length=15), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('proof_url', sa.String(), nullable=True),
        sa.Column('payment_date', sa.DateTime(), nullable=True),
        sa.Column('transaction_status', sa.String(), nullable=True),
        sa.Column('transaction_id', sa.String(), nullable=True),
        sa.Column('payment_type', sa.String(), nullable=True),
        sa.Column('snap_token', sa.String(), nullable=True),
        sa.Column('redirect_url', sa.String(), nullable=True),
        *_audit_columns(),
    )
    op.create_index('ix_payments_id', 'payments', ['id'])
    op.create_index('ix_payments_booking_id', 'payments', ['booking_id'])
    op.create_index('ix_payments_order_id', 'payments', ['order_id'], unique=True)

    op.create_table(
        'reschedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('requested_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=8), nullable=False),
        sa.Column('previous_booking_status', sa.String(length=11), nullable=False),
        sa.Column('resolved_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        *_audit_columns(),
    )
    op.create_index('ix_reschedules_id', 'reschedules', ['id'])
    op.create_index('ix_reschedules_booking_id', 'reschedules', ['booking_id'])
    op.create_index('ix_reschedules_status', 'reschedules', ['status'])

    op.create_table(
        'refunds',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('original_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('reason', sa.String(), nullable=False),
        sa.Column('status', sa.String(length=8), nullable=False),
        sa.Column('processed_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('refund_method', sa.String(length=16), nullable=True),
        sa.Column('refund_proof', sa.String(), nullable=True),
        sa.Column('gateway_refund_key', sa.String(), nullable=True),
        *_audit_columns(),
        sa.UniqueConstraint('booking_id', name='uq_refunds_booking_once'),
    )
    op.create_index('ix_refunds_id', 'refunds', ['id'])
    op.create_index('ix_refunds_user_id', 'refunds', ['user_id'])
    op.create_index('ix_refunds_status', 'refunds', ['status'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(length=7), nullable=False),
        sa.Column('event', sa.String(), nullable=False),
        sa.Column('message', sa.String(), nullable=False),
        sa.Column('link', sa.String(), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_audit_columns(),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('refunds')
    op.drop_table('reschedules')
    op.drop_table('payments')
    op.drop_table('booking_flights')
    op.drop_table('booking_hotels')
    op.drop_table('bookings')
    op.drop_table('flights')
    op.drop_table('hotels')
    op.drop_table('travel_packages')
    op.drop_table('users')
