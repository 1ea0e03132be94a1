"""reviews and testimonials

Revision ID: 0002_reviews_testimonials
Revises: 0001_initial_schema
Create Date: 2026-10-18 12:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '0002_reviews_testimonials'
down_revision: Union[str, None] = '0001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('travel_packages.id', ondelete='CASCADE'), nullable=True),
        sa.Column('hotel_id', sa.Integer(), sa.ForeignKey('hotels.id', ondelete='CASCADE'), nullable=True),
        sa.Column('flight_id', sa.Integer(), sa.ForeignKey('flights.id', ondelete='CASCADE'), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating_range'),
        sa.CheckConstraint(
            '(CASE WHEN package_id IS NULL THEN 0 ELSE 1 END)'
            ' + (CASE WHEN hotel_id IS NULL THEN 0 ELSE 1 END)'
            ' + (CASE WHEN flight_id IS NULL THEN 0 ELSE 1 END) = 1',
            name='ck_reviews_single_target',
        ),
        sa.UniqueConstraint('user_id', 'package_id', name='uq_reviews_user_package'),
        sa.UniqueConstraint('user_id', 'hotel_id', name='uq_reviews_user_hotel'),
        sa.UniqueConstraint('user_id', 'flight_id', name='uq_reviews_user_flight'),
    )
    op.create_index('ix_reviews_id', 'reviews', ['id'])
    op.create_index('ix_reviews_user_id', 'reviews', ['user_id'])
    op.create_index('ix_reviews_package_id', 'reviews', ['package_id'])
    op.create_index('ix_reviews_hotel_id', 'reviews', ['hotel_id'])
    op.create_index('ix_reviews_flight_id', 'reviews', ['flight_id'])

    op.create_table(
        'testimonials',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_testimonials_id', 'testimonials', ['id'])
    op.create_index('ix_testimonials_user_id', 'testimonials', ['user_id'])


def downgrade() -> None:
    op.drop_table('testimonials')
    op.drop_table('reviews')
