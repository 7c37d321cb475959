"""Per-day admission slots

Revision ID: 0002_tour_date_slots
Revises: 0001_initial_schema
Create Date: 2026-10-05 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import select, Column, Integer, String, DateTime


# revision identifiers, used by Alembic.
revision = '0002_tour_date_slots'
down_revision = '0001_initial_schema'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Upgrade operations:
    1. Create tour_date_slots
    2. Pre-create a slot for every checkout-shaped (tour, day) already booked
    """
    op.create_table(
        'tour_date_slots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tour_id', sa.Integer(), sa.ForeignKey('tours.id'), nullable=False),
        sa.Column('date_key', sa.String(10), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('tour_id', 'date_key', name='uix_tour_date_slot'),
    )

    connection = op.get_bind()
    bookings = sa.Table(
        'bookings',
        sa.MetaData(),
        Column('id', Integer, primary_key=True),
        Column('tour_id', Integer),
        Column('date', String),
        Column('start_date', DateTime),
    )
    slots = sa.Table(
        'tour_date_slots',
        sa.MetaData(),
        Column('id', Integer, primary_key=True),
        Column('tour_id', Integer),
        Column('date_key', String),
        Column('version', Integer),
    )

    # Slots are created lazily too; this only avoids a burst of inserts after deploy
    pairs = connection.execute(
        select(bookings.c.tour_id, bookings.c.date)
        .where(bookings.c.tour_id.is_not(None), bookings.c.date.is_not(None), bookings.c.date != '')
        .group_by(bookings.c.tour_id, bookings.c.date)
    ).fetchall()
    for tour_id, date_key in pairs:
        connection.execute(slots.insert().values(tour_id=tour_id, date_key=date_key, version=0))


def downgrade() -> None:
    op.drop_table('tour_date_slots')
