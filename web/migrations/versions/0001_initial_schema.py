"""Users, tours and bookings in both stored shapes

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-09-28 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(128), nullable=True, unique=True),
        sa.Column('name', sa.String(128), nullable=True),
        sa.Column('role', sa.String(16), nullable=False, server_default='user'),
        sa.Column('created', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'tours',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('max_group_size', sa.Integer(), nullable=False,
                  comment='Participants accepted per calendar day'),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('currency', sa.String(3), nullable=True),
        sa.Column('created', sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        # checkout shape
        sa.Column('stripe_session_id', sa.String(255), nullable=True, unique=True),
        sa.Column('payment_intent_id', sa.String(255), nullable=True),
        sa.Column('email', sa.String(128), nullable=True),
        sa.Column('customer_name', sa.String(128), nullable=True),
        sa.Column('customer_phone', sa.String(32), nullable=True),
        sa.Column('item_id', sa.String(64), nullable=True),
        sa.Column('item_name', sa.String(200), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('date', sa.String(10), nullable=True, comment='YYYY-MM-DD'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='usd'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('source', sa.String(16), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        # legacy shape
        sa.Column('tour_id', sa.Integer(), sa.ForeignKey('tours.id'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('participants', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_bookings_payment_intent_id', 'bookings', ['payment_intent_id'])
    op.create_index('ix_bookings_email', 'bookings', ['email'])
    op.create_index('ix_bookings_item_id', 'bookings', ['item_id'])
    op.create_index('ix_booking_tour_start', 'bookings', ['tour_id', 'start_date'])
    op.create_index('ix_booking_item_date', 'bookings', ['item_id', 'date'])


def downgrade() -> None:
    op.drop_index('ix_booking_item_date', table_name='bookings')
    op.drop_index('ix_booking_tour_start', table_name='bookings')
    op.drop_index('ix_bookings_item_id', table_name='bookings')
    op.drop_index('ix_bookings_email', table_name='bookings')
    op.drop_index('ix_bookings_payment_intent_id', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('tours')
    op.drop_table('users')
