"""create auction_state, lot and participant tables

Revision ID: 4c7a9e1d2b3f
Revises:
Create Date: 2026-10-18 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7a9e1d2b3f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'auction_state' not in existing_tables:
        op.create_table(
            'auction_state',
            sa.Column('room_id', sa.String(length=64), primary_key=True),
            sa.Column('time_remaining', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('is_paused', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('player_queue', sa.Text(), nullable=True),
            sa.Column('total_players', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('current_lot_index', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('updated_at', sa.Float(), nullable=False),
        )

    if 'lot' not in existing_tables:
        op.create_table(
            'lot',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('nationality', sa.String(length=64), nullable=True),
            sa.Column('category', sa.String(length=32), nullable=True),
            sa.Column('base_price', sa.BigInteger(), nullable=False),
            sa.Column('specialization', sa.String(length=128), nullable=True),
            sa.Column('is_overseas', sa.Boolean(), nullable=False, server_default=sa.false()),
        )

    if 'participant' not in existing_tables:
        op.create_table(
            'participant',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('room_id', sa.String(length=64), sa.ForeignKey('auction_state.room_id'), nullable=False),
            sa.Column('user_id', sa.String(length=64), nullable=False),
            sa.Column('user_name', sa.String(length=64), nullable=False),
            sa.Column('team_id', sa.String(length=16), nullable=True),
            sa.Column('is_auctioneer', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('joined_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_participant_room_id', 'participant', ['room_id'])


def downgrade():
    op.drop_index('ix_participant_room_id', table_name='participant')
    op.drop_table('participant')
    op.drop_table('lot')
    op.drop_table('auction_state')
