"""create users, meow_daily_claims and meow_claims

Revision ID: 0001_meow_claim_ledger
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '0001_meow_claim_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('telegram_id', sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('points', sa.Integer, server_default='100', nullable=False),
        sa.Column('daily_streak', sa.Integer, server_default='0', nullable=False),
        sa.Column('longest_streak', sa.Integer, server_default='0', nullable=False),
        sa.Column('last_login_date', sa.Date, nullable=True, comment='Tashkent day of the last streak claim'),
        sa.Column('streak_claimed_today', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('meow_taps', sa.Integer, server_default='0', nullable=False),
        sa.Column('meow_taps_date', sa.Date, nullable=True, comment='Tashkent day meow_taps belongs to'),
        sa.Column('meow_claim_used_today', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('meow_taps >= 0', name='ck_users_meow_taps_non_negative'),
    )

    op.create_table(
        'meow_daily_claims',
        sa.Column('day', sa.Date, primary_key=True),
        sa.Column('claims_taken', sa.Integer, server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('claims_taken >= 0', name='ck_meow_daily_claims_taken_non_negative'),
    )

    op.create_table(
        'meow_claims',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            'user_id',
            sa.BigInteger,
            sa.ForeignKey('users.telegram_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('day', sa.Date, nullable=False),
        sa.Column('consumed', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # One claim per user per day
    op.create_unique_constraint('ux_meow_claims_user_day', 'meow_claims', ['user_id', 'day'])
    op.create_index('idx_meow_claims_day', 'meow_claims', ['day'])


def downgrade() -> None:
    op.drop_index('idx_meow_claims_day')
    op.drop_constraint('ux_meow_claims_user_day', 'meow_claims')
    op.drop_table('meow_claims')
    op.drop_table('meow_daily_claims')
    op.drop_table('users')
