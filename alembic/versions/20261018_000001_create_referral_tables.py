"""Create referral, advertiser team and coupon tables.

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

Initial schema: users, referral codes/tiers/attributions/commissions,
affiliate clicks, advertiser accounts with team members and invitations,
coupons and coupon usage.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.DECIMAL(precision=18, scale=2)
RATE = sa.DECIMAL(precision=6, scale=4)


def _created_at() -> sa.Column:
    return sa.Column(
        'created_at',
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text('now()')
    )


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'referral_tiers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tier_level', sa.Integer(), nullable=False),
        sa.Column('tier_name', sa.String(length=50), nullable=False),
        sa.Column(
            'min_referrals', sa.Integer(), nullable=False, server_default='0'
        ),
        sa.Column('commission_rate', RATE, nullable=False),
        sa.Column('bonus_rate', RATE, nullable=True),
        sa.Column('badge_icon', sa.String(length=16), nullable=True),
        sa.Column('badge_color', sa.String(length=16), nullable=True),
        sa.Column(
            'is_active', sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tier_level')
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=255), nullable=True),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('profile_image', sa.String(length=512), nullable=True),
        sa.Column('usd_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('gems_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('points_balance', MONEY, nullable=False, server_default='0'),
        sa.Column('gold_balance', MONEY, nullable=False, server_default='0'),
        sa.Column(
            'drops_completed',
            sa.Integer(),
            nullable=False,
            server_default='0',
            comment='Completed drops (tasks), used by the activation gate'
        ),
        sa.Column('referred_by_id', sa.Integer(), nullable=True),
        sa.Column('primary_referral_code', sa.String(length=32), nullable=True),
        sa.Column(
            'referral_tier_id',
            sa.Integer(),
            nullable=True,
            comment='Recomputed by the tier evaluator, never written directly'
        ),
        sa.Column(
            'total_referrals', sa.Integer(), nullable=False, server_default='0'
        ),
        sa.Column(
            'active_referrals', sa.Integer(), nullable=False, server_default='0'
        ),
        sa.Column(
            'referral_earnings_usd', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'referral_earnings_gems', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'referral_earnings_points', MONEY, nullable=False, server_default='0'
        ),
        _created_at(),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.ForeignKeyConstraint(
            ['referred_by_id'], ['users.id'], ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['referral_tier_id'], ['referral_tiers.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'usd_balance >= 0', name='check_user_usd_balance_non_negative'
        ),
        sa.CheckConstraint(
            'gems_balance >= 0', name='check_user_gems_balance_non_negative'
        ),
        sa.CheckConstraint(
            'points_balance >= 0',
            name='check_user_points_balance_non_negative'
        ),
        sa.CheckConstraint(
            'gold_balance >= 0', name='check_user_gold_balance_non_negative'
        )
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_referred_by_id', 'users', ['referred_by_id'])

    op.create_table(
        'referral_codes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column(
            'is_active', sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('uses_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_referral_codes_code', 'referral_codes', ['code'], unique=True
    )
    op.create_index('ix_referral_codes_user_id', 'referral_codes', ['user_id'])
    op.create_index(
        'idx_referral_codes_user_active',
        'referral_codes',
        ['user_id', 'is_active']
    )

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_id', sa.Integer(), nullable=False),
        sa.Column('referral_code_id', sa.Integer(), nullable=True),
        sa.Column('referral_code', sa.String(length=32), nullable=True),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            server_default='pending',
            comment='pending, active'
        ),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'signup_metadata', sa.JSON(), nullable=False, server_default='{}'
        ),
        sa.Column(
            'total_commission_paid', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'total_gems_earned', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'total_points_earned', MONEY, nullable=False, server_default='0'
        ),
        _created_at(),
        sa.ForeignKeyConstraint(
            ['referrer_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['referred_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['referral_code_id'], ['referral_codes.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referred_id')
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_status', 'referrals', ['status'])

    op.create_table(
        'referral_commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referral_id', sa.Integer(), nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_user_id', sa.Integer(), nullable=False),
        sa.Column('earning_type', sa.String(length=50), nullable=False),
        sa.Column('earning_amount', MONEY, nullable=False),
        sa.Column('earning_currency', sa.String(length=20), nullable=False),
        sa.Column('commission_rate', RATE, nullable=False),
        sa.Column('commission_amount', MONEY, nullable=False),
        sa.Column('commission_currency', sa.String(length=20), nullable=False),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            server_default='pending',
            comment='pending, paid, failed'
        ),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column(
            'source_transaction_id', sa.String(length=255), nullable=True
        ),
        sa.Column('source_table', sa.String(length=100), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False, server_default='{}'),
        _created_at(),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ['referral_id'], ['referrals.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['referrer_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['referred_user_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'source_table',
            'source_transaction_id',
            name='uq_referral_commissions_source'
        )
    )
    op.create_index(
        'ix_referral_commissions_referral_id',
        'referral_commissions',
        ['referral_id']
    )
    op.create_index(
        'ix_referral_commissions_referred_user_id',
        'referral_commissions',
        ['referred_user_id']
    )
    op.create_index(
        'idx_referral_commissions_referrer_status',
        'referral_commissions',
        ['referrer_id', 'status']
    )
    op.create_index(
        'idx_referral_commissions_status_created',
        'referral_commissions',
        ['status', 'created_at']
    )

    op.create_table(
        'affiliate_clicks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=255), nullable=True),
        sa.Column('store_id', sa.String(length=255), nullable=True),
        sa.Column('target_url', sa.String(length=2048), nullable=True),
        sa.Column('ip_hash', sa.String(length=16), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ['affiliate_user_id'], ['users.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_affiliate_clicks_affiliate_user_id',
        'affiliate_clicks',
        ['affiliate_user_id']
    )

    op.create_table(
        'advertiser_accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('website_url', sa.String(length=512), nullable=True),
        sa.Column('industry', sa.String(length=100), nullable=True),
        sa.Column('logo_url', sa.String(length=512), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ['created_by'], ['users.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_advertiser_accounts_slug',
        'advertiser_accounts',
        ['slug'],
        unique=True
    )

    op.create_table(
        'advertiser_team_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('advertiser_account_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column(
            'role',
            sa.String(length=20),
            nullable=False,
            server_default='viewer',
            comment='owner, admin, manager, viewer'
        ),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            server_default='pending',
            comment='pending, active, revoked'
        ),
        sa.Column('invited_by', sa.Integer(), nullable=True),
        sa.Column('invited_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_active_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ['advertiser_account_id'],
            ['advertiser_accounts.id'],
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(
            ['invited_by'], ['users.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'advertiser_account_id',
            'user_id',
            name='uq_team_members_account_user'
        )
    )
    op.create_index(
        'ix_advertiser_team_members_advertiser_account_id',
        'advertiser_team_members',
        ['advertiser_account_id']
    )
    op.create_index(
        'ix_advertiser_team_members_user_id',
        'advertiser_team_members',
        ['user_id']
    )

    op.create_table(
        'advertiser_invitations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('advertiser_account_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('token', sa.String(length=128), nullable=False),
        sa.Column('invited_by', sa.Integer(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('accepted_by', sa.Integer(), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ['advertiser_account_id'],
            ['advertiser_accounts.id'],
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['invited_by'], ['users.id'], ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['accepted_by'], ['users.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_advertiser_invitations_token',
        'advertiser_invitations',
        ['token'],
        unique=True
    )
    op.create_index(
        'idx_invitations_account_email',
        'advertiser_invitations',
        ['advertiser_account_id', 'email']
    )

    op.create_table(
        'coupons',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('campaign_id', sa.Integer(), nullable=True),
        sa.Column('drop_id', sa.Integer(), nullable=True),
        sa.Column(
            'discount_type',
            sa.String(length=20),
            nullable=False,
            comment='percentage, fixed_usd, fixed_gems, fixed_gold, free_shipping'
        ),
        sa.Column(
            'discount_value',
            sa.DECIMAL(precision=12, scale=2),
            nullable=False
        ),
        sa.Column('max_discount_usd', MONEY, nullable=True),
        sa.Column('min_purchase_usd', MONEY, nullable=True),
        sa.Column('min_purchase_gems', MONEY, nullable=True),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('max_uses_per_user', sa.Integer(), nullable=True),
        sa.Column(
            'current_uses', sa.Integer(), nullable=False, server_default='0'
        ),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'is_active', sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        _created_at(),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.ForeignKeyConstraint(
            ['created_by'], ['users.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_coupons_code', 'coupons', ['code'], unique=True)
    op.create_index('ix_coupons_campaign_id', 'coupons', ['campaign_id'])
    op.create_index('ix_coupons_drop_id', 'coupons', ['drop_id'])

    op.create_table(
        'coupon_usage',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('coupon_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=255), nullable=True),
        sa.Column(
            'discount_amount_usd', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'discount_amount_gems', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'discount_amount_gold', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'original_total_usd', MONEY, nullable=False, server_default='0'
        ),
        sa.Column('final_total_usd', MONEY, nullable=False, server_default='0'),
        sa.Column(
            'used_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.ForeignKeyConstraint(
            ['coupon_id'], ['coupons.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'idx_coupon_usage_coupon_user',
        'coupon_usage',
        ['coupon_id', 'user_id']
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('idx_coupon_usage_coupon_user', table_name='coupon_usage')
    op.drop_table('coupon_usage')

    op.drop_index('ix_coupons_drop_id', table_name='coupons')
    op.drop_index('ix_coupons_campaign_id', table_name='coupons')
    op.drop_index('ix_coupons_code', table_name='coupons')
    op.drop_table('coupons')

    op.drop_index(
        'idx_invitations_account_email', table_name='advertiser_invitations'
    )
    op.drop_index(
        'ix_advertiser_invitations_token', table_name='advertiser_invitations'
    )
    op.drop_table('advertiser_invitations')

    op.drop_index(
        'ix_advertiser_team_members_user_id',
        table_name='advertiser_team_members'
    )
    op.drop_index(
        'ix_advertiser_team_members_advertiser_account_id',
        table_name='advertiser_team_members'
    )
    op.drop_table('advertiser_team_members')

    op.drop_index(
        'ix_advertiser_accounts_slug', table_name='advertiser_accounts'
    )
    op.drop_table('advertiser_accounts')

    op.drop_index(
        'ix_affiliate_clicks_affiliate_user_id', table_name='affiliate_clicks'
    )
    op.drop_table('affiliate_clicks')

    op.drop_index(
        'idx_referral_commissions_status_created',
        table_name='referral_commissions'
    )
    op.drop_index(
        'idx_referral_commissions_referrer_status',
        table_name='referral_commissions'
    )
    op.drop_index(
        'ix_referral_commissions_referred_user_id',
        table_name='referral_commissions'
    )
    op.drop_index(
        'ix_referral_commissions_referral_id',
        table_name='referral_commissions'
    )
    op.drop_table('referral_commissions')

    op.drop_index('ix_referrals_status', table_name='referrals')
    op.drop_index('ix_referrals_referrer_id', table_name='referrals')
    op.drop_table('referrals')

    op.drop_index('idx_referral_codes_user_active', table_name='referral_codes')
    op.drop_index('ix_referral_codes_user_id', table_name='referral_codes')
    op.drop_index('ix_referral_codes_code', table_name='referral_codes')
    op.drop_table('referral_codes')

    op.drop_index('ix_users_referred_by_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')

    op.drop_table('referral_tiers')
