"""create organization billing tables

Revision ID: 0001a7c3e9b2
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001a7c3e9b2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS citext')

    # Accounts and tenants
    op.create_table('user_accounts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', postgresql.CITEXT(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_user_accounts_id', 'user_accounts', ['id'])
    op.create_index('ix_user_accounts_email', 'user_accounts', ['email'], unique=True)

    op.create_table('organizations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('billing_email', postgresql.CITEXT(), nullable=False),
        sa.Column('stripe_customer_id', sa.String(length=100), nullable=True),
        sa.Column('trial_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_organizations_id', 'organizations', ['id'])
    op.create_index('ix_organizations_slug', 'organizations', ['slug'], unique=True)
    op.create_index('ix_organizations_stripe_customer_id', 'organizations', ['stripe_customer_id'], unique=True)

    op.create_table('organization_memberships',
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('member_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['member_id'], ['user_accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('organization_id', 'member_id')
    )
    op.create_index('ix_organization_memberships_member_id', 'organization_memberships', ['member_id'])

    # Stripe catalog
    op.create_table('stripe_products',
        sa.Column('stripe_id', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('max_seats', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('stripe_id')
    )

    op.create_table('stripe_prices',
        sa.Column('stripe_id', sa.String(length=100), nullable=False),
        sa.Column('lookup_key', sa.String(length=100), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=False),
        sa.Column('unit_amount', sa.Integer(), nullable=False),
        sa.Column('interval', sa.String(length=10), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('product_id', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['stripe_products.stripe_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('stripe_id')
    )
    op.create_index('ix_stripe_prices_lookup_key', 'stripe_prices', ['lookup_key'], unique=True)
    op.create_index('ix_stripe_prices_product_id', 'stripe_prices', ['product_id'])

    # Subscriptions
    op.create_table('stripe_subscriptions',
        sa.Column('stripe_id', sa.String(length=100), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('purchased_by_id', sa.UUID(), nullable=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['purchased_by_id'], ['user_accounts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('stripe_id')
    )
    op.create_index('ix_stripe_subscriptions_organization_id', 'stripe_subscriptions', ['organization_id'])
    op.create_index('ix_stripe_subscriptions_purchased_by_id', 'stripe_subscriptions', ['purchased_by_id'])
    op.create_index('ix_stripe_subscriptions_created', 'stripe_subscriptions', ['created'])

    op.create_table('stripe_subscription_items',
        sa.Column('stripe_id', sa.String(length=100), nullable=False),
        sa.Column('stripe_subscription_id', sa.String(length=100), nullable=False),
        sa.Column('price_id', sa.String(length=100), nullable=False),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['stripe_subscription_id'], ['stripe_subscriptions.stripe_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['price_id'], ['stripe_prices.stripe_id']),
        sa.PrimaryKeyConstraint('stripe_id')
    )
    op.create_index('ix_stripe_subscription_items_stripe_subscription_id', 'stripe_subscription_items', ['stripe_subscription_id'])
    op.create_index('ix_stripe_subscription_items_price_id', 'stripe_subscription_items', ['price_id'])

    # Schedules
    op.create_table('stripe_subscription_schedules',
        sa.Column('stripe_id', sa.String(length=100), nullable=False),
        sa.Column('subscription_id', sa.String(length=100), nullable=False),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('current_phase_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_phase_end', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['subscription_id'], ['stripe_subscriptions.stripe_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('stripe_id'),
        sa.UniqueConstraint('subscription_id', name='uq_stripe_subscription_schedules_subscription_id')
    )

    op.create_table('stripe_subscription_schedule_phases',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('schedule_id', sa.String(length=100), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('price_id', sa.String(length=100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['schedule_id'], ['stripe_subscription_schedules.stripe_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['price_id'], ['stripe_prices.stripe_id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stripe_subscription_schedule_phases_schedule_id', 'stripe_subscription_schedule_phases', ['schedule_id'])


def downgrade() -> None:
    op.drop_index('ix_stripe_subscription_schedule_phases_schedule_id', table_name='stripe_subscription_schedule_phases')
    op.drop_table('stripe_subscription_schedule_phases')
    op.drop_table('stripe_subscription_schedules')
    op.drop_index('ix_stripe_subscription_items_price_id', table_name='stripe_subscription_items')
    op.drop_index('ix_stripe_subscription_items_stripe_subscription_id', table_name='stripe_subscription_items')
    op.drop_table('stripe_subscription_items')
    op.drop_index('ix_stripe_subscriptions_created', table_name='stripe_subscriptions')
    op.drop_index('ix_stripe_subscriptions_purchased_by_id', table_name='stripe_subscriptions')
    op.drop_index('ix_stripe_subscriptions_organization_id', table_name='stripe_subscriptions')
    op.drop_table('stripe_subscriptions')
    op.drop_index('ix_stripe_prices_product_id', table_name='stripe_prices')
    op.drop_index('ix_stripe_prices_lookup_key', table_name='stripe_prices')
    op.drop_table('stripe_prices')
    op.drop_table('stripe_products')
    op.drop_index('ix_organization_memberships_member_id', table_name='organization_memberships')
    op.drop_table('organization_memberships')
    op.drop_index('ix_organizations_stripe_customer_id', table_name='organizations')
    op.drop_index('ix_organizations_slug', table_name='organizations')
    op.drop_index('ix_organizations_id', table_name='organizations')
    op.drop_table('organizations')
    op.drop_index('ix_user_accounts_email', table_name='user_accounts')
    op.drop_index('ix_user_accounts_id', table_name='user_accounts')
    op.drop_table('user_accounts')
