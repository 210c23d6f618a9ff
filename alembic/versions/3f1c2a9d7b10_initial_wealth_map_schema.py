"""initial_wealth_map_schema

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 11:40:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    """
    Create the Wealth Map schema.

    Creates:
    - companies (tenant + data-access policy columns)
    - users, invitations, activity_logs (tenant-owned)
    - properties, owners, property_ownerships, property_transactions (reference data)
    - bookmarks, saved_searches (per user)

    The partial unique index on invitations allows at most one pending
    invitation per (email, company_id).
    """
    # 1. Companies
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('logo', sa.String(length=512), nullable=True),
        sa.Column('street', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('zip_code', sa.String(length=20), nullable=True),
        sa.Column('country', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('website', sa.String(length=255), nullable=True),
        sa.Column('industry', sa.String(length=100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('admin_user_id', sa.Integer(), nullable=True),
        sa.Column('allowed_property_types', sa.JSON(), nullable=False),
        sa.Column('wealth_data_access', sa.Boolean(), nullable=False),
        sa.Column('ownership_history_access', sa.Boolean(), nullable=False),
        sa.Column('export_enabled', sa.Boolean(), nullable=False),
        sa.Column('max_exports_per_month', sa.Integer(), nullable=False),
        sa.Column('min_value_threshold', sa.Float(), nullable=True),
        sa.Column('max_value_threshold', sa.Float(), nullable=True),
        sa.Column('geographic_restrictions', sa.JSON(), nullable=True),
        sa.Column('invitation_expire_days', sa.Integer(), nullable=False),
        sa.Column('require_mfa', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_companies_slug', 'companies', ['slug'], unique=True)

    # 2. Users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('role', sa.String(length=7), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('permission_overrides', sa.JSON(), nullable=False),
        sa.Column('mfa_enabled', sa.Boolean(), nullable=False),
        sa.Column('mfa_secret', sa.String(length=64), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('last_active_at', sa.DateTime(), nullable=True),
        sa.Column('password_changed_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_terms', sa.Boolean(), nullable=False),
        sa.Column('completed_onboarding', sa.Boolean(), nullable=False),
        sa.Column('notify_email', sa.Boolean(), nullable=False),
        sa.Column('notify_in_app', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_company_id', 'users', ['company_id'])

    # 3. Invitations
    op.create_table(
        'invitations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('invited_by_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=7), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=8), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('resend_count', sa.Integer(), nullable=False),
        sa.Column('last_resent_at', sa.DateTime(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invited_by_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_invitations_email', 'invitations', ['email'])
    op.create_index('ix_invitations_company_id', 'invitations', ['company_id'])
    op.create_index('ix_invitations_token', 'invitations', ['token'], unique=True)
    op.create_index('ix_invitations_status_expires', 'invitations', ['status', 'expires_at'])
    op.create_index(
        'uq_invitations_pending_email_company',
        'invitations',
        ['email', 'company_id'],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )

    # 4. Activity log
    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_activity_logs_company_created', 'activity_logs', ['company_id', 'created_at'])
    op.create_index('ix_activity_logs_user_created', 'activity_logs', ['user_id', 'created_at'])
    op.create_index('ix_activity_logs_action_created', 'activity_logs', ['action', 'created_at'])

    # 5. Property reference data
    op.create_table(
        'properties',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('street', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=50), nullable=False),
        sa.Column('zip_code', sa.String(length=20), nullable=False),
        sa.Column('country', sa.String(length=100), nullable=False),
        sa.Column('formatted_address', sa.String(length=512), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('property_type', sa.String(length=11), nullable=False),
        sa.Column('property_sub_type', sa.String(length=50), nullable=True),
        sa.Column('building_size', sa.Float(), nullable=False),
        sa.Column('lot_size', sa.Float(), nullable=False),
        sa.Column('units', sa.Integer(), nullable=False),
        sa.Column('bedrooms', sa.Integer(), nullable=False),
        sa.Column('bathrooms', sa.Float(), nullable=False),
        sa.Column('estimated_value', sa.Float(), nullable=False),
        sa.Column('assessed_value', sa.Float(), nullable=False),
        sa.Column('last_sale_price', sa.Float(), nullable=False),
        sa.Column('last_sale_date', sa.Date(), nullable=True),
        sa.Column('year_built', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_properties_city', 'properties', ['city'])
    op.create_index('ix_properties_state', 'properties', ['state'])
    op.create_index('ix_properties_zip_code', 'properties', ['zip_code'])
    op.create_index('ix_properties_property_type', 'properties', ['property_type'])
    op.create_index('ix_properties_estimated_value', 'properties', ['estimated_value'])
    op.create_index('ix_properties_lat_lng', 'properties', ['latitude', 'longitude'])

    op.create_table(
        'owners',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_type', sa.String(length=10), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('estimated_net_worth', sa.Float(), nullable=False),
        sa.Column('wealth_confidence', sa.Integer(), nullable=False),
        sa.Column('wealth_tier', sa.String(length=50), nullable=True),
        sa.Column('income_estimate', sa.Float(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_owners_name', 'owners', ['name'])
    op.create_index('ix_owners_estimated_net_worth', 'owners', ['estimated_net_worth'])

    op.create_table(
        'property_ownerships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('ownership_percentage', sa.Float(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_current_owner', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['owner_id'], ['owners.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_property_ownerships_property_id', 'property_ownerships', ['property_id'])
    op.create_index('ix_property_ownerships_owner_id', 'property_ownerships', ['owner_id'])

    op.create_table(
        'property_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(length=11), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('seller', sa.String(length=255), nullable=True),
        sa.Column('buyer', sa.String(length=255), nullable=True),
        sa.Column('document_number', sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_property_transactions_property_id', 'property_transactions', ['property_id'])

    # 6. Per-user saved state
    op.create_table(
        'bookmarks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'property_id', name='uq_bookmark_user_property'),
    )
    op.create_index('ix_bookmarks_user_id', 'bookmarks', ['user_id'])

    op.create_table(
        'saved_searches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('filters', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_saved_searches_user_id', 'saved_searches', ['user_id'])


def downgrade() -> None:
    """Drop all Wealth Map tables (reverse dependency order)."""
    op.drop_table('saved_searches')
    op.drop_table('bookmarks')
    op.drop_table('property_transactions')
    op.drop_table('property_ownerships')
    op.drop_table('owners')
    op.drop_table('properties')
    op.drop_table('activity_logs')
    op.drop_index('uq_invitations_pending_email_company', table_name='invitations')
    op.drop_table('invitations')
    op.drop_table('users')
    op.drop_table('companies')
