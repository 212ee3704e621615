"""identity and tenant provisioning schema

Revision ID: sf001
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates:
- users: principals (customers, store owners) with consents and provenance
- stores: tenants, one per owner, with legal and verification state
- audit_events: append-only compliance trail

Uniqueness lives in the database so concurrent registrations cannot both win:
- uq_users_email_lower: case-insensitive email
- uq_stores_slug: globally unique slug
- uq_stores_owner_id: one store per principal
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'sf001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users: principals
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=50), nullable=True),
        sa.Column('last_name', sa.String(length=50), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('origin', sa.String(length=16), nullable=False),
        sa.Column('oauth_subject', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_fully_registered', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('business_name', sa.String(length=200), nullable=True),
        sa.Column('business_type', sa.String(length=32), nullable=True),
        sa.Column('business_address', sa.JSON(), nullable=True),
        sa.Column('owner_phone', sa.String(length=20), nullable=True),
        sa.Column('owner_date_of_birth', sa.Date(), nullable=True),
        sa.Column('country_specific_fields', sa.JSON(), nullable=True),
        sa.Column('accepted_terms', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('terms_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('accepted_privacy_policy', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('privacy_policy_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('accepted_data_processing', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('data_processing_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('marketing_consent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('marketing_consent_given_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('registration_ip_address', sa.String(length=45), nullable=True),
        sa.Column('registration_user_agent', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('uq_users_email_lower', 'users', [sa.text('lower(email)')], unique=True)

    # ============================================================================
    # stores: tenants
    # ============================================================================
    op.create_table(
        'stores',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('owner_id', sa.String(length=36), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('address', sa.String(length=330), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('opening_hours', sa.JSON(), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=True),
        sa.Column('is_holiday', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('holiday_message', sa.String(length=200), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('legal_business_name', sa.String(length=200), nullable=True),
        sa.Column('legal_business_type', sa.String(length=32), nullable=True),
        sa.Column('legal_address', sa.JSON(), nullable=True),
        sa.Column('billing_address', sa.JSON(), nullable=True),
        sa.Column('country_specific_fields', sa.JSON(), nullable=True),
        sa.Column('document_verification_status', sa.JSON(), nullable=False),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('is_legally_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug', name='uq_stores_slug'),
        sa.UniqueConstraint('owner_id', name='uq_stores_owner_id'),
    )
    op.create_index('ix_stores_is_active', 'stores', ['is_active'])

    # ============================================================================
    # audit_events: append-only compliance trail
    # ============================================================================
    op.create_table(
        'audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('consent_type', sa.String(length=32), nullable=True),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('store_id', sa.String(length=36), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_audit_events_event_type', 'audit_events', ['event_type'])
    op.create_index('ix_audit_events_user_id', 'audit_events', ['user_id'])
    op.create_index('ix_audit_events_store_id', 'audit_events', ['store_id'])
    op.create_index('ix_audit_events_user_type', 'audit_events', ['user_id', 'event_type'])
    op.create_index('ix_audit_events_occurred', 'audit_events', ['occurred_at'])


def downgrade():
    """Drop all tables (destructive operation, audit trail included)."""
    op.drop_table('audit_events')
    op.drop_table('stores')
    op.drop_index('uq_users_email_lower', table_name='users')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_table('users')
