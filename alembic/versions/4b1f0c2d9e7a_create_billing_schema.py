"""create_billing_schema

Revision ID: 4b1f0c2d9e7a
Revises:
Create Date: 2026-10-19 09:12:44.310582

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b1f0c2d9e7a'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Billing accounts
    op.create_table(
        'billing_accounts',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('is_subscribed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_permanent', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('subscription_start_date', sa.DateTime(), nullable=True),
        sa.Column('renewal_date', sa.DateTime(), nullable=True),
        sa.Column('subscription_end_date', sa.DateTime(), nullable=True),
        sa.Column('terminated_at', sa.DateTime(), nullable=True),
        sa.Column('failure_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_billing_attempt_at', sa.DateTime(), nullable=True),
        sa.Column('cascade_pending', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('processor_customer_id', sa.String(length=255), nullable=True),
        sa.Column('processor_payment_method_id', sa.String(length=255), nullable=True),
        sa.Column('storage_packs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('storage_limit_gb', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_billing_accounts')),
        sa.UniqueConstraint('processor_customer_id', name=op.f('uq_billing_accounts_processor_customer_id')),
    )
    op.create_index(op.f('ix_billing_accounts_id'), 'billing_accounts', ['id'], unique=False)
    op.create_index(op.f('ix_billing_accounts_email'), 'billing_accounts', ['email'], unique=True)
    op.create_index(op.f('ix_billing_accounts_renewal_date'), 'billing_accounts', ['renewal_date'], unique=False)
    op.create_index(op.f('ix_billing_accounts_cascade_pending'), 'billing_accounts', ['cascade_pending'], unique=False)
    op.create_index('idx_billing_account_subscribed_renewal', 'billing_accounts', ['is_subscribed', 'renewal_date'], unique=False)

    # Workspaces and memberships
    op.create_table(
        'workspaces',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('restricted_until', sa.DateTime(), nullable=True),
        sa.Column('deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_workspaces')),
    )
    op.create_index(op.f('ix_workspaces_id'), 'workspaces', ['id'], unique=False)
    op.create_index(op.f('ix_workspaces_name'), 'workspaces', ['name'], unique=False)
    op.create_index(op.f('ix_workspaces_deleted'), 'workspaces', ['deleted'], unique=False)

    op.create_table(
        'workspace_memberships',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('workspace_id', sa.BigInteger(), nullable=False),
        sa.Column('account_id', sa.BigInteger(), nullable=False),
        sa.Column('privilege', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], name=op.f('fk_workspace_memberships_workspace_id_workspaces'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['account_id'], ['billing_accounts.id'], name=op.f('fk_workspace_memberships_account_id_billing_accounts'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_workspace_memberships')),
        sa.UniqueConstraint('workspace_id', 'account_id', name='uq_membership_workspace_account'),
    )
    op.create_index(op.f('ix_workspace_memberships_id'), 'workspace_memberships', ['id'], unique=False)
    op.create_index(op.f('ix_workspace_memberships_workspace_id'), 'workspace_memberships', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_workspace_memberships_account_id'), 'workspace_memberships', ['account_id'], unique=False)
    op.create_index('idx_membership_account_privilege', 'workspace_memberships', ['account_id', 'privilege'], unique=False)

    # Metered storage
    op.create_table(
        'metered_objects',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('workspace_id', sa.BigInteger(), nullable=False),
        sa.Column('storage_key', sa.String(length=500), nullable=False),
        sa.Column('size_bytes', sa.BigInteger(), nullable=False),
        sa.Column('deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], name=op.f('fk_metered_objects_workspace_id_workspaces'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_metered_objects')),
    )
    op.create_index(op.f('ix_metered_objects_id'), 'metered_objects', ['id'], unique=False)
    op.create_index(op.f('ix_metered_objects_workspace_id'), 'metered_objects', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_metered_objects_deleted'), 'metered_objects', ['deleted'], unique=False)
    op.create_index('idx_metered_object_workspace_live', 'metered_objects', ['workspace_id', 'deleted'], unique=False)

    # Ledger
    op.create_table(
        'charge_attempts',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('account_id', sa.BigInteger(), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('base_amount', sa.Integer(), nullable=False),
        sa.Column('storage_packs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('storage_pack_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=False),
        sa.Column('period_end', sa.DateTime(), nullable=False),
        sa.Column('processor_reference', sa.String(length=255), nullable=True),
        sa.Column('failure_reason', sa.String(length=500), nullable=True),
        sa.Column('failure_counted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['account_id'], ['billing_accounts.id'], name=op.f('fk_charge_attempts_account_id_billing_accounts'), ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_charge_attempts')),
    )
    op.create_index(op.f('ix_charge_attempts_id'), 'charge_attempts', ['id'], unique=False)
    op.create_index(op.f('ix_charge_attempts_account_id'), 'charge_attempts', ['account_id'], unique=False)
    op.create_index(op.f('ix_charge_attempts_status'), 'charge_attempts', ['status'], unique=False)
    op.create_index('idx_charge_attempt_account_created', 'charge_attempts', ['account_id', 'created_at'], unique=False)
    # At most one pending or succeeded attempt per account and period
    op.create_index(
        'uq_charge_attempt_live_period',
        'charge_attempts',
        ['account_id', 'period_start'],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'succeeded')"),
    )

    op.create_table(
        'reminder_records',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('account_id', sa.BigInteger(), nullable=False),
        sa.Column('last_sent_at', sa.DateTime(), nullable=False),
        sa.Column('last_offset_days', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['billing_accounts.id'], name=op.f('fk_reminder_records_account_id_billing_accounts'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_reminder_records')),
        sa.UniqueConstraint('account_id', name=op.f('uq_reminder_records_account_id')),
    )
    op.create_index(op.f('ix_reminder_records_id'), 'reminder_records', ['id'], unique=False)

    # Audit trail
    op.create_table(
        'audit_events',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('event_type', sa.String(length=50), nullable=False),
        sa.Column('workspace_id', sa.BigInteger(), nullable=True),
        sa.Column('account_id', sa.BigInteger(), nullable=True),
        sa.Column('membership_id', sa.BigInteger(), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_audit_events')),
    )
    op.create_index(op.f('ix_audit_events_id'), 'audit_events', ['id'], unique=False)
    op.create_index(op.f('ix_audit_events_event_type'), 'audit_events', ['event_type'], unique=False)
    op.create_index(op.f('ix_audit_events_workspace_id'), 'audit_events', ['workspace_id'], unique=False)
    op.create_index(op.f('ix_audit_events_account_id'), 'audit_events', ['account_id'], unique=False)
    op.create_index('idx_audit_workspace_created', 'audit_events', ['workspace_id', 'created_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_events')
    op.drop_table('reminder_records')
    op.drop_index('uq_charge_attempt_live_period', table_name='charge_attempts')
    op.drop_table('charge_attempts')
    op.drop_table('metered_objects')
    op.drop_table('workspace_memberships')
    op.drop_table('workspaces')
    op.drop_table('billing_accounts')
