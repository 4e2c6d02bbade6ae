"""initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True)))
    return columns


def _index(table, *columns, unique=False):
    op.create_index(f"ix_{table}_{'_'.join(columns)}", table, list(columns), unique=unique)


def upgrade() -> None:
    """
    Create the complete SmartDocs schema.

    Users own API keys, projects, conversations, documents and payments.
    Documents keep project_id SET NULL so they survive project deletion.
    """
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('hashed_password', sa.String(255)),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('admin_permissions', sa.JSON()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('email_verified', sa.DateTime(timezone=True)),
        sa.Column('language', sa.String(5), server_default='en'),
        sa.Column('company_name', sa.String(255)),
        sa.Column('industry', sa.String(100)),
        sa.Column('subscription_tier', sa.String(20), nullable=False, server_default='FREE'),
        sa.Column('subscription_status', sa.String(20), server_default='active'),
        sa.Column('billing_cycle', sa.String(10), server_default='monthly'),
        sa.Column('subscription_starts_at', sa.DateTime(timezone=True)),
        sa.Column('subscription_ends_at', sa.DateTime(timezone=True)),
        sa.Column('stripe_customer_id', sa.String(255)),
        sa.Column('stripe_subscription_id', sa.String(255)),
        sa.Column('moyasar_customer_id', sa.String(255)),
        sa.Column('tokens_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tokens_limit', sa.Integer(), nullable=False, server_default='10000'),
        sa.Column('referral_code', sa.String(20)),
        sa.Column('referred_by_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('total_referral_tokens', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )
    _index('users', 'email', unique=True)
    _index('users', 'subscription_tier')
    _index('users', 'stripe_customer_id', unique=True)
    _index('users', 'stripe_subscription_id', unique=True)
    _index('users', 'referral_code', unique=True)
    _index('users', 'created_at')

    op.create_table(
        'api_keys',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('key_hash', sa.String(255), nullable=False),
        sa.Column('key_prefix', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('expires_at', sa.DateTime(timezone=True)),
        sa.Column('last_used_at', sa.DateTime(timezone=True)),
        *_timestamps(updated=False),
    )
    _index('api_keys', 'user_id')
    _index('api_keys', 'key_hash', unique=True)

    op.create_table(
        'email_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('token', sa.String(128), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    _index('email_tokens', 'user_id')
    _index('email_tokens', 'token', unique=True)

    op.create_table(
        'referral_rewards',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('referred_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(30), nullable=False, server_default='signup'),
        sa.Column('tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.String(255)),
        sa.Column('claimed', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    _index('referral_rewards', 'user_id')

    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('industry', sa.String(100)),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('stage', sa.String(20), nullable=False, server_default='initial'),
        sa.Column('confidence', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('metadata', sa.JSON()),
        sa.Column('last_activity', sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    _index('projects', 'user_id')
    _index('projects', 'status')
    _index('projects', 'last_activity')

    op.create_table(
        'conversations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE')),
        sa.Column('title', sa.String(255)),
        sa.Column('status', sa.String(30), nullable=False, server_default='active'),
        sa.Column('metadata', sa.JSON()),
        *_timestamps(),
    )
    _index('conversations', 'user_id')
    _index('conversations', 'project_id')
    _index('conversations', 'updated_at')

    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('conversation_id', sa.Uuid(), sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('metadata', sa.JSON()),
        *_timestamps(updated=False),
    )
    _index('messages', 'conversation_id')
    _index('messages', 'created_at')

    op.create_table(
        'project_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('conversation_id', sa.Uuid(), sa.ForeignKey('conversations.id', ondelete='SET NULL')),
        sa.Column('session_key', sa.String(64), nullable=False),
        sa.Column('stage', sa.String(20)),
        sa.Column('confidence', sa.Integer(), server_default='0'),
        sa.Column('tokens_used', sa.Integer(), server_default='0'),
        sa.Column('session_data', sa.JSON()),
        sa.Column('started_at', sa.DateTime(timezone=True)),
        sa.Column('ended_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('project_id', 'session_key', name='uq_project_sessions_project_key'),
    )
    _index('project_sessions', 'project_id')
    _index('project_sessions', 'updated_at')

    op.create_table(
        'conversation_summaries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('conversation_id', sa.Uuid(), sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='CASCADE')),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('original_token_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('summary_token_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('message_range', sa.String(255)),
        *_timestamps(updated=False),
    )
    _index('conversation_summaries', 'conversation_id')
    _index('conversation_summaries', 'project_id')
    _index('conversation_summaries', 'created_at')

    op.create_table(
        'documents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('project_id', sa.Uuid(), sa.ForeignKey('projects.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('type', sa.String(50), nullable=False, server_default='BRD'),
        sa.Column('status', sa.String(20), nullable=False, server_default='generated'),
        sa.Column('tokens_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ai_model', sa.String(100)),
        sa.Column('generation_time', sa.Integer()),
        sa.Column('metadata', sa.JSON()),
        *_timestamps(),
    )
    _index('documents', 'user_id')
    _index('documents', 'project_id')
    _index('documents', 'type')
    _index('documents', 'status')
    _index('documents', 'created_at')
    _index('documents', 'updated_at')

    op.create_table(
        'usage_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('operation', sa.String(50), nullable=False),
        sa.Column('tokens_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('success', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('metadata', sa.JSON()),
        *_timestamps(updated=False),
    )
    _index('usage_history', 'user_id')
    _index('usage_history', 'created_at')

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tier', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('billing_cycle', sa.String(10), nullable=False, server_default='MONTHLY'),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='SAR'),
        sa.Column('moyasar_payment_id', sa.String(255)),
        sa.Column('stripe_subscription_id', sa.String(255)),
        sa.Column('tokens_included', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('starts_at', sa.DateTime(timezone=True)),
        sa.Column('ends_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    _index('subscriptions', 'user_id')
    _index('subscriptions', 'status')
    _index('subscriptions', 'moyasar_payment_id')
    _index('subscriptions', 'stripe_subscription_id')

    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('provider', sa.String(20), nullable=False),
        sa.Column('provider_payment_id', sa.String(255)),
        sa.Column('amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('description', sa.String(512)),
        *_timestamps(updated=False),
    )
    _index('payments', 'user_id')
    _index('payments', 'provider_payment_id')
    _index('payments', 'status')
    _index('payments', 'created_at')

    op.create_table(
        'admin_activities',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('admin_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('target_id', sa.String(255)),
        sa.Column('details', sa.JSON()),
        *_timestamps(updated=False),
    )
    _index('admin_activities', 'admin_id')
    _index('admin_activities', 'action')
    _index('admin_activities', 'target_id')
    _index('admin_activities', 'created_at')

    op.create_table(
        'feedback',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('category', sa.String(30)),
        sa.Column('type', sa.String(30)),
        sa.Column('email', sa.String(255)),
        sa.Column('name', sa.String(255)),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('admin_response', sa.Text()),
        sa.Column('approved_at', sa.DateTime(timezone=True)),
        sa.Column('approved_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('metadata', sa.JSON()),
        *_timestamps(),
    )
    _index('feedback', 'user_id')
    _index('feedback', 'category')
    _index('feedback', 'status')
    _index('feedback', 'created_at')

    op.create_table(
        'contact_requests',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='general'),
        sa.Column('status', sa.String(20), nullable=False, server_default='open'),
        sa.Column('priority', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('admin_notes', sa.Text()),
        *_timestamps(),
    )
    _index('contact_requests', 'user_id')
    _index('contact_requests', 'status')
    _index('contact_requests', 'created_at')

    op.create_table(
        'system_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text()),
        sa.Column('category', sa.String(50), nullable=False, server_default='general'),
        sa.Column('description', sa.String(512)),
        sa.Column('is_secret', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_editable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        *_timestamps(),
    )
    _index('system_settings', 'key', unique=True)


def downgrade() -> None:
    """Drop every table, dependents first."""
    for table in (
        'system_settings',
        'contact_requests',
        'feedback',
        'admin_activities',
        'payments',
        'subscriptions',
        'usage_history',
        'documents',
        'conversation_summaries',
        'project_sessions',
        'messages',
        'conversations',
        'projects',
        'referral_rewards',
        'email_tokens',
        'api_keys',
        'users',
    ):
        op.drop_table(table)
