"""initial schema: users, trashable entities, audit log, notifications, documents

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-03-01 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, nullable: bool = False, **kw) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision=12, scale=2), nullable=nullable, **kw)


def _trash_columns() -> list[sa.Column]:
    return [
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
    ]


def _trash_indexes(table: str) -> None:
    op.create_index(f'ix_{table}_account_id', table, ['account_id'])
    op.create_index(f'ix_{table}_deleted_at', table, ['deleted_at'])


TRASHABLE_TABLES = [
    'emails', 'accounts', 'incomes', 'debts', 'credits',
    'recurring_expenses', 'one_time_bills', 'banks', 'wishlist_items',
]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('enabled_plugins', postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    op.create_table(
        'emails',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('alias', sa.String(255), nullable=True),
        sa.Column('category', sa.String(20), server_default='primary', nullable=False),
        sa.Column('tier', sa.String(10), server_default='free', nullable=False),
        _money('price', nullable=True),
        sa.Column('billing_cycle', sa.String(20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_trash_columns(),
        sa.UniqueConstraint('account_id', 'email', name='uq_emails_account_email'),
    )

    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('provider', sa.String(255), nullable=False),
        sa.Column('tier', sa.String(10), server_default='free', nullable=False),
        _money('price', nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('billing_cycle', sa.String(20), nullable=True),
        sa.Column('auth_methods', postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('email_id', sa.Integer(), sa.ForeignKey('emails.id'), nullable=False),
        sa.Column('linked_bank_id', sa.Integer(), nullable=True),
        *_trash_columns(),
    )
    op.create_index('ix_accounts_email_id', 'accounts', ['email_id'])

    op.create_table(
        'incomes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('source', sa.String(255), nullable=False),
        _money('amount'),
        sa.Column('cycle', sa.String(20), nullable=False),
        sa.Column('next_payment_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_trash_columns(),
    )

    op.create_table(
        'debts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        _money('amount'),
        _money('remaining_amount', server_default='0'),
        sa.Column('pay_to', sa.String(255), nullable=False),
        sa.Column('cycle', sa.String(20), nullable=False),
        sa.Column('payment_month', sa.String(20), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('months_remaining', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_trash_columns(),
    )

    op.create_table(
        'credits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('provider', sa.String(255), nullable=False),
        _money('total_limit'),
        _money('used_amount', server_default='0'),
        sa.Column('interest_rate', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_trash_columns(),
    )

    op.create_table(
        'recurring_expenses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        _money('amount'),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('cycle', sa.String(20), nullable=False),
        sa.Column('trial_type', sa.String(10), server_default='none', nullable=False),
        sa.Column('trial_end_date', sa.Date(), nullable=True),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('linked_credit_id', sa.Integer(), nullable=True),
        sa.Column('linked_debt_id', sa.Integer(), nullable=True),
        sa.Column('linked_bank_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_trash_columns(),
    )
    op.create_index('ix_recurring_expenses_due_date', 'recurring_expenses', ['due_date'])

    op.create_table(
        'one_time_bills',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        _money('amount'),
        sa.Column('pay_to', sa.String(255), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('is_paid', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('linked_bank_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_trash_columns(),
    )
    op.create_index('ix_one_time_bills_due_date', 'one_time_bills', ['due_date'])

    op.create_table(
        'banks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(32), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=False),
        _money('balance', server_default='0'),
        sa.Column('last_balance_update', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_trash_columns(),
    )

    op.create_table(
        'wishlist_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        _money('price'),
        sa.Column('where_to_buy', sa.String(255), nullable=False),
        sa.Column('need_rate', sa.String(10), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('links', postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('image_url', sa.String(1024), nullable=True),
        *_trash_columns(),
    )

    for table in TRASHABLE_TABLES:
        _trash_indexes(table)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('entity_name', sa.String(255), nullable=True),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('changes_json', postgresql.JSONB(), nullable=True),
        sa.Column('metadata_json', postgresql.JSONB(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_audit_logs_account_id', 'audit_logs', ['account_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_occurred_at', 'audit_logs', ['occurred_at'])
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('entity_type', sa.String(32), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata_json', postgresql.JSONB(), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_dedup', 'notifications', ['user_id', 'type', 'entity_type', 'entity_id'])

    op.create_table(
        'documents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('file_path', sa.String(1024), nullable=False),
        sa.Column('mime_type', sa.String(100), server_default='application/pdf', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_documents_user_id', 'documents', ['user_id'])


def downgrade() -> None:
    op.drop_table('documents')
    op.drop_table('notifications')
    op.drop_table('audit_logs')
    for table in reversed(TRASHABLE_TABLES):
        op.drop_table(table)
    op.drop_table('users')
