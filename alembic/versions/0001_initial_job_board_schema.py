"""initial job board schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _content_columns():
    return [
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('company', sa.String(), nullable=False),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('employment_type', sa.String(), nullable=False),
        sa.Column('compensation_type', sa.String(), nullable=False),
        sa.Column('salary_range', sa.String(), nullable=True),
        sa.Column('hourly_rate', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('requirements', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('business_account_id', sa.Integer(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='unset'),
        sa.Column('role_selected_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_accounts_id', 'accounts', ['id'])
    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=True)
    op.create_index('ix_accounts_role', 'accounts', ['role'])

    op.create_table(
        'job_postings',
        sa.Column('id', sa.Integer(), nullable=False),
        *_content_columns(),
        sa.Column('draft_id', sa.Integer(), nullable=False),
        sa.Column('plan', sa.String(), nullable=False),
        sa.Column('addons', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['business_account_id'], ['accounts.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_job_postings_id', 'job_postings', ['id'])
    op.create_index('ix_job_postings_business_account_id', 'job_postings', ['business_account_id'])
    op.create_index('ix_job_postings_draft_id', 'job_postings', ['draft_id'], unique=True)
    op.create_index('ix_job_postings_plan', 'job_postings', ['plan'])
    op.create_index('ix_job_postings_status', 'job_postings', ['status'])
    op.create_index('ix_job_postings_featured', 'job_postings', ['featured'])
    op.create_index('ix_job_postings_expires_at', 'job_postings', ['expires_at'])
    op.create_index('ix_job_postings_created_at', 'job_postings', ['created_at'])

    op.create_table(
        'job_drafts',
        sa.Column('id', sa.Integer(), nullable=False),
        *_content_columns(),
        sa.Column('posting_id', sa.Integer(), nullable=True),
        sa.Column('payment_generation', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['business_account_id'], ['accounts.id'], ),
        sa.ForeignKeyConstraint(['posting_id'], ['job_postings.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('posting_id')
    )
    op.create_index('ix_job_drafts_id', 'job_drafts', ['id'])
    op.create_index('ix_job_drafts_business_account_id', 'job_drafts', ['business_account_id'])

    op.create_table(
        'job_applications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_posting_id', sa.Integer(), nullable=False),
        sa.Column('applicant_account_id', sa.Integer(), nullable=False),
        sa.Column('cover_letter', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('applied_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['job_posting_id'], ['job_postings.id'], ),
        sa.ForeignKeyConstraint(['applicant_account_id'], ['accounts.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('job_posting_id', 'applicant_account_id', name='uq_job_applications_posting_applicant')
    )
    op.create_index('ix_job_applications_id', 'job_applications', ['id'])
    op.create_index('ix_job_applications_job_posting_id', 'job_applications', ['job_posting_id'])
    op.create_index('ix_job_applications_applicant_account_id', 'job_applications', ['applicant_account_id'])

    op.create_table(
        'payment_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(), nullable=False),
        sa.Column('provider_transaction_id', sa.String(), nullable=True),
        sa.Column('client_token', sa.String(), nullable=True),
        sa.Column('idempotency_key', sa.String(), nullable=True),
        sa.Column('draft_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('posting_id', sa.Integer(), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('plan', sa.String(), nullable=False),
        sa.Column('addons', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('failure_reason', sa.String(), nullable=True),
        sa.Column('pending_key', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['draft_id'], ['job_drafts.id'], ),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.ForeignKeyConstraint(['posting_id'], ['job_postings.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pending_key')
    )
    op.create_index('ix_payment_transactions_id', 'payment_transactions', ['id'])
    op.create_index(
        'ix_payment_transactions_provider_transaction_id',
        'payment_transactions',
        ['provider_transaction_id'],
        unique=True
    )
    op.create_index('ix_payment_transactions_draft_id', 'payment_transactions', ['draft_id'])
    op.create_index('ix_payment_transactions_account_id', 'payment_transactions', ['account_id'])
    op.create_index('ix_payment_transactions_posting_id', 'payment_transactions', ['posting_id'])
    op.create_index('ix_payment_transactions_status', 'payment_transactions', ['status'])
    op.create_index('ix_payment_transactions_created_at', 'payment_transactions', ['created_at'])


def downgrade() -> None:
    op.drop_table('payment_transactions')
    op.drop_table('job_applications')
    op.drop_table('job_drafts')
    op.drop_table('job_postings')
    op.drop_table('accounts')
