"""Baseline migration - identity, organizations, invitations, documents, threads

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates every table of the workspace core. Portable across PostgreSQL and
SQLite (UUIDs and timestamps use generic SQLAlchemy types).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create workspace tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('password_digest', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _ts('email_confirmed_at', nullable=True),
        sa.Column('confirmation_token_digest', sa.String(64), nullable=True, unique=True),
        _ts('confirmation_sent_at', nullable=True),
        sa.Column('password_reset_token_digest', sa.String(64), nullable=True, unique=True),
        _ts('password_reset_sent_at', nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
    )

    op.create_table(
        'auth_identities',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('provider_subject', sa.String(255), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        _ts('created_at'),
        sa.UniqueConstraint('provider', 'provider_subject', name='uq_auth_identity'),
    )
    op.create_index('idx_auth_identities_user_id', 'auth_identities', ['user_id'])

    # ==========================================================================
    # Organizations (firm / client)
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('parent_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=True),
        sa.Column('owner_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint(
            "(kind = 'firm' AND parent_id IS NULL) OR (kind = 'client' AND parent_id IS NOT NULL)",
            name='ck_organizations_parent_matches_kind',
        ),
    )
    op.create_index('idx_organizations_parent_id', 'organizations', ['parent_id'])

    op.create_table(
        'memberships',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        _ts('created_at'),
        sa.UniqueConstraint('user_id', 'organization_id', name='uq_memberships_user_org'),
        sa.CheckConstraint("role IN ('admin', 'staff')", name='ck_memberships_role_valid'),
    )
    op.create_index('idx_memberships_org_id', 'memberships', ['organization_id'])

    # ==========================================================================
    # Invitations
    # ==========================================================================
    op.create_table(
        'org_invites',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('invited_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('token_digest', sa.String(64), nullable=False, unique=True),
        _ts('created_at'),
        _ts('expires_at'),
        _ts('accepted_at', nullable=True),
        sa.Column('accepted_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.CheckConstraint("role IN ('admin', 'staff')", name='ck_org_invites_role_valid'),
        sa.CheckConstraint('expires_at > created_at', name='ck_org_invites_expires_after_created'),
    )
    op.create_index('idx_org_invites_org_id', 'org_invites', ['organization_id'])
    op.create_index('idx_org_invites_email', 'org_invites', ['email'])

    # ==========================================================================
    # Documents
    # ==========================================================================
    op.create_table(
        'documents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('uploaded_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('storage_key', sa.String(512), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('category', sa.String(20), nullable=True),
        _ts('viewed_at', nullable=True),
        sa.Column('viewed_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _ts('created_at'),
        _ts('updated_at'),
        sa.CheckConstraint("status IN ('uploaded', 'viewed')", name='ck_documents_status_valid'),
        sa.CheckConstraint(
            "category IS NULL OR category IN ('invoice', 'receipt', 'contract', 'other')",
            name='ck_documents_category_valid',
        ),
        sa.CheckConstraint('file_size > 0', name='ck_documents_file_size_positive'),
    )
    op.create_index('idx_documents_org_created', 'documents', ['organization_id', 'created_at'])
    op.create_index('idx_documents_org_status', 'documents', ['organization_id', 'status'])

    # ==========================================================================
    # Threads & messages
    # ==========================================================================
    op.create_table(
        'threads',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('closed_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        _ts('closed_at', nullable=True),
        _ts('last_activity_at'),
        _ts('created_at'),
        sa.CheckConstraint("status IN ('open', 'resolved')", name='ck_threads_status_valid'),
        sa.CheckConstraint(
            "(status = 'resolved' AND closed_at IS NOT NULL) "
            "OR (status = 'open' AND closed_at IS NULL AND closed_by_user_id IS NULL)",
            name='ck_threads_closed_matches_status',
        ),
    )
    op.create_index('idx_threads_org_activity', 'threads', ['organization_id', 'last_activity_at'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('thread_id', sa.Uuid(), sa.ForeignKey('threads.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('body', sa.Text(), nullable=False),
        _ts('created_at'),
    )
    op.create_index('idx_messages_thread_created', 'messages', ['thread_id', 'created_at'])

    # ==========================================================================
    # Jobs (notification outbox)
    # ==========================================================================
    op.create_table(
        'jobs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        _ts('run_at'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('max_attempts', sa.Integer(), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        _ts('created_at'),
        _ts('completed_at', nullable=True),
        sa.Column('idempotency_key', sa.String(255), nullable=True, unique=True),
    )
    op.create_index('idx_jobs_pending', 'jobs', ['status', 'run_at'])
    op.create_index('idx_jobs_org', 'jobs', ['organization_id', 'created_at'])


def downgrade() -> None:
    """Drop workspace tables."""
    op.drop_table('jobs')
    op.drop_table('messages')
    op.drop_table('threads')
    op.drop_table('documents')
    op.drop_table('org_invites')
    op.drop_table('memberships')
    op.drop_table('organizations')
    op.drop_table('auth_identities')
    op.drop_table('users')
