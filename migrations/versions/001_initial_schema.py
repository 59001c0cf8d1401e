"""Initial schema with all tables.

Revision ID: 001
Revises:
Create Date: 2024-06-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLES = ('viewer', 'manager', 'admin', 'super_admin')
SIGNUP_STATUSES = ('pending', 'approved', 'rejected')

# Types are created once up front and referenced by several tables
admin_role = postgresql.ENUM(*ROLES, name='adminrole', create_type=False)
signup_status = postgresql.ENUM(*SIGNUP_STATUSES, name='signupstatus', create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    postgresql.ENUM(*ROLES, name='adminrole').create(bind, checkfirst=True)
    postgresql.ENUM(*SIGNUP_STATUSES, name='signupstatus').create(bind, checkfirst=True)

    # Admin users
    op.create_table(
        'admin_users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(50), unique=True, nullable=False, index=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('role', admin_role, nullable=False, server_default='admin'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Sessions
    op.create_table(
        'admin_sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('admin_user_id', sa.String(36), sa.ForeignKey('admin_users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('session_token', sa.String(128), unique=True, nullable=False, index=True),
        sa.Column('ip_address', sa.String(255), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(), nullable=True, index=True),
    )

    # Permission catalogue
    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), unique=True, nullable=False, index=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), nullable=False, server_default='general'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # Role defaults
    op.create_table(
        'role_permissions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('role', admin_role, nullable=False, index=True),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('role', 'permission_id', name='uq_role_permission'),
    )

    # Per-user overrides
    op.create_table(
        'user_permissions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('admin_user_id', sa.String(36), sa.ForeignKey('admin_users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('granted', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('admin_user_id', 'permission_id', name='uq_user_permission'),
    )

    # Signup requests
    op.create_table(
        'admin_signup_requests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(50), nullable=False, index=True),
        sa.Column('email', sa.String(255), nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('organization', sa.String(255), nullable=True),
        sa.Column('status', signup_status, nullable=False, server_default='pending', index=True),
        sa.Column('reviewed_by', sa.String(36), sa.ForeignKey('admin_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('approved_role', sa.String(20), nullable=True),
        sa.Column('created_user_id', sa.String(36), nullable=True),
        sa.Column('ip_address', sa.String(255), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(), server_default=sa.func.now(), index=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_signup_requests_status_requested', 'admin_signup_requests', ['status', 'requested_at'])

    # Service requests
    op.create_table(
        'service_requests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('offering_category', sa.String(100), nullable=False, server_default='unknown', index=True),
        sa.Column('offering_name', sa.String(255), nullable=False, server_default='unknown'),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(50), nullable=False),
        sa.Column('customer_address', sa.Text(), nullable=False),
        sa.Column('request_details', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending', index=True),
        sa.Column('priority', sa.String(20), nullable=False, server_default='normal'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('comments', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), index=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_service_requests_status_created', 'service_requests', ['status', 'created_at'])

    # Feedback
    op.create_table(
        'feedback',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('rating', sa.Integer(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=False, server_default=''),
        sa.Column('page', sa.String(500), nullable=False, server_default='unknown', index=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), index=True),
        sa.CheckConstraint('rating IS NULL OR (rating >= 1 AND rating <= 5)', name='ck_feedback_rating'),
    )

    # Audit log, no foreign keys so entries outlive their users
    op.create_table(
        'admin_audit_log',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('admin_user_id', sa.String(36), nullable=True, index=True),
        sa.Column('action', sa.String(50), nullable=False, index=True),
        sa.Column('target_user_id', sa.String(36), nullable=True, index=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False, index=True),
    )
    op.create_index('ix_admin_audit_log_action_created', 'admin_audit_log', ['action', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_admin_audit_log_action_created', table_name='admin_audit_log')
    op.drop_table('admin_audit_log')
    op.drop_table('feedback')
    op.drop_index('ix_service_requests_status_created', table_name='service_requests')
    op.drop_table('service_requests')
    op.drop_index('ix_signup_requests_status_requested', table_name='admin_signup_requests')
    op.drop_table('admin_signup_requests')
    op.drop_table('user_permissions')
    op.drop_table('role_permissions')
    op.drop_table('permissions')
    op.drop_table('admin_sessions')
    op.drop_table('admin_users')

    sa.Enum(name='signupstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='adminrole').drop(op.get_bind(), checkfirst=True)
