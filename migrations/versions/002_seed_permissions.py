"""Seed permission catalogue and role defaults

Revision ID: 002
Revises: 001
Create Date: 2024-06-02

Inserts the closed set of back-office permissions and the default grants for
viewer, manager and admin. super_admin holds every permission implicitly and
gets no rows.
"""
from typing import Sequence, Union
from datetime import datetime

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Frozen copy of the catalogue as of this revision: (id, name, description, category)
PERMISSIONS = [
    (1, "view_overview", "View the dashboard overview", "dashboard"),
    (2, "view_requests", "View service requests", "requests"),
    (3, "update_requests", "Change status, priority and notes of service requests", "requests"),
    (4, "add_comments", "Comment on service requests", "requests"),
    (5, "view_feedback", "View visitor feedback and analytics", "feedback"),
    (6, "view_users", "View admin users", "users"),
    (7, "create_users", "Create admin users", "users"),
    (8, "update_users", "Edit admin users", "users"),
    (9, "delete_users", "Delete admin users", "users"),
    (10, "manage_permissions", "Grant or revoke individual permissions", "users"),
    (11, "view_audit", "View the audit log", "audit"),
]

VIEWER = ["view_overview", "view_requests", "view_feedback"]
MANAGER = VIEWER + ["update_requests", "add_comments", "view_users"]
ADMIN = MANAGER + ["create_users", "update_users", "delete_users", "manage_permissions", "view_audit"]

ROLE_DEFAULTS = {
    "viewer": VIEWER,
    "manager": MANAGER,
    "admin": ADMIN,
}


def upgrade() -> None:
    """Insert catalogue and role defaults."""
    now = datetime.utcnow()

    permissions = sa.table(
        'permissions',
        sa.column('id', sa.Integer),
        sa.column('name', sa.String),
        sa.column('description', sa.Text),
        sa.column('category', sa.String),
        sa.column('created_at', sa.DateTime),
    )
    role_permissions = sa.table(
        'role_permissions',
        sa.column('role', sa.String),
        sa.column('permission_id', sa.Integer),
    )

    op.bulk_insert(permissions, [
        {"id": pid, "name": name, "description": description, "category": category, "created_at": now}
        for pid, name, description, category in PERMISSIONS
    ])

    ids = {name: pid for pid, name, _, _ in PERMISSIONS}
    op.bulk_insert(role_permissions, [
        {"role": role, "permission_id": ids[name]}
        for role, names in ROLE_DEFAULTS.items()
        for name in names
    ])

    # Explicit ids leave the sequence behind
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("SELECT setval('permissions_id_seq', (SELECT MAX(id) FROM permissions))")


def downgrade() -> None:
    """Remove seeded rows."""
    op.execute("DELETE FROM role_permissions WHERE role IN ('viewer', 'manager', 'admin')")
    names = ", ".join(f"'{name}'" for _, name, _, _ in PERMISSIONS)
    op.execute(f"DELETE FROM permissions WHERE name IN ({names})")
