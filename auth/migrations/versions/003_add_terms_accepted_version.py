"""Add terms_accepted_version to users.

Revision ID: 003_add_terms_accepted_version
Revises: 002_create_roles
Create Date: 2026-01-30

"""

from alembic import op
import sqlalchemy as sa

revision: str = "003_add_terms_accepted_version"
down_revision: str | None = "002_create_roles"
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.add_column(sa.Column("terms_accepted_version", sa.String(20), nullable=True))


def downgrade() -> None:
    # Stored versions are discarded; re-running upgrade() restores an empty column.
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("terms_accepted_version")
