"""Add revoked_tokens table for logout.

Tokens revoked on logout stay invalid across process restarts. Rows are
ignored once older than the token lifetime and purged in the background.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "revoked_tokens",
        sa.Column("token", sa.Text(), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_revoked_tokens_created_at", "revoked_tokens", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_revoked_tokens_created_at", table_name="revoked_tokens")
    op.drop_table("revoked_tokens")
