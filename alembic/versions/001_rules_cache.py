"""Create rules_cache table

Revision ID: 001_rules_cache
Revises:
Create Date: 2026-10-19

Adds:
  - rules_cache (cache_key PK, version, payload, fetched_at)
    Local copy of the last successfully fetched serial rules table.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001_rules_cache"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "rules_cache",
        sa.Column("cache_key", sa.String(64), primary_key=True),
        sa.Column("version", sa.String(64), nullable=False, server_default=""),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column(
            "fetched_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("rules_cache")
