"""Create content_records table.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "content_records",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("inline_content", sa.Text(), nullable=True),
        sa.Column("blob_ref", sa.String(), nullable=True),
        sa.Column("original_name", sa.String(), nullable=True),
        sa.Column("mime_type", sa.String(), nullable=True),
        sa.Column("byte_size", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(inline_content IS NOT NULL) <> (blob_ref IS NOT NULL)",
            name="ck_content_records_one_location",
        ),
    )
    op.create_index("ix_content_records_expires_at", "content_records", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_content_records_expires_at", table_name="content_records")
    op.drop_table("content_records")
