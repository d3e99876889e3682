"""Create clients and shipments tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates `clients` (prefix + last_sequence counter) and `shipments`
       (tracking_code consumer).
Key constraints:
    uq_clients_prefix            decides prefix races between requests
    uq_shipments_tracking_code   no tracking code stored twice
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "name",
            sa.String(255),
            nullable=False,
            comment="Company display name, seed for prefix derivation",
        ),
        sa.Column(
            "prefix",
            sa.String(10),
            nullable=True,
            comment="Tracking-code prefix, 2-10 chars of [A-Z0-9]",
        ),
        sa.Column(
            "last_sequence",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Last issued tracking sequence number",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("prefix", name="uq_clients_prefix"),
        sa.CheckConstraint("last_sequence >= 0", name="ck_clients_last_sequence_non_negative"),
    )

    op.create_table(
        "shipments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("tracking_code", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("tracking_code", name="uq_shipments_tracking_code"),
    )

    op.create_index("idx_shipments_client_id", "shipments", ["client_id"])


def downgrade() -> None:
    """Drops both tables. Destructive: issued tracking codes are lost."""
    op.drop_index("idx_shipments_client_id", table_name="shipments")
    op.drop_table("shipments")
    op.drop_table("clients")
