"""Ledger schema

Revision ID: 3c9a51d0e7b2
Revises:
Create Date: 2026-10-19 09:42:13.118204

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c9a51d0e7b2"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.Text(), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # Table: securities
    op.create_table(
        "securities",
        sa.Column("uuid", sa.Text(), nullable=False, primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        # NULL for instruments without currency (indices)
        sa.Column("currency_code", sa.Text(), nullable=True),
        sa.Column("isin", sa.Text(), nullable=True),
        sa.Column("wkn", sa.Text(), nullable=True),
        sa.Column("symbol", sa.Text(), nullable=True),
        sa.Column("retired", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
    )

    # Table: accounts
    op.create_table(
        "accounts",
        sa.Column("uuid", sa.Text(), nullable=False, primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("currency_code", sa.Text(), nullable=False),
        sa.Column("retired", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
    )

    # Table: portfolios
    op.create_table(
        "portfolios",
        sa.Column("uuid", sa.Text(), nullable=False, primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("reference_account_uuid", sa.Text(), nullable=False),
        sa.Column("retired", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["reference_account_uuid"], ["accounts.uuid"], ondelete="RESTRICT"
        ),
    )

    # Table: transactions
    op.create_table(
        "transactions",
        sa.Column("uuid", sa.Text(), nullable=False, primary_key=True),
        sa.Column("owner_type", sa.Text(), nullable=False),
        sa.Column("owner_uuid", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("date_time", sa.Text(), nullable=False),
        sa.Column("security_uuid", sa.Text(), nullable=True),
        sa.Column("shares", sa.Text(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency_code", sa.Text(), nullable=False),
        sa.Column("fee_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Integer(), nullable=False, server_default="0"),
        # Paired rows reference each other, so this cannot be a foreign key
        # enforced on insert
        sa.Column("cross_entry_uuid", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["security_uuid"], ["securities.uuid"], ondelete="RESTRICT"
        ),
        sa.CheckConstraint(
            "owner_type IN ('account', 'portfolio')", name="check_owner_type"
        ),
    )
    op.create_index("ix_transactions_owner_uuid", "transactions", ["owner_uuid"])

    # Table: properties
    op.create_table(
        "properties",
        sa.Column("key", sa.Text(), nullable=False, primary_key=True),
        sa.Column("value", sa.Text(), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("properties")
    op.drop_index("ix_transactions_owner_uuid", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("portfolios")
    op.drop_table("accounts")
    op.drop_table("securities")
