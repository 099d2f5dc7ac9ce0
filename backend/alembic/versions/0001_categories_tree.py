"""categories tree + transactions

Revision ID: 0001_categories_tree
Revises: 
Create Date: 2026-10-18

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_categories_tree"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("household_id", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=10), nullable=False, server_default=sa.text("'expense'")),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.UnicodeText(), nullable=True),
        sa.Column("parent_id", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=False), nullable=True),
        sa.ForeignKeyConstraint(["parent_id"], ["categories.id"], name="fk_categories_parent_id"),
    )
    op.create_index("ix_categories_household_id", "categories", ["household_id"], unique=False)
    op.create_index("ix_categories_parent_id", "categories", ["parent_id"], unique=False)
    op.create_index("ix_categories_deleted_at", "categories", ["deleted_at"], unique=False)

    # Level-scoped uniqueness among active rows only. A NULL parent is folded
    # to '' so root names collide; SQL Server cannot index expressions.
    active = sa.text("deleted_at IS NULL")
    if op.get_bind().dialect.name == "mssql":
        op.create_index(
            "uq_categories_household_parent_name_mssql",
            "categories",
            ["household_id", "parent_id", "name"],
            unique=True,
            mssql_where=active,
        )
    else:
        op.create_index(
            "uq_categories_household_parent_name",
            "categories",
            ["household_id", sa.text("coalesce(parent_id, '')"), "name"],
            unique=True,
            sqlite_where=active,
            postgresql_where=active,
        )

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("household_id", sa.String(length=64), nullable=False),
        sa.Column("category_id", sa.String(length=32), nullable=True),
        sa.Column("amount_yen", sa.Integer(), nullable=False),
        sa.Column("occurred_on", sa.Date(), nullable=False),
        sa.Column("note", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], name="fk_transactions_category_id"),
    )
    op.create_index("ix_transactions_household_id", "transactions", ["household_id"], unique=False)
    op.create_index("ix_transactions_category_id", "transactions", ["category_id"], unique=False)
    op.create_index("ix_transactions_occurred_on", "transactions", ["occurred_on"], unique=False)
    op.create_index("ix_transactions_created_at", "transactions", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_transactions_created_at", table_name="transactions")
    op.drop_index("ix_transactions_occurred_on", table_name="transactions")
    op.drop_index("ix_transactions_category_id", table_name="transactions")
    op.drop_index("ix_transactions_household_id", table_name="transactions")
    op.drop_table("transactions")

    if op.get_bind().dialect.name == "mssql":
        op.drop_index("uq_categories_household_parent_name_mssql", table_name="categories")
    else:
        op.drop_index("uq_categories_household_parent_name", table_name="categories")
    op.drop_index("ix_categories_deleted_at", table_name="categories")
    op.drop_index("ix_categories_parent_id", table_name="categories")
    op.drop_index("ix_categories_household_id", table_name="categories")
    op.drop_table("categories")
