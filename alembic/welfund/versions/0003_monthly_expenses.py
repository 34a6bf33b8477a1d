"""monthly expenses

Revision ID: 0003_monthly_expenses
Revises: 0002_ledger_immutability
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0003_monthly_expenses"
down_revision = "0002_ledger_immutability"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "monthly_expenses",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("expense_category", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("month_year", sa.String(7), nullable=False),
        sa.Column("recorded_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_monthly_expenses_month_year", "monthly_expenses", ["month_year"])
    # prevent_ledger_mutation() comes from 0002.
    op.execute(
        """
        CREATE TRIGGER trg_monthly_expenses_immutable
        BEFORE UPDATE OR DELETE ON monthly_expenses
        FOR EACH ROW
        EXECUTE FUNCTION prevent_ledger_mutation();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_monthly_expenses_immutable ON monthly_expenses;")
    op.drop_index("ix_monthly_expenses_month_year", table_name="monthly_expenses")
    op.drop_table("monthly_expenses")
