"""initial welfund schema

Revision ID: 0001_welfund
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_welfund"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "members",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(), nullable=False),
        sa.Column("registration_status", sa.String(), nullable=False),
        sa.Column("tns_number", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tns_number"),
    )
    op.create_index("ix_members_email", "members", ["email"], unique=True)
    op.create_index("ix_members_registration_status", "members", ["registration_status"])

    op.create_table(
        "staff_users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("staff_role", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_staff_users_email", "staff_users", ["email"], unique=True)

    op.create_table(
        "contributions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("member_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("contribution_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("reference_number", sa.String(), nullable=True),
        sa.Column("checkout_request_id", sa.String(), nullable=True),
        sa.Column("contribution_date", sa.Date(), nullable=False),
        sa.Column("recorded_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("checkout_request_id"),
    )
    op.create_index("ix_contributions_member_id", "contributions", ["member_id"])
    op.create_index("ix_contributions_contribution_type", "contributions", ["contribution_type"])

    op.create_table(
        "disbursements",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("member_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("disbursement_date", sa.Date(), nullable=False),
        sa.Column("recorded_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["member_id"], ["members.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_disbursements_member_id", "disbursements", ["member_id"])

    op.create_table(
        "mpesa_payments",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("member_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("phone_number", sa.String(), nullable=False),
        sa.Column("checkout_request_id", sa.String(), nullable=False),
        sa.Column("merchant_request_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("mpesa_receipt_number", sa.String(), nullable=True),
        sa.Column("result_code", sa.String(), nullable=True),
        sa.Column("result_desc", sa.String(), nullable=True),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("raw_callback", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_mpesa_payments_checkout_request_id", "mpesa_payments", ["checkout_request_id"], unique=True)
    op.create_index("ix_mpesa_payments_member_id", "mpesa_payments", ["member_id"])
    op.create_index("ix_mpesa_payments_status", "mpesa_payments", ["status"])


def downgrade() -> None:
    op.drop_index("ix_mpesa_payments_status", table_name="mpesa_payments")
    op.drop_index("ix_mpesa_payments_member_id", table_name="mpesa_payments")
    op.drop_index("ix_mpesa_payments_checkout_request_id", table_name="mpesa_payments")
    op.drop_table("mpesa_payments")
    op.drop_index("ix_disbursements_member_id", table_name="disbursements")
    op.drop_table("disbursements")
    op.drop_index("ix_contributions_contribution_type", table_name="contributions")
    op.drop_index("ix_contributions_member_id", table_name="contributions")
    op.drop_table("contributions")
    op.drop_index("ix_staff_users_email", table_name="staff_users")
    op.drop_table("staff_users")
    op.drop_index("ix_members_registration_status", table_name="members")
    op.drop_index("ix_members_email", table_name="members")
    op.drop_table("members")
