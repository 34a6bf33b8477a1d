"""Ledger database models: members, staff, contributions, disbursements and expenses.

Contributions are the confirmed ledger entries of the fund. Rows in
`contributions`, `disbursements` and `monthly_expenses` are append-only.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from welfund.common.db import Base


class Member(Base):
    """Registered fund member; only approved members can transact."""

    __tablename__ = "members"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    first_name: Mapped[str] = mapped_column(String)
    last_name: Mapped[str] = mapped_column(String)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    phone_number: Mapped[str] = mapped_column(String)
    registration_status: Mapped[str] = mapped_column(String, default="pending", index=True)
    tns_number: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class StaffUser(Base):
    """Officials allowed into the staff portals."""

    __tablename__ = "staff_users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String)
    staff_role: Mapped[str] = mapped_column(String)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Contribution(Base):
    """Confirmed money in, either recorded by staff or created by an MPESA callback."""

    __tablename__ = "contributions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    member_id: Mapped[str] = mapped_column(ForeignKey("members.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    contribution_type: Mapped[str] = mapped_column(String, index=True)
    status: Mapped[str] = mapped_column(String, default="confirmed")
    reference_number: Mapped[str | None] = mapped_column(String, nullable=True)
    # At most one ledger entry per gateway checkout.
    checkout_request_id: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    contribution_date: Mapped[date] = mapped_column(Date, default=date.today)
    recorded_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Disbursement(Base):
    """Money paid out of the fund to a member."""

    __tablename__ = "disbursements"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    member_id: Mapped[str] = mapped_column(ForeignKey("members.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, default="approved")
    disbursement_date: Mapped[date] = mapped_column(Date, default=date.today)
    recorded_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class MonthlyExpense(Base):
    """Running cost of the group itself, booked against a calendar month."""

    __tablename__ = "monthly_expenses"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    expense_date: Mapped[date] = mapped_column(Date, default=date.today)
    expense_category: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    # YYYY-MM of expense_date.
    month_year: Mapped[str] = mapped_column(String(7), index=True)
    recorded_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
