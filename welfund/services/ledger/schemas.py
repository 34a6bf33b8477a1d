"""API request/response schemas for ledger endpoints."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class MemberCreateRequest(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone_number: str = Field(min_length=9, max_length=16)


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: str
    email: str
    phone_number: str
    registration_status: str
    tns_number: str | None = None


class StaffCreateRequest(BaseModel):
    email: str = Field(min_length=3)
    full_name: str = Field(min_length=1)
    staff_role: str


class StaffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str
    staff_role: str
    is_active: bool


class ContributionCreateRequest(BaseModel):
    """Manual payment entry made by a treasurer or secretary."""

    member_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    contribution_type: str = "monthly_contribution"
    reference_number: str | None = None
    contribution_date: date | None = None


class ContributionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    member_id: str
    amount: Decimal
    contribution_type: str
    status: str
    reference_number: str | None = None
    contribution_date: date


class DisbursementCreateRequest(BaseModel):
    member_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    reason: str = Field(min_length=1)
    disbursement_date: date | None = None


class DisbursementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    member_id: str
    amount: Decimal
    reason: str | None = None
    status: str
    disbursement_date: date


class BalanceResponse(BaseModel):
    member_id: str
    total_contributions: Decimal
    total_disbursements: Decimal
    current_balance: Decimal


class ExpenseCreateRequest(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    expense_category: str = Field(min_length=1)
    description: str | None = None
    expense_date: date | None = None


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: Decimal
    expense_date: date
    expense_category: str
    description: str | None = None
    month_year: str


class MonthlyFigures(BaseModel):
    month: str
    members: int
    contributions: Decimal
    disbursements: Decimal
    expenses: Decimal


class FinancialSummaryResponse(BaseModel):
    """Auditor portal overview."""

    total_members: int
    total_contributions: Decimal
    total_disbursements: Decimal
    total_expenses: Decimal
    current_month_expenses: Decimal
    net_position: Decimal
    monthly: list[MonthlyFigures]
