"""Ledger service API: members, staff, contributions, disbursements, expenses, balances."""

from fastapi import Depends, FastAPI, Header, HTTPException, Query

from welfund.common.config import settings
from welfund.common.db import SessionLocal
from welfund.common.logging import configure_logging, member_id_ctx
from welfund.common.metrics import install_http_metrics, metrics_response
from welfund.common.portal import accessible_portals, authorized_portal_path
from welfund.common.startup import log_startup_config
from welfund.common.tracing import instrument_app, setup_tracing
from welfund.services.ledger.guard import require_portal
from welfund.services.ledger.schemas import (
    BalanceResponse,
    ContributionCreateRequest,
    ContributionResponse,
    DisbursementCreateRequest,
    DisbursementResponse,
    ExpenseCreateRequest,
    ExpenseResponse,
    FinancialSummaryResponse,
    MemberCreateRequest,
    MemberResponse,
    StaffCreateRequest,
    StaffResponse,
)
from welfund.services.ledger.service import LedgerService

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(settings.service_name, ["SERVICE_NAME", "DATABASE_URL", "SUPER_ADMIN_EMAIL"])
service = LedgerService(SessionLocal)

admin_only = require_portal(service, "admin")
treasury = require_portal(service, "admin", "secretary")
any_portal = require_portal(service, "admin", "secretary", "coordinator", "auditor")
audit_readers = require_portal(service, "admin", "auditor")

app = FastAPI(title="Welfund Ledger Service")
install_http_metrics(app)
instrument_app(app)


def _ledger_error(exc: ValueError) -> HTTPException:
    """Map service validation errors to HTTP status codes."""

    message = str(exc)
    if "not found" in message:
        return HTTPException(status_code=404, detail=message)
    if "already" in message or "not approved" in message:
        return HTTPException(status_code=409, detail=message)
    return HTTPException(status_code=400, detail=message)


@app.post("/members", response_model=MemberResponse, status_code=201)
def register_member(req: MemberCreateRequest, x_api_key: str | None = Header(default=None)):
    """Public self-registration; the member starts out pending."""

    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="invalid API key")
    try:
        return service.register_member(req.first_name, req.last_name, req.email, req.phone_number)
    except ValueError as exc:
        raise _ledger_error(exc) from exc


@app.get("/members", response_model=list[MemberResponse])
def list_members(
    status: str | None = None,
    limit: int = Query(500, ge=1, le=1000),
    staff=Depends(any_portal),
):
    return service.list_members(status=status, limit=limit)


@app.get("/members/{member_id}", response_model=MemberResponse)
def get_member(member_id: str, staff=Depends(any_portal)):
    member = service.get_member(member_id)
    if not member:
        raise HTTPException(status_code=404, detail="member not found")
    return member


@app.post("/members/{member_id}/approve", response_model=MemberResponse)
def approve_member(member_id: str, staff=Depends(admin_only)):
    """Approve a pending registration and assign its TNS number."""

    member_id_ctx.set(member_id)
    try:
        return service.approve_member(member_id)
    except ValueError as exc:
        raise _ledger_error(exc) from exc


@app.post("/members/{member_id}/reject", response_model=MemberResponse)
def reject_member(member_id: str, staff=Depends(admin_only)):
    member_id_ctx.set(member_id)
    try:
        return service.reject_member(member_id)
    except ValueError as exc:
        raise _ledger_error(exc) from exc


@app.get("/members/{member_id}/balance", response_model=BalanceResponse)
def member_balance(member_id: str, staff=Depends(any_portal)):
    try:
        return service.member_balance(member_id)
    except ValueError as exc:
        raise _ledger_error(exc) from exc


@app.post("/contributions", response_model=ContributionResponse, status_code=201)
def record_contribution(req: ContributionCreateRequest, staff=Depends(treasury)):
    """Manual payment entry."""

    member_id_ctx.set(req.member_id)
    try:
        return service.record_contribution(
            member_id=req.member_id,
            amount=req.amount,
            contribution_type=req.contribution_type,
            reference_number=req.reference_number,
            contribution_date=req.contribution_date,
            recorded_by=staff.email,
        )
    except ValueError as exc:
        raise _ledger_error(exc) from exc


@app.post("/disbursements", response_model=DisbursementResponse, status_code=201)
def record_disbursement(req: DisbursementCreateRequest, staff=Depends(admin_only)):
    member_id_ctx.set(req.member_id)
    try:
        return service.record_disbursement(
            member_id=req.member_id,
            amount=req.amount,
            reason=req.reason,
            disbursement_date=req.disbursement_date,
            recorded_by=staff.email,
        )
    except ValueError as exc:
        raise _ledger_error(exc) from exc


@app.post("/expenses", response_model=ExpenseResponse, status_code=201)
def record_expense(req: ExpenseCreateRequest, staff=Depends(admin_only)):
    try:
        return service.record_expense(
            amount=req.amount,
            expense_category=req.expense_category,
            description=req.description,
            expense_date=req.expense_date,
            recorded_by=staff.email,
        )
    except ValueError as exc:
        raise _ledger_error(exc) from exc


@app.get("/audit/summary", response_model=FinancialSummaryResponse)
def financial_summary(months: int = Query(12, ge=1, le=36), staff=Depends(audit_readers)):
    """Totals, net position and monthly trend for the auditor portal."""

    return service.financial_summary(months=months)


@app.post("/staff", response_model=StaffResponse, status_code=201)
def create_staff(req: StaffCreateRequest, staff=Depends(admin_only)):
    try:
        return service.create_staff(req.email, req.full_name, req.staff_role)
    except ValueError as exc:
        raise _ledger_error(exc) from exc


@app.get("/portals/me")
def my_portals(staff=Depends(any_portal)):
    """Portals the calling staff user may open and where to land after login."""

    return {
        "email": staff.email,
        "staff_role": staff.staff_role,
        "portals": accessible_portals(staff.staff_role, staff.email),
        "landing_path": authorized_portal_path(staff.staff_role, staff.email),
    }


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
