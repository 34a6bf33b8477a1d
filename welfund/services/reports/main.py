"""Reports service API: downloadable contribution, disbursement, balance and expense reports."""

from datetime import date

from fastapi import Depends, FastAPI, HTTPException
from starlette.responses import Response

from welfund.common.config import settings
from welfund.common.db import SessionLocal
from welfund.common.logging import configure_logging, logger
from welfund.common.metrics import install_http_metrics, metrics_response, reports_generated_total
from welfund.common.startup import log_startup_config
from welfund.common.tracing import instrument_app, setup_tracing
from welfund.services.ledger.guard import require_portal
from welfund.services.ledger.service import LedgerService
from welfund.services.reports.generator import (
    FORMATS,
    REPORTS,
    ReportRenderer,
    balances_table,
    contributions_table,
    disbursements_table,
    expenses_table,
    report_filename,
)

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(settings.service_name, ["SERVICE_NAME", "DATABASE_URL", "ORGANISATION_NAME"])
ledger = LedgerService(SessionLocal)
renderer = ReportRenderer()

report_readers = require_portal(ledger, "admin", "auditor")

app = FastAPI(title="Welfund Reports Service")
install_http_metrics(app)
instrument_app(app)


def build_table(report: str, start_date: date | None, end_date: date | None):
    if report == "contributions":
        return contributions_table(ledger.contribution_rows(start_date, end_date), start_date, end_date)
    if report == "disbursements":
        return disbursements_table(ledger.disbursement_rows(start_date, end_date), start_date, end_date)
    if report == "expenses":
        return expenses_table(ledger.expense_rows(start_date, end_date), start_date, end_date)
    return balances_table(ledger.balances())


@app.get("/reports/{report}.{fmt}")
def download_report(
    report: str,
    fmt: str,
    start_date: date | None = None,
    end_date: date | None = None,
    staff=Depends(report_readers),
):
    """Render one report as an attachment."""

    if report not in REPORTS:
        raise HTTPException(status_code=404, detail=f"unknown report {report}")
    if fmt not in FORMATS:
        raise HTTPException(status_code=400, detail=f"unsupported format {fmt}")
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")

    content = renderer.render(build_table(report, start_date, end_date), fmt)
    reports_generated_total.labels(service=settings.service_name, report=report, fmt=fmt).inc()
    logger.info("report_generated report=%s fmt=%s requested_by=%s", report, fmt, staff.email)
    return Response(
        content=content,
        media_type=FORMATS[fmt],
        headers={"Content-Disposition": f'attachment; filename="{report_filename(report, fmt)}"'},
    )


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
