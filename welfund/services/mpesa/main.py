"""MPESA service API: STK push initiation and the gateway callback webhook."""

from uuid import uuid4

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from welfund.common.config import settings
from welfund.common.db import SessionLocal
from welfund.common.errors import PaymentError
from welfund.common.logging import configure_logging, logger, trace_id_ctx
from welfund.common.metrics import install_http_metrics, metrics_response
from welfund.common.startup import log_startup_config
from welfund.common.tracing import instrument_app, setup_tracing
from welfund.services.ledger.service import LedgerService
from welfund.services.mpesa.client import DarajaClient
from welfund.services.mpesa.schemas import PaymentStatusResponse, StkPushRequest, StkPushResponse
from welfund.services.mpesa.service import MpesaService

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "DATABASE_URL",
        "MPESA_ENVIRONMENT",
        "MPESA_SHORTCODE",
        "MPESA_CALLBACK_URL",
        "MPESA_TIMEOUT_SECONDS",
        "MPESA_CONSUMER_KEY",
        "MPESA_PASSKEY",
    ],
)
service = MpesaService(SessionLocal, DarajaClient.from_settings(), LedgerService(SessionLocal))

CALLBACK_ACK = {"ResultCode": 0, "ResultDesc": "Accepted"}

app = FastAPI(title="Welfund MPESA Service")
install_http_metrics(app)
instrument_app(app)


def enforce_api_key(x_api_key: str | None) -> None:
    """Reject requests that do not provide the configured API key."""

    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="invalid API key")


@app.post("/payments/stk-push", response_model=StkPushResponse)
def stk_push(
    req: StkPushRequest,
    x_api_key: str | None = Header(default=None),
    x_trace_id: str | None = Header(default=None),
):
    """Prompt the member's phone for payment and record a pending request."""

    enforce_api_key(x_api_key)
    trace_id_ctx.set(x_trace_id or str(uuid4()))
    try:
        payment = service.initiate_payment(req)
    except ValueError as exc:
        status_code = 404 if "not found" in str(exc) else 400
        raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    except PaymentError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "error_type": exc.error_type},
        )
    return StkPushResponse(
        success=True,
        message="STK push sent successfully",
        checkout_request_id=payment.checkout_request_id,
    )


@app.get("/payments/{checkout_request_id}", response_model=PaymentStatusResponse)
def get_payment(checkout_request_id: str, x_api_key: str | None = Header(default=None)):
    """Current state of one payment request."""

    enforce_api_key(x_api_key)
    payment = service.get_payment(checkout_request_id)
    if not payment:
        raise HTTPException(status_code=404, detail="payment not found")
    return PaymentStatusResponse.model_validate(payment, from_attributes=True)


@app.post("/mpesa/callback")
async def mpesa_callback(request: Request):
    """Gateway webhook. Always acknowledged so the gateway does not keep retrying."""

    trace_id_ctx.set(str(uuid4()))
    try:
        body = await request.json()
    except ValueError as exc:
        logger.error("mpesa_callback_unparseable error=%s", exc)
        return CALLBACK_ACK
    try:
        outcome = service.handle_callback(body if isinstance(body, dict) else {})
    except Exception:
        logger.exception("mpesa_callback_unhandled")
        return CALLBACK_ACK
    logger.info("mpesa_callback_acknowledged outcome=%s", outcome)
    return CALLBACK_ACK


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
