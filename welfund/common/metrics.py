"""Prometheus metric definitions shared across services."""

from time import perf_counter

from fastapi import FastAPI, Request
from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response

from welfund.common.config import settings


stk_push_requests_total = Counter("stk_push_requests_total", "Total STK push initiations", ["service"])
stk_push_failures_total = Counter(
    "stk_push_failures_total",
    "Failed STK push initiations by error type",
    ["service", "error_type"],
)
stk_push_latency_seconds = Histogram("stk_push_latency_seconds", "STK push round-trip seconds", ["service"])
mpesa_callbacks_total = Counter(
    "mpesa_callbacks_total",
    "Gateway callbacks received by outcome",
    ["service", "outcome"],
)
duplicate_callbacks_skipped_total = Counter(
    "duplicate_callbacks_skipped_total",
    "Callbacks ignored because the payment request was already terminal",
    ["service"],
)
contributions_recorded_total = Counter(
    "contributions_recorded_total",
    "Contributions written to the ledger",
    ["service", "contribution_type"],
)
disbursements_recorded_total = Counter("disbursements_recorded_total", "Disbursements recorded", ["service"])
expenses_recorded_total = Counter("expenses_recorded_total", "Group expenses recorded", ["service"])
reports_generated_total = Counter("reports_generated_total", "Reports rendered", ["service", "report", "fmt"])
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def install_http_metrics(app: FastAPI) -> None:
    """Record request count and latency for every HTTP call served by `app`."""

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
