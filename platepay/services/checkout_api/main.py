"""Checkout payment API: PayPal order creation and capture.

Thin HTTP surface over `PayPalGateway`. Failures are mapped to a fixed
error envelope with a user-safe message and a request id for support;
upstream PayPal payloads only ever reach the server logs.
"""

import time
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from platepay.common.config import settings
from platepay.common.errors import ValidationError, describe_failure
from platepay.common.logging import configure_logging, logger, request_id_ctx
from platepay.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    payment_failure_total,
    payment_success_total,
)
from platepay.common.startup import log_startup_config, warn_if_gateway_unconfigured
from platepay.common.tracing import instrument_app, setup_tracing
from platepay.services.checkout_api.schemas import (
    CaptureOrderRequest,
    CaptureOrderResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    ErrorDetails,
    ErrorResponse,
)
from platepay.services.paypal_gateway.config import PayPalConfig
from platepay.services.paypal_gateway.service import PayPalGateway

configure_logging()
tracing_enabled = setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "ENVIRONMENT",
        "PAYPAL_ENVIRONMENT",
        "PAYPAL_CLIENT_ID",
        "PAYPAL_CLIENT_SECRET",
        "PAYPAL_MAX_RETRIES",
        "PAYPAL_BASE_DELAY_SECONDS",
        "PAYPAL_TIMEOUT_SECONDS",
        "PAYPAL_TOKEN_CACHE_SECONDS",
    ],
)
warn_if_gateway_unconfigured(settings)
paypal_config = PayPalConfig.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Share one pooled HTTP client across all gateway calls."""

    async with httpx.AsyncClient(timeout=paypal_config.timeout_seconds) as client:
        app.state.paypal = PayPalGateway(paypal_config, client, service_name=settings.service_name)
        yield


app = FastAPI(title="PlatePay Checkout API", lifespan=lifespan)
if tracing_enabled:
    instrument_app(app)

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def new_request_id() -> str:
    """Opaque id shown to the user and logged for support correlation."""

    return f"req_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def get_paypal_gateway(request: Request) -> PayPalGateway:
    return request.app.state.paypal


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Bind a request id and record request count and latency."""

    request_id = request.headers.get("x-request-id") or new_request_id()
    request.state.request_id = request_id
    request_id_ctx.set(request_id)

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
        response.headers["x-request-id"] = request_id
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


def _error_response(
    exc: Exception,
    request: Request,
    operation: str,
    config: PayPalConfig | None = None,
) -> JSONResponse:
    """Map a failure to the public error envelope and count it.

    `config` is the configuration of the gateway that served the call;
    development debug details describe it.
    """

    failure = describe_failure(exc)
    request_id = getattr(request.state, "request_id", None) or new_request_id()
    payment_failure_total.labels(
        service=settings.service_name,
        operation=operation,
        code=failure.code,
    ).inc()
    if failure.status_code >= 500:
        logger.error(
            "paypal %s failed code=%s request_id=%s error=%s",
            operation,
            failure.code,
            request_id,
            exc,
        )
    else:
        logger.warning("paypal %s rejected request_id=%s error=%s", operation, request_id, exc)

    debug = None
    if settings.is_development:
        config = config or paypal_config
        debug = {
            "message": str(exc),
            "apiBase": config.api_base,
            "hasClientId": bool(config.client_id),
            "hasClientSecret": bool(config.client_secret),
        }
    body = ErrorResponse(
        error=failure.message,
        details=ErrorDetails(code=failure.code, requestId=request_id, debug=debug),
    )
    return JSONResponse(status_code=failure.status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies with the payment error envelope (400, not 422)."""

    operation = "capture" if request.url.path.endswith("capture-order") else "create"
    logger.warning("malformed %s body errors=%s", operation, exc.errors())
    return _error_response(ValidationError("Invalid payment request"), request, operation)


@app.post("/payment/create-order", response_model=CreateOrderResponse, responses=ERROR_RESPONSES)
async def create_order(
    req: CreateOrderRequest,
    request: Request,
    gateway: PayPalGateway = Depends(get_paypal_gateway),
):
    """Open a PayPal order for one internal food order."""

    try:
        order = await gateway.create_order(req.to_charge())
    except Exception as exc:
        return _error_response(exc, request, "create", gateway.config)
    payment_success_total.labels(service=settings.service_name, operation="create").inc()
    return CreateOrderResponse(gatewayOrderId=order.gateway_order_id, status=order.status)


@app.post("/payment/capture-order", response_model=CaptureOrderResponse, responses=ERROR_RESPONSES)
async def capture_order(
    req: CaptureOrderRequest,
    request: Request,
    gateway: PayPalGateway = Depends(get_paypal_gateway),
):
    """Capture a buyer-approved PayPal order.

    The caller is expected to mark its internal order paid using the
    returned capture id, and not to call this again once it has.
    """

    try:
        result = await gateway.capture_order(req.gatewayOrderId, req.correlationOrderId)
    except Exception as exc:
        return _error_response(exc, request, "capture", gateway.config)
    payment_success_total.labels(service=settings.service_name, operation="capture").inc()
    return CaptureOrderResponse(
        status=result.status.value,
        gatewayOrderId=result.gateway_order_id,
        captureId=result.capture_id,
    )


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
