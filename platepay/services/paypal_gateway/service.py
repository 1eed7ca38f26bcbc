"""PayPal order orchestration: create an order, then capture it after approval.

Both flows validate locally, obtain a fresh bearer token, and make their
gateway call through the resilient invoker. Nothing is persisted here; the
order-management side records what the caller decides to record.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from platepay.common.errors import (
    CAPTURE_FAILED,
    ORDER_CREATION_FAILED,
    GatewayError,
    TransientNetworkFailure,
    ValidationError,
)
from platepay.common.http import ResilientInvoker
from platepay.common.logging import gateway_order_id_ctx, logger, order_id_ctx
from platepay.common.metrics import paypal_orders_total
from platepay.services.paypal_gateway.auth import GatewayAuthenticator, TokenCache
from platepay.services.paypal_gateway.config import PayPalConfig
from platepay.services.paypal_gateway.models import (
    CHARGE_TYPE,
    AccessToken,
    CaptureResult,
    CaptureStatus,
    ChargeRequest,
    GatewayOrder,
    GatewayOrderStatus,
    minor_to_major,
)


def _response_body(response: httpx.Response) -> Any:
    """Decoded JSON when possible, raw text otherwise (diagnostics only)."""

    try:
        return response.json()
    except ValueError:
        return response.text


def _first_capture_id(payload: dict) -> str | None:
    try:
        capture_id = payload["purchase_units"][0]["payments"]["captures"][0]["id"]
    except (KeyError, IndexError, TypeError):
        return None
    return capture_id if isinstance(capture_id, str) and capture_id else None


def _bearer_headers(token: AccessToken, config: PayPalConfig, attribution: bool = False) -> dict[str, str]:
    headers = {
        "Authorization": f"Bearer {token.value}",
        "Content-Type": "application/json",
    }
    if attribution and config.partner_attribution_id:
        headers["PayPal-Partner-Attribution-Id"] = config.partner_attribution_id
    return headers


class OrderCreationOrchestrator:
    """Turns a validated `ChargeRequest` into a PayPal order awaiting approval."""

    def __init__(
        self,
        config: PayPalConfig,
        authenticator: GatewayAuthenticator,
        invoker: ResilientInvoker,
        service_name: str = "checkout-api",
    ) -> None:
        self.config = config
        self.authenticator = authenticator
        self.invoker = invoker
        self.service_name = service_name

    def _validate_charge(self, charge: ChargeRequest) -> tuple[int, str]:
        """Amount floor and correlation key checks; runs before any I/O."""

        amount = charge.amount_minor_units
        minimum = self.config.min_charge_cents
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < minimum:
            raise ValidationError(
                f"Amount must be at least {minor_to_major(minimum)} {self.config.currency_code}"
            )
        order_id = charge.internal_order_id
        if not isinstance(order_id, str) or not order_id.strip():
            raise ValidationError("Order ID is required")
        return amount, order_id

    def correlation_payload(self, charge: ChargeRequest) -> str:
        """Compact JSON stored as `custom_id` for later reconciliation."""

        fields = {
            "orderId": charge.internal_order_id,
            "orderNumber": charge.order_number,
            "payeeId": charge.payee_id,
            "payeeName": charge.payee_name,
            "payerName": charge.payer_name,
            "payerEmail": charge.payer_email,
            "chargeType": CHARGE_TYPE,
        }
        return json.dumps(
            {key: value for key, value in fields.items() if value is not None},
            separators=(",", ":"),
        )

    def build_order_body(self, charge: ChargeRequest) -> dict[str, Any]:
        amount, order_id = self._validate_charge(charge)
        payee = charge.payee_name or self.config.brand_name
        purchase_unit = {
            "reference_id": order_id,
            "description": f"{payee} - Food Order {charge.order_number or ''}".strip(),
            "amount": {
                "currency_code": self.config.currency_code,
                "value": minor_to_major(amount),
            },
            "custom_id": self.correlation_payload(charge),
        }
        return {
            "intent": "CAPTURE",
            "purchase_units": [purchase_unit],
            "application_context": {
                "brand_name": payee,
                "landing_page": "NO_PREFERENCE",
                "user_action": "PAY_NOW",
                "shipping_preference": "NO_SHIPPING",
            },
        }

    def _failed(self, message: str, **kwargs: Any) -> GatewayError:
        paypal_orders_total.labels(service=self.service_name, operation="create", outcome="failed").inc()
        return GatewayError(message, code=ORDER_CREATION_FAILED, **kwargs)

    async def create_order(self, charge: ChargeRequest) -> GatewayOrder:
        body = self.build_order_body(charge)
        order_id_ctx.set(charge.internal_order_id or "")
        token = await self.authenticator.get_access_token()

        try:
            response = await self.invoker.invoke(
                "POST",
                f"{self.config.api_base}/v2/checkout/orders",
                endpoint="create_order",
                headers=_bearer_headers(token, self.config, attribution=True),
                json=body,
            )
        except TransientNetworkFailure as exc:
            logger.error("paypal create order failed after retries: %s", exc.message)
            raise self._failed(f"Failed to create PayPal order: {exc.message}", timed_out=exc.timed_out) from exc

        if not response.is_success:
            upstream = _response_body(response)
            logger.error(
                "paypal create order rejected upstream_status=%s upstream_body=%s",
                response.status_code,
                upstream,
            )
            raise self._failed(
                "Failed to create PayPal order",
                upstream_status=response.status_code,
                upstream_body=upstream,
            )

        data = _response_body(response)
        gateway_order_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(gateway_order_id, str) or not gateway_order_id:
            logger.error("paypal create order response without id status=%s", response.status_code)
            raise self._failed(
                "PayPal order response did not include an order id",
                upstream_status=response.status_code,
                upstream_body=data,
            )

        gateway_order_id_ctx.set(gateway_order_id)
        status = data.get("status")
        if not isinstance(status, str) or not status:
            status = GatewayOrderStatus.CREATED.value
        paypal_orders_total.labels(service=self.service_name, operation="create", outcome="created").inc()
        logger.info("paypal order created gateway_order_id=%s status=%s", gateway_order_id, status)
        return GatewayOrder(
            gateway_order_id=gateway_order_id,
            status=status,
            correlation_payload=body["purchase_units"][0]["custom_id"],
        )


class OrderCaptureOrchestrator:
    """Captures an approved PayPal order; the irrevocable money-movement step.

    Repeated calls are not deduplicated here. Callers must check their own
    paid/unpaid record before capturing again.
    """

    def __init__(
        self,
        config: PayPalConfig,
        authenticator: GatewayAuthenticator,
        invoker: ResilientInvoker,
        service_name: str = "checkout-api",
    ) -> None:
        self.config = config
        self.authenticator = authenticator
        self.invoker = invoker
        self.service_name = service_name

    def _failed(self, message: str, **kwargs: Any) -> GatewayError:
        paypal_orders_total.labels(service=self.service_name, operation="capture", outcome="failed").inc()
        return GatewayError(message, code=CAPTURE_FAILED, **kwargs)

    async def capture_order(
        self,
        gateway_order_id: str | None,
        correlation_order_id: str | None = None,
    ) -> CaptureResult:
        if not isinstance(gateway_order_id, str) or not gateway_order_id.strip():
            raise ValidationError("PayPal order ID is required")
        gateway_order_id_ctx.set(gateway_order_id)
        if correlation_order_id:
            order_id_ctx.set(correlation_order_id)

        token = await self.authenticator.get_access_token()
        try:
            response = await self.invoker.invoke(
                "POST",
                f"{self.config.api_base}/v2/checkout/orders/{quote(gateway_order_id, safe='')}/capture",
                endpoint="capture_order",
                headers=_bearer_headers(token, self.config),
            )
        except TransientNetworkFailure as exc:
            logger.error("paypal capture failed after retries: %s", exc.message)
            raise self._failed(f"Failed to capture PayPal payment: {exc.message}", timed_out=exc.timed_out) from exc

        data = _response_body(response)
        if not response.is_success:
            logger.error(
                "paypal capture rejected upstream_status=%s upstream_body=%s",
                response.status_code,
                data,
            )
            raise self._failed(
                "Failed to capture PayPal payment",
                upstream_status=response.status_code,
                upstream_body=data,
            )

        status = data.get("status") if isinstance(data, dict) else None
        if status != CaptureStatus.COMPLETED.value:
            logger.error("paypal capture not completed status=%s upstream_body=%s", status, data)
            raise self._failed(
                f"PayPal capture returned status {status}",
                upstream_status=response.status_code,
                upstream_body=data,
            )

        capture_id = _first_capture_id(data)
        if capture_id is None:
            # PayPal is authoritative on money movement; report, don't fail.
            logger.warning("paypal capture COMPLETED without capture id gateway_order_id=%s", gateway_order_id)
        paypal_orders_total.labels(service=self.service_name, operation="capture", outcome="completed").inc()
        logger.info(
            "paypal payment captured gateway_order_id=%s capture_id=%s",
            gateway_order_id,
            capture_id,
        )
        if correlation_order_id:
            logger.info("paypal payment completed for order %s", correlation_order_id)
        echoed_id = data.get("id")
        return CaptureResult(
            status=CaptureStatus.COMPLETED,
            gateway_order_id=echoed_id if isinstance(echoed_id, str) and echoed_id else gateway_order_id,
            capture_id=capture_id,
        )


class PayPalGateway:
    """One invoker, one authenticator and both orchestrators over a shared client."""

    def __init__(
        self,
        config: PayPalConfig,
        client: httpx.AsyncClient,
        service_name: str = "checkout-api",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.invoker = ResilientInvoker(
            client,
            config.retry_policy,
            service_name=service_name,
            sleep=sleep,
        )
        cache = TokenCache(config.token_cache_seconds) if config.token_cache_seconds > 0 else None
        self.authenticator = GatewayAuthenticator(config, self.invoker, cache)
        self.creation = OrderCreationOrchestrator(config, self.authenticator, self.invoker, service_name)
        self.capture = OrderCaptureOrchestrator(config, self.authenticator, self.invoker, service_name)

    async def create_order(self, charge: ChargeRequest) -> GatewayOrder:
        return await self.creation.create_order(charge)

    async def capture_order(
        self,
        gateway_order_id: str | None,
        correlation_order_id: str | None = None,
    ) -> CaptureResult:
        return await self.capture.capture_order(gateway_order_id, correlation_order_id)
