"""Checkout-side PayPal driver.

Sits where the storefront's PayPal button widget calls back into the page:
`create_order` supplies the order id the buyer approves, `on_approve`
triggers capture, and `on_error`/`on_cancel` cover widget failures and
buyer cancellation. All gateway work goes through the checkout API.
"""

from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from platepay.common.errors import CAPTURE_FAILED, ORDER_CREATION_FAILED
from platepay.common.logging import logger
from platepay.common.state_machine import ALLOWED_TRANSITIONS, validate_transition
from platepay.services.checkout_driver.outcomes import (
    Cancelled,
    CheckoutFailed,
    Completed,
    Failed,
    PaymentOutcome,
)

NOT_CONFIGURED_MESSAGE = "PayPal is not configured. Please contact support."
WIDGET_ERROR_MESSAGE = "PayPal encountered an error. Please try again."
UNREACHABLE_MESSAGE = "Unable to reach the payment service. Please try again."
MISMATCH_MESSAGE = "This approval does not match your current order. Please try again."


class CheckoutDetails(BaseModel):
    """What the checkout page knows about the order being paid (cents)."""

    total_cents: int
    order_id: str
    order_number: str | None = None
    payee_id: str | None = None
    payee_name: str | None = None
    payer_name: str | None = None
    payer_email: str | None = None


class OrderManagement(Protocol):
    """Internal order bookkeeping owned outside the payment core."""

    async def record_gateway_order(self, internal_order_id: str, gateway_order_id: str) -> None: ...

    async def mark_paid(self, internal_order_id: str, capture_id: str | None) -> None: ...


class PayPalCheckoutDriver:
    """One checkout session's payment flow, sequenced by the checkout state machine."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        details: CheckoutDetails,
        paypal_client_id: str | None,
        orders: OrderManagement | None = None,
    ) -> None:
        self.client = client
        self.details = details
        self.paypal_client_id = paypal_client_id
        self.orders = orders
        self.state = "IDLE"
        self.processing = False
        self.error: str | None = None
        self.gateway_order_id: str | None = None
        if not self.is_configured:
            self.error = NOT_CONFIGURED_MESSAGE

    @property
    def is_configured(self) -> bool:
        return bool(self.paypal_client_id)

    def _transition(self, new_state: str) -> None:
        validate_transition(self.state, new_state)
        self.state = new_state

    def _fail(self, error_kind: str, message: str) -> Failed:
        """Record a failure and reset processing so the buyer can retry."""

        if "FAILED" in ALLOWED_TRANSITIONS.get(self.state, set()):
            self._transition("FAILED")
        self.processing = False
        self.error = message
        logger.error("checkout payment failed order_id=%s kind=%s", self.details.order_id, error_kind)
        return Failed(error_kind=error_kind, message=message)

    async def _post(self, path: str, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        try:
            response = await self.client.post(path, json=payload)
        except httpx.HTTPError as exc:
            logger.error("checkout api unreachable path=%s error=%s", path, exc)
            raise CheckoutFailed(Failed("NETWORK_ERROR", UNREACHABLE_MESSAGE)) from exc
        try:
            data = response.json()
        except ValueError:
            data = None
        return response.status_code, data if isinstance(data, dict) else {}

    @staticmethod
    def _error_kind(data: dict[str, Any], default: str) -> str:
        details = data.get("details")
        if isinstance(details, dict) and details.get("code"):
            return details["code"]
        return default

    async def create_order(self) -> str:
        """Open a gateway order for the widget; raises `CheckoutFailed` otherwise."""

        if not self.is_configured:
            raise CheckoutFailed(Failed("PAYPAL_NOT_CONFIGURED", NOT_CONFIGURED_MESSAGE))
        self._transition("CREATING")
        self.error = None

        payload = {
            "amount": self.details.total_cents,
            "orderId": self.details.order_id,
            "orderNumber": self.details.order_number,
            "payeeId": self.details.payee_id,
            "payeeName": self.details.payee_name,
            "payerName": self.details.payer_name,
            "payerEmail": self.details.payer_email,
        }
        try:
            status_code, data = await self._post("/payment/create-order", payload)
        except CheckoutFailed as exc:
            raise CheckoutFailed(self._fail(exc.outcome.error_kind, exc.outcome.message)) from exc

        gateway_order_id = data.get("gatewayOrderId")
        if status_code >= 400 or not data.get("success") or not gateway_order_id:
            outcome = self._fail(
                self._error_kind(data, ORDER_CREATION_FAILED),
                data.get("error") or "Failed to create PayPal order",
            )
            raise CheckoutFailed(outcome)

        self.gateway_order_id = gateway_order_id
        self._transition("AWAITING_APPROVAL")
        logger.info(
            "checkout paypal order created order_id=%s gateway_order_id=%s",
            self.details.order_id,
            gateway_order_id,
        )
        if self.orders is not None:
            await self.orders.record_gateway_order(self.details.order_id, gateway_order_id)
        return gateway_order_id

    async def on_approve(self, approved_order_id: str) -> PaymentOutcome:
        """Capture the buyer-approved order; only valid after `create_order`."""

        validate_transition(self.state, "CAPTURING")
        if approved_order_id != self.gateway_order_id:
            logger.warning(
                "approved order does not belong to this checkout order_id=%s expected=%s approved=%s",
                self.details.order_id,
                self.gateway_order_id,
                approved_order_id,
            )
            return self._fail("ORDER_MISMATCH", MISMATCH_MESSAGE)
        self._transition("CAPTURING")
        self.processing = True
        self.error = None

        try:
            status_code, data = await self._post(
                "/payment/capture-order",
                {"gatewayOrderId": approved_order_id, "correlationOrderId": self.details.order_id},
            )
        except CheckoutFailed as exc:
            return self._fail(exc.outcome.error_kind, exc.outcome.message)

        if status_code >= 400 or data.get("status") != "COMPLETED":
            return self._fail(
                self._error_kind(data, CAPTURE_FAILED),
                data.get("error") or "Payment capture failed",
            )

        self._transition("COMPLETED")
        self.processing = False
        outcome = Completed(gateway_order_id=approved_order_id, capture_id=data.get("captureId"))
        logger.info(
            "checkout payment captured order_id=%s gateway_order_id=%s",
            self.details.order_id,
            approved_order_id,
        )
        if self.orders is not None:
            await self.orders.mark_paid(self.details.order_id, outcome.capture_id)
        return outcome

    def on_error(self, err: Any) -> Failed:
        """Widget-level failure (script load, popup crash)."""

        logger.error("paypal widget error order_id=%s error=%s", self.details.order_id, err)
        return self._fail("PAYPAL_CLIENT_ERROR", WIDGET_ERROR_MESSAGE)

    def on_cancel(self) -> Cancelled:
        """Buyer closed the approval window; accepted in any session state."""

        outcome = Cancelled()
        if "CANCELLED" in ALLOWED_TRANSITIONS.get(self.state, set()):
            self._transition("CANCELLED")
        self.processing = False
        if self.state != "COMPLETED":
            self.error = outcome.message
        logger.info("checkout payment cancelled by buyer order_id=%s", self.details.order_id)
        return outcome
