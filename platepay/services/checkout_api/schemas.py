"""API request/response schemas for the checkout payment endpoints.

Field names follow the storefront's camelCase JSON. Request fields are
loosely typed; the orchestrators enforce amount and id rules.
"""

from typing import Any

from pydantic import BaseModel

from platepay.services.paypal_gateway.models import ChargeRequest


class CreateOrderRequest(BaseModel):
    """Body accepted by `POST /payment/create-order` (amount in cents)."""

    amount: int | None = None
    orderId: str | None = None
    orderNumber: str | None = None
    payeeId: str | None = None
    payeeName: str | None = None
    payerName: str | None = None
    payerEmail: str | None = None

    def to_charge(self) -> ChargeRequest:
        return ChargeRequest(
            amount_minor_units=self.amount,
            internal_order_id=self.orderId,
            order_number=self.orderNumber,
            payee_id=self.payeeId,
            payee_name=self.payeeName,
            payer_name=self.payerName,
            payer_email=self.payerEmail,
        )


class CreateOrderResponse(BaseModel):
    success: bool = True
    gatewayOrderId: str
    status: str


class CaptureOrderRequest(BaseModel):
    """Body accepted by `POST /payment/capture-order`."""

    gatewayOrderId: str | None = None
    correlationOrderId: str | None = None


class CaptureOrderResponse(BaseModel):
    success: bool = True
    status: str
    gatewayOrderId: str
    captureId: str | None = None


class ErrorDetails(BaseModel):
    code: str
    requestId: str
    debug: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Envelope for every failed payment call; never carries upstream bodies."""

    success: bool = False
    error: str
    details: ErrorDetails
