"""Domain types exchanged with the PayPal orchestrators."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel

CHARGE_TYPE = "FOOD_ORDER"


class GatewayOrderStatus(str, Enum):
    """Order statuses reported by the PayPal Orders v2 API."""

    CREATED = "CREATED"
    SAVED = "SAVED"
    APPROVED = "APPROVED"
    VOIDED = "VOIDED"
    COMPLETED = "COMPLETED"
    PAYER_ACTION_REQUIRED = "PAYER_ACTION_REQUIRED"


class CaptureStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ChargeRequest(BaseModel):
    """Inbound charge for one internal food order.

    Unconstrained; the creation orchestrator validates it before any gateway call.
    """

    amount_minor_units: int | None = None
    internal_order_id: str | None = None
    order_number: str | None = None
    payee_id: str | None = None
    payee_name: str | None = None
    payer_name: str | None = None
    payer_email: str | None = None


class GatewayOrder(BaseModel):
    gateway_order_id: str
    status: str
    correlation_payload: str


class CaptureResult(BaseModel):
    status: CaptureStatus
    gateway_order_id: str
    capture_id: str | None = None


class AccessToken(BaseModel):
    value: str
    expires_in: int | None = None


def minor_to_major(amount_minor_units: int) -> str:
    """Exact cents -> decimal string with two places (1050 -> "10.50")."""

    return str((Decimal(amount_minor_units) / 100).quantize(Decimal("0.01")))
