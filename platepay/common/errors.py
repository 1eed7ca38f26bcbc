"""Failure taxonomy for gateway-facing payment operations.

Every error carries a stable machine code and the HTTP-equivalent status the
inbound API answers with. Upstream diagnostics (`upstream_status`,
`upstream_body`) are for server-side logs only.
"""

from dataclasses import dataclass
from typing import Any


class PaymentError(Exception):
    """Base class for all classified payment failures."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        upstream_status: int | None = None,
        upstream_body: Any = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
        self.timed_out = timed_out


class ValidationError(PaymentError):
    """Caller input is malformed; never retried, never sent upstream."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ConfigurationError(PaymentError):
    """Gateway credentials are missing; fails before any network call."""

    code = "PAYPAL_NOT_CONFIGURED"


class AuthFailure(PaymentError):
    """Token exchange was rejected or could not complete."""

    code = "PAYPAL_AUTH_FAILED"


class GatewayError(PaymentError):
    """Order creation or capture was rejected or came back inconsistent."""

    code = "PAYPAL_GATEWAY_ERROR"


class TransientNetworkFailure(PaymentError):
    """Timeouts, 5xx/429 or dropped connections that outlived the retry budget."""

    code = "PAYPAL_NETWORK_ERROR"

    def __init__(self, message: str, *, timed_out: bool = False, **kwargs: Any) -> None:
        super().__init__(message, timed_out=timed_out, **kwargs)
        if timed_out:
            self.code = "PAYPAL_TIMEOUT"


ORDER_CREATION_FAILED = "PAYPAL_ORDER_CREATION_FAILED"
CAPTURE_FAILED = "PAYPAL_CAPTURE_FAILED"

_GATEWAY_MESSAGES = {
    ORDER_CREATION_FAILED: "Failed to create PayPal order",
    CAPTURE_FAILED: "Failed to capture PayPal payment",
}


@dataclass(frozen=True)
class FailureDescription:
    """User-safe view of a failure: what the checkout UI may show."""

    code: str
    message: str
    status_code: int


def describe_failure(exc: BaseException) -> FailureDescription:
    """Map any exception to the code/message pair returned to end users."""

    if isinstance(exc, ValidationError):
        return FailureDescription(exc.code, exc.message, exc.status_code)
    if isinstance(exc, ConfigurationError):
        return FailureDescription(exc.code, "PayPal payment is temporarily unavailable", 500)
    if isinstance(exc, PaymentError) and exc.timed_out:
        return FailureDescription("PAYPAL_TIMEOUT", "PayPal service timed out. Please try again.", 500)
    if isinstance(exc, AuthFailure):
        return FailureDescription(exc.code, "Unable to authenticate with PayPal", 500)
    if isinstance(exc, GatewayError):
        message = _GATEWAY_MESSAGES.get(exc.code, "PayPal payment is temporarily unavailable")
        return FailureDescription(exc.code, message, exc.status_code)
    if isinstance(exc, TransientNetworkFailure):
        return FailureDescription(exc.code, "PayPal payment is temporarily unavailable", 500)
    return FailureDescription("INTERNAL_ERROR", "Failed to process PayPal payment", 500)
