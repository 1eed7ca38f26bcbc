"""Terminal outcomes of one checkout payment attempt.

Callers consume a `PaymentOutcome` with a single `match` instead of
registering separate success/error/cancel callbacks.
"""

from dataclasses import dataclass

CANCELLED_MESSAGE = "Payment was cancelled. You can try again when ready."


@dataclass(frozen=True)
class Completed:
    gateway_order_id: str
    capture_id: str | None = None


@dataclass(frozen=True)
class Failed:
    error_kind: str
    message: str


@dataclass(frozen=True)
class Cancelled:
    """Buyer closed the approval window; not an error, no gateway call made."""

    message: str = CANCELLED_MESSAGE


PaymentOutcome = Completed | Failed | Cancelled


class CheckoutFailed(Exception):
    """Raised by `create_order`, which must hand the widget an id or fail."""

    def __init__(self, outcome: Failed) -> None:
        super().__init__(outcome.message)
        self.outcome = outcome
