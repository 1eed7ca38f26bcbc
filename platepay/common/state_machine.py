"""Checkout session state machine enforced by the payment driver.

Capture may only follow an approved gateway order; failed and cancelled
sessions may start over with a fresh order.
"""

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "IDLE": {"CREATING"},
    "CREATING": {"AWAITING_APPROVAL", "FAILED"},
    "AWAITING_APPROVAL": {"CAPTURING", "CANCELLED", "FAILED"},
    "CAPTURING": {"COMPLETED", "FAILED"},
    "COMPLETED": set(),
    "FAILED": {"CREATING"},
    "CANCELLED": {"CREATING"},
}


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValueError(f"Invalid transition: {current} -> {new}")
