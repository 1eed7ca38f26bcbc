"""Unit tests for checkout session state-machine guardrails."""

import pytest

from platepay.common.state_machine import validate_transition


def test_valid_transition():
    """Sanity check: a legal transition should pass."""

    validate_transition("AWAITING_APPROVAL", "CAPTURING")


@pytest.mark.parametrize(
    ("current", "new"),
    [("IDLE", "CAPTURING"), ("CREATING", "CAPTURING"), ("COMPLETED", "CREATING"), ("CANCELLED", "CAPTURING")],
)
def test_invalid_transition(current, new):
    """Capture without an approved order must raise."""

    with pytest.raises(ValueError, match=f"{current} -> {new}"):
        validate_transition(current, new)


@pytest.mark.parametrize("current", ["FAILED", "CANCELLED"])
def test_failed_and_cancelled_sessions_can_start_over(current):
    """Failed or cancelled sessions may open a new order."""

    validate_transition(current, "CREATING")


def test_unknown_state_allows_nothing():
    """Unknown states have no outgoing transitions."""

    with pytest.raises(ValueError):
        validate_transition("SETTLED", "CREATING")
