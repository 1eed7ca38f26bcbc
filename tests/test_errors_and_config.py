"""User-facing failure mapping and gateway configuration."""

import pytest

from platepay.common.config import CommonSettings
from platepay.common.errors import (
    CAPTURE_FAILED,
    ORDER_CREATION_FAILED,
    AuthFailure,
    ConfigurationError,
    GatewayError,
    TransientNetworkFailure,
    ValidationError,
    describe_failure,
)
from platepay.common.http import RetryPolicy
from platepay.services.paypal_gateway.config import LIVE_API_BASE, SANDBOX_API_BASE, PayPalConfig


@pytest.mark.parametrize(
    ("exc", "code", "message", "status_code"),
    [
        (ValidationError("Order ID is required"), "VALIDATION_ERROR", "Order ID is required", 400),
        (ConfigurationError("no creds"), "PAYPAL_NOT_CONFIGURED", "PayPal payment is temporarily unavailable", 500),
        (AuthFailure("401"), "PAYPAL_AUTH_FAILED", "Unable to authenticate with PayPal", 500),
        (AuthFailure("slow", timed_out=True), "PAYPAL_TIMEOUT", "PayPal service timed out. Please try again.", 500),
        (
            GatewayError("x", code=ORDER_CREATION_FAILED),
            ORDER_CREATION_FAILED,
            "Failed to create PayPal order",
            500,
        ),
        (GatewayError("x", code=CAPTURE_FAILED), CAPTURE_FAILED, "Failed to capture PayPal payment", 500),
        (
            TransientNetworkFailure("reset"),
            "PAYPAL_NETWORK_ERROR",
            "PayPal payment is temporarily unavailable",
            500,
        ),
        (RuntimeError("boom"), "INTERNAL_ERROR", "Failed to process PayPal payment", 500),
    ],
)
def test_describe_failure(exc, code, message, status_code):
    """Each failure class maps to its user-facing code and message."""

    described = describe_failure(exc)

    assert (described.code, described.message, described.status_code) == (code, message, status_code)


def test_upstream_details_never_reach_the_description():
    """Upstream bodies stay out of user-facing descriptions."""

    exc = GatewayError("rejected", code=CAPTURE_FAILED, upstream_status=422, upstream_body={"debug_id": "d-1"})

    assert "d-1" not in repr(describe_failure(exc))


def test_timeout_flag_switches_network_code():
    """Timed-out network failures carry the timeout code."""

    assert TransientNetworkFailure("slow", timed_out=True).code == "PAYPAL_TIMEOUT"
    assert TransientNetworkFailure("reset").code == "PAYPAL_NETWORK_ERROR"


@pytest.mark.parametrize(
    ("environment", "api_base"),
    [("sandbox", SANDBOX_API_BASE), ("SANDBOX", SANDBOX_API_BASE), ("live", LIVE_API_BASE), ("", LIVE_API_BASE)],
)
def test_api_base_selection(environment, api_base):
    """Only the sandbox selector targets the sandbox API."""

    assert PayPalConfig(environment=environment).api_base == api_base


def test_config_from_settings():
    """Gateway config mirrors process settings."""

    settings = CommonSettings(
        paypal_client_id="cid",
        paypal_client_secret="secret",
        paypal_environment="live",
        paypal_max_retries=1,
        paypal_timeout_seconds=10.0,
        min_charge_cents=100,
    )

    config = PayPalConfig.from_settings(settings)

    assert config.has_credentials is True
    assert config.api_base == LIVE_API_BASE
    assert config.min_charge_cents == 100
    assert config.retry_policy == RetryPolicy(max_retries=1, base_delay_seconds=1.0, timeout_seconds=10.0)


def test_credentials_require_both_halves():
    """Client id and secret are both needed."""

    assert PayPalConfig(client_id="cid").has_credentials is False
    assert PayPalConfig(client_secret="secret").has_credentials is False
