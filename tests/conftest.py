"""Shared fixtures: a scripted PayPal API behind `httpx.MockTransport`.

Async tests run through AnyIO's pytest plugin on the asyncio backend.
Backoff sleeps are recorded instead of slept unless a test opts in.
"""

import httpx
import pytest

from platepay.services.paypal_gateway.config import PayPalConfig
from platepay.services.paypal_gateway.service import PayPalGateway

GATEWAY_ORDER_ID = "5O190127TN364715T"
CAPTURE_ID = "cap_9"


def capture_body(order_id: str = GATEWAY_ORDER_ID, capture_id: str | None = CAPTURE_ID, status: str = "COMPLETED"):
    captures = [{"id": capture_id, "status": "COMPLETED"}] if capture_id else []
    return {
        "id": order_id,
        "status": status,
        "purchase_units": [{"reference_id": "ord_1", "payments": {"captures": captures}}],
    }


class FakePayPal:
    """Records every request; pops scripted responses per endpoint.

    Queue items are `httpx.Response` objects or exceptions to raise. Empty
    queues fall back to a successful default response.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_responses: list = []
        self.create_responses: list = []
        self.capture_responses: list = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/v1/oauth2/token":
            queue = self.token_responses
            default = httpx.Response(200, json={"access_token": "A21AAtoken", "expires_in": 32400})
        elif path == "/v2/checkout/orders":
            queue = self.create_responses
            default = httpx.Response(201, json={"id": GATEWAY_ORDER_ID, "status": "CREATED"})
        elif path.endswith("/capture"):
            queue = self.capture_responses
            default = httpx.Response(201, json=capture_body())
        else:
            return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})

        item = queue.pop(0) if queue else default
        if isinstance(item, Exception):
            raise item
        return item

    def calls(self, suffix: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(suffix)]

    @property
    def token_calls(self) -> list[httpx.Request]:
        return self.calls("/v1/oauth2/token")

    @property
    def create_calls(self) -> list[httpx.Request]:
        return self.calls("/v2/checkout/orders")

    @property
    def capture_calls(self) -> list[httpx.Request]:
        return self.calls("/capture")


class SleepRecorder:
    """Stand-in for `asyncio.sleep` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Force pytest-anyio to use asyncio event loop."""

    return "asyncio"


@pytest.fixture
def fake_paypal() -> FakePayPal:
    return FakePayPal()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def paypal_config() -> PayPalConfig:
    return PayPalConfig(
        client_id="test-client",
        client_secret="test-secret",
        environment="sandbox",
        max_retries=3,
        base_delay_seconds=1.0,
        timeout_seconds=5.0,
    )


@pytest.fixture
async def paypal_client(fake_paypal):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_paypal.handler)) as client:
        yield client


@pytest.fixture
def gateway(paypal_config, paypal_client, sleeps) -> PayPalGateway:
    return PayPalGateway(paypal_config, paypal_client, service_name="test", sleep=sleeps)
