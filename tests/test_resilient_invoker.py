"""Retry, backoff and deadline behaviour of the outbound HTTP invoker."""

import asyncio
import time

import httpx
import pytest

from conftest import SleepRecorder
from platepay.common.errors import TransientNetworkFailure
from platepay.common.http import ResilientInvoker, RetryPolicy, backoff_delay, is_retryable_status

pytestmark = pytest.mark.anyio

URL = "https://api-m.sandbox.paypal.com/v2/checkout/orders"


class ScriptedTransport:
    """Counts attempts and answers each one from a callable."""

    def __init__(self, answer) -> None:
        self.answer = answer
        self.attempts = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.attempts += 1
        return await self.answer(request, self.attempts)


def make_invoker(answer, sleep=None, **policy):
    transport = ScriptedTransport(answer)
    client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    invoker = ResilientInvoker(
        client,
        RetryPolicy(**{"max_retries": 3, "base_delay_seconds": 1.0, "timeout_seconds": 5.0, **policy}),
        service_name="test",
        sleep=sleep or SleepRecorder(),
    )
    return invoker, transport, client


def status_answer(status_code: int):
    async def answer(request, attempt):
        return httpx.Response(status_code, json={"attempt": attempt})

    return answer


async def raise_read_timeout(request, attempt):
    raise httpx.ReadTimeout("read timed out", request=request)


@pytest.mark.parametrize("status_code", [400, 401, 403, 404, 422])
async def test_non_retryable_status_is_single_attempt(status_code):
    """Client errors return after one attempt."""

    sleeps = SleepRecorder()
    invoker, transport, client = make_invoker(status_answer(status_code), sleep=sleeps)
    async with client:
        response = await invoker.invoke("POST", URL)

    assert response.status_code == status_code
    assert transport.attempts == 1
    assert sleeps.delays == []


@pytest.mark.parametrize("status_code", [500, 502, 503, 429])
async def test_retryable_status_uses_whole_budget_with_doubling_delays(status_code):
    """Retryable statuses back off 1, 2, 4 seconds."""

    sleeps = SleepRecorder()
    invoker, transport, client = make_invoker(status_answer(status_code), sleep=sleeps)
    async with client:
        response = await invoker.invoke("POST", URL)

    assert response.status_code == status_code
    assert response.json() == {"attempt": 4}
    assert transport.attempts == 4
    assert sleeps.delays == [1.0, 2.0, 4.0]


async def test_recovers_when_gateway_comes_back():
    """A later success ends the retry loop."""

    async def answer(request, attempt):
        if attempt < 3:
            return httpx.Response(503)
        return httpx.Response(201, json={"id": "ok"})

    sleeps = SleepRecorder()
    invoker, transport, client = make_invoker(answer, sleep=sleeps)
    async with client:
        response = await invoker.invoke("POST", URL)

    assert response.status_code == 201
    assert transport.attempts == 3
    assert sleeps.delays == [1.0, 2.0]


async def test_exhausted_timeouts_raise_timeout_failure():
    """Exhausted timeouts raise a timed-out failure."""

    sleeps = SleepRecorder()
    invoker, transport, client = make_invoker(raise_read_timeout, sleep=sleeps)
    async with client:
        with pytest.raises(TransientNetworkFailure) as excinfo:
            await invoker.invoke("POST", URL)

    assert excinfo.value.timed_out is True
    assert excinfo.value.code == "PAYPAL_TIMEOUT"
    assert "timed out after multiple attempts" in str(excinfo.value)
    assert transport.attempts == 4
    assert sleeps.delays == [1.0, 2.0, 4.0]


async def test_slow_attempt_is_aborted_at_the_deadline():
    """The per-attempt deadline cuts off slow responses."""

    async def answer(request, attempt):
        await asyncio.sleep(5)
        return httpx.Response(200)

    invoker, transport, client = make_invoker(answer, max_retries=1, timeout_seconds=0.05)
    started = time.perf_counter()
    async with client:
        with pytest.raises(TransientNetworkFailure) as excinfo:
            await invoker.invoke("GET", URL)

    assert excinfo.value.timed_out is True
    assert transport.attempts == 2
    assert time.perf_counter() - started < 2


async def test_connection_errors_are_retried_then_reported_without_timeout_flag():
    """Connection errors are retried and reported as network errors."""

    async def answer(request, attempt):
        raise httpx.ConnectError("connection refused", request=request)

    invoker, transport, client = make_invoker(answer, max_retries=2)
    async with client:
        with pytest.raises(TransientNetworkFailure) as excinfo:
            await invoker.invoke("POST", URL)

    assert excinfo.value.timed_out is False
    assert excinfo.value.code == "PAYPAL_NETWORK_ERROR"
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert transport.attempts == 3


async def test_per_call_overrides_take_precedence_over_policy():
    """Call-level retry settings override the policy."""

    sleeps = SleepRecorder()
    invoker, transport, client = make_invoker(status_answer(500), sleep=sleeps)
    async with client:
        response = await invoker.invoke("POST", URL, max_retries=1, base_delay=0.5)

    assert response.status_code == 500
    assert transport.attempts == 2
    assert sleeps.delays == [0.5]


async def test_real_backoff_sleeps_add_up():
    """Real backoff sleeps are actually awaited."""

    invoker, transport, client = make_invoker(
        raise_read_timeout,
        sleep=asyncio.sleep,
        max_retries=2,
        base_delay_seconds=0.02,
    )
    started = time.perf_counter()
    async with client:
        with pytest.raises(TransientNetworkFailure):
            await invoker.invoke("POST", URL)

    assert transport.attempts == 3
    assert time.perf_counter() - started >= 0.02 + 0.04


def test_backoff_schedule_and_worst_case_budget():
    """Backoff doubles and the worst case is bounded."""

    assert [backoff_delay(1.0, n) for n in range(3)] == [1.0, 2.0, 4.0]
    assert RetryPolicy().worst_case_seconds() == 30.0 * 4 + 1 + 2 + 4


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [(200, False), (404, False), (429, True), (500, True), (504, True)],
)
def test_retryable_status_classification(status_code, expected):
    """5xx and 429 are retryable, others are not."""

    assert is_retryable_status(status_code) is expected
