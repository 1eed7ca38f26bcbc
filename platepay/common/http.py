"""Outbound HTTP calls with per-attempt deadlines and exponential backoff.

One `invoke` is an explicit bounded loop: at most `max_retries + 1`
sequential attempts, sleeping `base_delay * 2**n` before retry `n + 1`.
Retryable outcomes are timeouts, dropped connections, HTTP 5xx and 429.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from platepay.common.errors import TransientNetworkFailure
from platepay.common.logging import logger
from platepay.common.metrics import paypal_request_duration_seconds, retries_total


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and per-attempt deadline for one dependency."""

    max_retries: int = 3
    base_delay_seconds: float = 1.0
    timeout_seconds: float = 30.0

    def worst_case_seconds(self) -> float:
        """Upper bound of one invoke: every attempt times out, every backoff is slept."""

        backoff = sum(backoff_delay(self.base_delay_seconds, n) for n in range(self.max_retries))
        return self.timeout_seconds * (self.max_retries + 1) + backoff


def backoff_delay(base_delay: float, retries_done: int) -> float:
    """Fixed exponential schedule, no jitter: base, 2*base, 4*base, ..."""

    return base_delay * (2**retries_done)


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


class ResilientInvoker:
    """Wraps a shared `httpx.AsyncClient` with timeout + retry handling.

    Holds no per-call state, so one instance serves concurrent operations.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        policy: RetryPolicy | None = None,
        service_name: str = "checkout-api",
        dependency: str = "paypal",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.policy = policy or RetryPolicy()
        self.service_name = service_name
        self.dependency = dependency
        self._sleep = sleep

    async def _attempt(self, method: str, url: str, timeout: float, endpoint: str, **request_kwargs):
        started = time.perf_counter()
        try:
            return await asyncio.wait_for(
                self.client.request(method, url, timeout=timeout, **request_kwargs),
                timeout=timeout,
            )
        finally:
            paypal_request_duration_seconds.labels(
                service=self.service_name,
                endpoint=endpoint,
            ).observe(max(0.0, time.perf_counter() - started))

    async def invoke(
        self,
        method: str,
        url: str,
        *,
        endpoint: str = "other",
        max_retries: int | None = None,
        base_delay: float | None = None,
        timeout: float | None = None,
        **request_kwargs: Any,
    ) -> httpx.Response:
        """Send one logical request and return the final response.

        Non-retryable statuses return after a single attempt. A retryable
        status that survives the whole budget is returned as-is so callers
        can classify it; exhausted timeouts and connection failures raise
        `TransientNetworkFailure`.
        """

        retries = self.policy.max_retries if max_retries is None else max(0, max_retries)
        base = self.policy.base_delay_seconds if base_delay is None else base_delay
        deadline = self.policy.timeout_seconds if timeout is None else timeout

        for attempt in range(retries + 1):
            failure: Exception | None = None
            timed_out = False
            response: httpx.Response | None = None
            try:
                response = await self._attempt(method, url, deadline, endpoint, **request_kwargs)
            except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
                failure, timed_out = exc, True
            except httpx.TransportError as exc:
                failure = exc

            if response is not None and not is_retryable_status(response.status_code):
                return response

            if attempt == retries:
                if response is not None:
                    logger.error(
                        "%s retries exhausted endpoint=%s attempts=%s status=%s",
                        self.dependency,
                        endpoint,
                        attempt + 1,
                        response.status_code,
                    )
                    return response
                if timed_out:
                    raise TransientNetworkFailure(
                        "PayPal API request timed out after multiple attempts",
                        timed_out=True,
                    ) from failure
                raise TransientNetworkFailure(
                    f"PayPal API request failed after {attempt + 1} attempts: {failure}",
                ) from failure

            delay = backoff_delay(base, attempt)
            retries_total.labels(service=self.service_name, dependency=self.dependency).inc()
            if response is not None:
                reason = f"status={response.status_code}"
            elif timed_out:
                reason = "timeout"
            else:
                reason = f"error={failure!r}"
            logger.warning(
                "%s request retry endpoint=%s attempt=%s %s backoff_s=%s retries_left=%s",
                self.dependency,
                endpoint,
                attempt + 1,
                reason,
                delay,
                retries - attempt,
            )
            await self._sleep(delay)

        raise AssertionError("unreachable: retry loop always returns or raises")
