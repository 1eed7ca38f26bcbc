"""OAuth2 client-credentials exchange against the PayPal token endpoint."""

import asyncio
import time
from typing import Callable

from platepay.common.errors import AuthFailure, ConfigurationError, TransientNetworkFailure
from platepay.common.http import ResilientInvoker
from platepay.common.logging import logger
from platepay.services.paypal_gateway.config import PayPalConfig
from platepay.services.paypal_gateway.models import AccessToken

# Refresh cached tokens this long before PayPal says they expire.
EXPIRY_MARGIN_SECONDS = 60


class TokenCache:
    """Optional short-lived token reuse; off unless a TTL is configured."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._token: AccessToken | None = None
        self._expires_at = 0.0
        self.lock = asyncio.Lock()

    def get(self) -> AccessToken | None:
        if self._token is None or self._clock() >= self._expires_at:
            return None
        return self._token

    def put(self, token: AccessToken) -> None:
        lifetime = float(self.ttl_seconds)
        if token.expires_in is not None:
            lifetime = min(lifetime, token.expires_in - EXPIRY_MARGIN_SECONDS)
        if lifetime <= 0:
            self.clear()
            return
        self._token = token
        self._expires_at = self._clock() + lifetime

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0


class GatewayAuthenticator:
    """Exchanges configured credentials for a bearer token.

    Without a cache every call performs a full token round trip, so each
    create/capture operation holds its own token.
    """

    def __init__(
        self,
        config: PayPalConfig,
        invoker: ResilientInvoker,
        cache: TokenCache | None = None,
    ) -> None:
        self.config = config
        self.invoker = invoker
        self.cache = cache

    async def get_access_token(self) -> AccessToken:
        if not self.config.has_credentials:
            raise ConfigurationError("PayPal credentials not configured")
        if self.cache is None:
            return await self._fetch_token()

        async with self.cache.lock:
            cached = self.cache.get()
            if cached is not None:
                return cached
            token = await self._fetch_token()
            self.cache.put(token)
            return token

    async def _fetch_token(self) -> AccessToken:
        try:
            response = await self.invoker.invoke(
                "POST",
                f"{self.config.api_base}/v1/oauth2/token",
                endpoint="oauth2_token",
                auth=(self.config.client_id, self.config.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data={"grant_type": "client_credentials"},
            )
        except TransientNetworkFailure as exc:
            logger.error("paypal access token request failed: %s", exc.message)
            raise AuthFailure(
                f"Failed to get PayPal access token: {exc.message}",
                timed_out=exc.timed_out,
            ) from exc

        if not response.is_success:
            logger.error(
                "paypal access token rejected upstream_status=%s upstream_body=%s",
                response.status_code,
                response.text,
            )
            raise AuthFailure(
                f"Failed to get PayPal access token: {response.status_code}",
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict) or not payload.get("access_token"):
            logger.error("paypal token response missing access_token status=%s", response.status_code)
            raise AuthFailure(
                "PayPal token response missing access_token",
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        expires_in = payload.get("expires_in")
        return AccessToken(
            value=payload["access_token"],
            expires_in=expires_in if isinstance(expires_in, int) else None,
        )
