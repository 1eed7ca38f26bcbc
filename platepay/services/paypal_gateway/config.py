"""Immutable gateway configuration handed to the PayPal components."""

from pydantic import BaseModel, ConfigDict

from platepay.common.config import CommonSettings
from platepay.common.http import RetryPolicy

SANDBOX_API_BASE = "https://api-m.sandbox.paypal.com"
LIVE_API_BASE = "https://api-m.paypal.com"


class PayPalConfig(BaseModel):
    """Per-environment PayPal settings; build one per gateway instance."""

    model_config = ConfigDict(frozen=True)

    client_id: str | None = None
    client_secret: str | None = None
    environment: str = "sandbox"
    currency_code: str = "USD"
    brand_name: str = "Restaurants"
    partner_attribution_id: str | None = None
    min_charge_cents: int = 50
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    timeout_seconds: float = 30.0
    token_cache_seconds: int = 0

    @classmethod
    def from_settings(cls, settings: CommonSettings) -> "PayPalConfig":
        return cls(
            client_id=settings.paypal_client_id,
            client_secret=settings.paypal_client_secret,
            environment=settings.paypal_environment,
            currency_code=settings.paypal_currency,
            brand_name=settings.paypal_brand_name,
            partner_attribution_id=settings.paypal_partner_attribution_id,
            min_charge_cents=settings.min_charge_cents,
            max_retries=settings.paypal_max_retries,
            base_delay_seconds=settings.paypal_base_delay_seconds,
            timeout_seconds=settings.paypal_timeout_seconds,
            token_cache_seconds=settings.paypal_token_cache_seconds,
        )

    @property
    def api_base(self) -> str:
        # Anything other than an explicit sandbox selector talks to live PayPal.
        return SANDBOX_API_BASE if self.environment.lower() == "sandbox" else LIVE_API_BASE

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id) and bool(self.client_secret)

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay_seconds=self.base_delay_seconds,
            timeout_seconds=self.timeout_seconds,
        )
