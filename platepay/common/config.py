"""Central environment-driven settings for the checkout services.

Each process loads this once at startup. Gateway credentials, retry policy
and environment selection are controlled by environment variables (see
`.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "checkout-api"
    log_level: str = "INFO"
    environment: str = "production"
    paypal_client_id: str | None = None
    paypal_client_secret: str | None = None
    paypal_environment: str = "sandbox"
    paypal_currency: str = "USD"
    paypal_brand_name: str = "Restaurants"
    paypal_partner_attribution_id: str | None = None
    min_charge_cents: int = 50
    paypal_max_retries: int = 3
    paypal_base_delay_seconds: float = 1.0
    paypal_timeout_seconds: float = 30.0
    paypal_token_cache_seconds: int = 0
    otel_exporter_otlp_endpoint: str = ""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


settings = CommonSettings()
