"""Check PayPal credentials and optionally open a test order.

Useful after rotating credentials or switching PAYPAL_ENVIRONMENT: performs a
token exchange and, with --amount-cents, creates an order the operator can
approve in the sandbox buyer account.
"""

import argparse
import asyncio
from uuid import uuid4

import httpx

from platepay.common.config import settings
from platepay.common.errors import PaymentError, describe_failure
from platepay.common.logging import configure_logging
from platepay.services.paypal_gateway.config import PayPalConfig
from platepay.services.paypal_gateway.models import ChargeRequest
from platepay.services.paypal_gateway.service import PayPalGateway


async def run(config: PayPalConfig, amount_cents: int | None, capture_id: str | None) -> int:
    """Run the requested checks and return a process exit code."""

    async with httpx.AsyncClient(timeout=config.timeout_seconds) as client:
        gateway = PayPalGateway(config, client, service_name="sandbox-check")
        try:
            await gateway.authenticator.get_access_token()
            print(f"token exchange ok api_base={config.api_base}")
            if amount_cents is not None:
                order = await gateway.create_order(
                    ChargeRequest(
                        amount_minor_units=amount_cents,
                        internal_order_id=f"check-{uuid4().hex[:12]}",
                        order_number="SANDBOX-CHECK",
                    )
                )
                print(f"order created id={order.gateway_order_id} status={order.status}")
            if capture_id is not None:
                result = await gateway.capture_order(capture_id)
                print(f"order captured id={result.gateway_order_id} capture_id={result.capture_id}")
        except PaymentError as exc:
            failure = describe_failure(exc)
            print(f"failed code={failure.code} message={exc.message} upstream_status={exc.upstream_status}")
            return 1
    return 0


def main() -> None:
    """Parse CLI args and run the gateway check."""

    parser = argparse.ArgumentParser(description="Verify PayPal credentials against the configured environment.")
    parser.add_argument("--amount-cents", type=int, default=None, help="Also create an order for this amount")
    parser.add_argument("--capture", dest="capture_id", default=None, help="Capture an approved order id")
    parser.add_argument("--max-retries", type=int, default=None)
    args = parser.parse_args()

    configure_logging()
    config = PayPalConfig.from_settings(settings)
    if args.max_retries is not None:
        config = config.model_copy(update={"max_retries": args.max_retries})
    raise SystemExit(asyncio.run(run(config, args.amount_cents, args.capture_id)))


if __name__ == "__main__":
    main()
