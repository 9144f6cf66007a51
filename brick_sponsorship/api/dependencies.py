"""FastAPI dependency providers."""
from functools import lru_cache

from fastapi import Depends
from redis.asyncio import Redis

from ..config import Settings, get_environment_status, get_settings
from ..core.checkout import CheckoutSessionCreator
from ..core.inventory import InventoryStore
from ..core.verification import PaymentVerifier
from ..core.webhooks import WebhookProcessor
from ..integrations.redis_client import create_redis_client
from ..integrations.stripe_client import StripeClient
from ..monitoring.health import HealthCheck


@lru_cache()
def get_redis_client() -> Redis:
    """Process-wide Redis connection pool. Raises ConfigurationError if unset."""
    return create_redis_client(get_settings())


async def close_redis_client() -> None:
    if get_redis_client.cache_info().currsize:
        await get_redis_client().aclose()
        get_redis_client.cache_clear()


def get_inventory_store() -> InventoryStore:
    return InventoryStore(get_redis_client())


@lru_cache()
def get_stripe_client() -> StripeClient:
    return StripeClient(get_settings())


def get_checkout_creator(
    settings: Settings = Depends(get_settings),
    stripe_client: StripeClient = Depends(get_stripe_client),
) -> CheckoutSessionCreator:
    return CheckoutSessionCreator(stripe_client=stripe_client, settings=settings)


def get_payment_verifier(
    stripe_client: StripeClient = Depends(get_stripe_client),
) -> PaymentVerifier:
    return PaymentVerifier(stripe_client=stripe_client)


def get_webhook_processor(
    settings: Settings = Depends(get_settings),
    stripe_client: StripeClient = Depends(get_stripe_client),
) -> WebhookProcessor:
    return WebhookProcessor(
        inventory_factory=get_inventory_store,
        stripe_client=stripe_client,
        settings=settings,
    )


def get_health_check(settings: Settings = Depends(get_settings)) -> HealthCheck:
    return HealthCheck(
        settings=settings,
        inventory_factory=get_inventory_store,
        environment_status=get_environment_status(),
    )
