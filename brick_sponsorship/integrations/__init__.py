"""External integrations: Stripe and Redis."""
from .redis_client import create_redis_client
from .stripe_client import StripeClient, StripeErrorType

__all__ = ["StripeClient", "StripeErrorType", "create_redis_client"]
