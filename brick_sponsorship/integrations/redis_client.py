"""Redis client factory for the brick counter store."""
from typing import Optional

import redis.asyncio as aioredis
import structlog
from redis.asyncio import Redis

from ..config import Settings, get_settings
from ..core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


def create_redis_client(settings: Optional[Settings] = None) -> Redis:
    """
    Create a Redis client from settings.

    Raises:
        ConfigurationError: If REDIS_URL is not set. A missing store is
            never silently treated as an empty counter.
    """
    settings = settings or get_settings()
    if not settings.redis_url:
        logger.error("redis_config_missing")
        raise ConfigurationError(
            "Redis config missing: REDIS_URL not set",
            user_message="Server configuration error: counter store missing",
        )

    kwargs = {}
    if settings.redis_token:
        kwargs["password"] = settings.redis_token

    return aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
        **kwargs,
    )
