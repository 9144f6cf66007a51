"""
Pytest configuration and fixtures.
"""
import hashlib
import hmac
import json
import time
from typing import Any, AsyncGenerator, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from brick_sponsorship.config import Settings
from brick_sponsorship.core.inventory import InventoryStore
from brick_sponsorship.integrations.stripe_client import StripeClient

WEBHOOK_SECRET = "whsec_test_fake_secret"


def pytest_configure(config: Any) -> None:
    config.addinivalue_line("markers", "unit: fast tests without external services")
    config.addinivalue_line("markers", "integration: tests through the HTTP API")


class InMemoryRedis:
    """Async test double for the subset of Redis commands the store uses."""

    def __init__(self) -> None:
        self.strings: Dict[str, str] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.calls: list[str] = []

    async def get(self, key: str) -> Optional[str]:
        self.calls.append("get")
        return self.strings.get(key)

    async def incrby(self, key: str, amount: int) -> int:
        self.calls.append("incrby")
        value = int(self.strings.get(key, "0")) + amount
        self.strings[key] = str(value)
        return value

    async def hexists(self, key: str, field: str) -> bool:
        self.calls.append("hexists")
        return field in self.hashes.get(key, {})

    async def hsetnx(self, key: str, field: str, value: str) -> int:
        self.calls.append("hsetnx")
        bucket = self.hashes.setdefault(key, {})
        if field in bucket:
            return 0
        bucket[field] = value
        return 1

    async def hgetall(self, key: str) -> Dict[str, str]:
        self.calls.append("hgetall")
        return dict(self.hashes.get(key, {}))

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass

    @property
    def mutations(self) -> list[str]:
        return [call for call in self.calls if call in ("incrby", "hsetnx")]


class UnavailableRedis:
    """Redis double whose every command fails with a connection error."""

    async def _fail(self, *args: Any, **kwargs: Any) -> Any:
        raise RedisConnectionError("Connection refused")

    get = incrby = hexists = hsetnx = hgetall = ping = _fail


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header for ``payload``."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(
    event_type: str = "checkout.session.completed",
    session_id: str = "cs_test_a1",
    metadata: Optional[Dict[str, str]] = None,
    event_id: str = "evt_test_1",
) -> bytes:
    """Serialize a Stripe event payload."""
    if event_type == "checkout.session.completed":
        data_object: Dict[str, Any] = {
            "id": session_id,
            "object": "checkout.session",
            "amount_total": 500000,
            "currency": "lkr",
            "customer_details": {"email": "donor@example.org"},
            "metadata": metadata if metadata is not None else {"brickCount": "5"},
        }
    else:
        data_object = {"id": "pi_test_1", "object": "payment_intent"}

    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {"object": data_object},
        }
    ).encode("utf-8")


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        stripe_secret_key="sk_test_fake_key_for_testing",
        stripe_publishable_key="pk_test_fake_key_for_testing",
        stripe_webhook_secret=WEBHOOK_SECRET,
        redis_url="redis://localhost:6379/1",
        app_name="brick-sponsorship-test",
        app_env="test",
        log_level="DEBUG",
    )


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def inventory(fake_redis: InMemoryRedis) -> InventoryStore:
    return InventoryStore(fake_redis)


@pytest.fixture
def mock_stripe_client(test_settings: Settings) -> AsyncMock:
    """StripeClient mock that keeps real signature verification."""
    client = AsyncMock(spec=StripeClient)
    client.construct_event = MagicMock(side_effect=StripeClient(test_settings).construct_event)
    session = MagicMock()
    session.id = "cs_test_created"
    client.create_checkout_session.return_value = session
    return client


@pytest_asyncio.fixture
async def client(
    test_settings: Settings,
    inventory: InventoryStore,
    mock_stripe_client: AsyncMock,
) -> AsyncGenerator[AsyncClient, Any]:
    """Create test HTTP client with the Stripe and Redis dependencies replaced."""
    from brick_sponsorship.api.dependencies import (
        get_checkout_creator,
        get_health_check,
        get_inventory_store,
        get_payment_verifier,
        get_webhook_processor,
    )
    from brick_sponsorship.api.main import app
    from brick_sponsorship.config import get_settings, validate_environment
    from brick_sponsorship.core.checkout import CheckoutSessionCreator
    from brick_sponsorship.core.verification import PaymentVerifier
    from brick_sponsorship.core.webhooks import WebhookProcessor
    from brick_sponsorship.monitoring.health import HealthCheck

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_inventory_store] = lambda: inventory
    app.dependency_overrides[get_checkout_creator] = lambda: CheckoutSessionCreator(
        stripe_client=mock_stripe_client, settings=test_settings
    )
    app.dependency_overrides[get_payment_verifier] = lambda: PaymentVerifier(
        stripe_client=mock_stripe_client
    )
    app.dependency_overrides[get_webhook_processor] = lambda: WebhookProcessor(
        inventory_factory=lambda: inventory,
        stripe_client=mock_stripe_client,
        settings=test_settings,
    )
    app.dependency_overrides[get_health_check] = lambda: HealthCheck(
        settings=test_settings,
        inventory_factory=lambda: inventory,
        environment_status=validate_environment(test_settings),
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
