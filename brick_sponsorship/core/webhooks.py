"""
Stripe webhook processing with signature verification and idempotent updates.

Implements:
- Configuration gate before the body is touched
- Signature verification over the raw, unparsed body
- Event type routing to registered handlers
- Purchase-record gated counter increments (safe under redelivery)

Stripe delivers events at least once and in any order. The purchase
record keyed by checkout session id is the de-duplication key: only the
delivery that creates it increments the counter.
"""
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from ..config import Settings, get_settings
from ..integrations.stripe_client import StripeClient
from ..monitoring.metrics import metrics
from .exceptions import ConfigurationError, InvalidSignature, UpstreamError
from .inventory import InventoryStore

logger = structlog.get_logger(__name__)

EventHandler = Callable[[Any], Awaitable[Dict[str, Any]]]


class EventKind(str, Enum):
    """Payment confirmation event kinds."""

    COMPLETED = "checkout.session.completed"
    SUCCEEDED = "payment_intent.succeeded"
    FAILED = "payment_intent.payment_failed"
    OTHER = "other"

    @classmethod
    def parse(cls, event_type: Any) -> "EventKind":
        try:
            return cls(event_type)
        except ValueError:
            return cls.OTHER


def parse_brick_count(metadata: Any) -> int:
    """
    Read ``brickCount`` from session metadata.

    Absent, unparsable and non-positive values all count as zero.
    """
    if not metadata:
        return 0
    try:
        raw = metadata["brickCount"]
    except (KeyError, TypeError):
        return 0
    try:
        count = int(str(raw).strip())
    except (TypeError, ValueError):
        return 0
    return count if count > 0 else 0


def _field(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


class WebhookProcessor:
    """
    Handles Stripe webhook deliveries.

    The processor is the only writer of the sponsored counter.
    """

    def __init__(
        self,
        inventory_factory: Callable[[], InventoryStore],
        stripe_client: Optional[StripeClient] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize webhook processor.

        Args:
            inventory_factory: Returns the counter store; called only for
                events that need it, so a missing store never blocks
                acknowledgement of other events
            stripe_client: Stripe client used for signature verification
            settings: Settings holding the secrets
        """
        self.settings = settings or get_settings()
        self.stripe_client = stripe_client or StripeClient(self.settings)
        self.inventory_factory = inventory_factory
        self.event_handlers: Dict[str, EventHandler] = {}

        self.register_handler(EventKind.COMPLETED.value, self.handle_checkout_session_completed)
        self.register_handler(EventKind.SUCCEEDED.value, self.handle_payment_intent_succeeded)
        self.register_handler(EventKind.FAILED.value, self.handle_payment_intent_payment_failed)

    def register_handler(self, event_type: str, handler: EventHandler) -> None:
        """
        Register a handler for a specific event type.

        Args:
            event_type: Stripe event type (e.g., 'checkout.session.completed')
            handler: Async callable receiving the event's data object
        """
        self.event_handlers[event_type] = handler
        logger.debug("webhook_handler_registered", event_type=event_type)

    def _require_secrets(self) -> str:
        if not self.settings.stripe_secret_key:
            metrics.record_webhook_rejection("configuration")
            logger.error("webhook_stripe_secret_key_missing")
            raise ConfigurationError(
                "STRIPE_SECRET_KEY is not defined",
                user_message="Server configuration error: Stripe key missing",
            )
        if not self.settings.stripe_webhook_secret:
            metrics.record_webhook_rejection("configuration")
            logger.error("webhook_secret_missing")
            raise ConfigurationError(
                "STRIPE_WEBHOOK_SECRET is not defined",
                user_message="Server configuration error: Webhook secret missing",
            )
        return self.settings.stripe_webhook_secret

    def verify_signature(self, payload: bytes, signature: Optional[str]) -> Any:
        """
        Verify the raw payload against the Stripe-Signature header.

        Raises:
            ConfigurationError: If the Stripe secrets are not configured
            InvalidSignature: If the header is missing or does not match
        """
        secret = self._require_secrets()

        if not signature:
            metrics.record_webhook_rejection("signature")
            logger.warning("webhook_signature_missing")
            raise InvalidSignature(
                "Stripe-Signature header missing",
                user_message="Webhook signature missing",
            )

        try:
            return self.stripe_client.construct_event(payload, signature, secret)
        except InvalidSignature:
            metrics.record_webhook_rejection("signature")
            raise

    async def handle(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Authenticate and process one webhook delivery.

        Args:
            payload: Raw request body, byte-exact
            signature: Stripe-Signature header value

        Returns:
            Dict[str, Any]: Processing result (status and event details)

        Raises:
            ConfigurationError: If secrets are missing
            InvalidSignature: If authentication fails
        """
        event = self.verify_signature(payload, signature)
        return await self.process_event(event)

    async def process_event(self, event: Any) -> Dict[str, Any]:
        """
        Route a verified event to its handler.

        Handler failures are logged and reported in the result, never
        raised: once a delivery is authenticated it is acknowledged, so
        Stripe does not redeliver it indefinitely.
        """
        start_time = time.time()
        event_id = _field(event, "id")
        event_type = _field(event, "type")
        event_data = _field(_field(event, "data"), "object")

        logger.info(
            "processing_webhook_event",
            event_id=event_id,
            event_type=event_type,
            event_kind=EventKind.parse(event_type).name.lower(),
        )

        handler = self.event_handlers.get(event_type)
        if handler is None:
            logger.info("webhook_unhandled_event_type", event_id=event_id, event_type=event_type)
            result: Dict[str, Any] = {"status": "unhandled"}
        else:
            try:
                result = await handler(event_data)
            except (UpstreamError, ConfigurationError) as e:
                # Accepted limitation: no retry queue, the purchase may go uncounted.
                logger.error(
                    "webhook_store_mutation_failed",
                    event_id=event_id,
                    event_type=event_type,
                    error=str(e),
                )
                result = {"status": "store_failed"}

        metrics.record_webhook_event(
            str(event_type), result["status"], time.time() - start_time
        )
        return {"event_id": event_id, "event_type": event_type, **result}

    async def handle_checkout_session_completed(self, session: Any) -> Dict[str, Any]:
        """
        Handle checkout.session.completed event.

        Records the purchase and increments the counter once per session.
        """
        session_id = _field(session, "id")
        metadata = _field(session, "metadata")
        brick_count = parse_brick_count(metadata)

        logger.info(
            "handling_checkout_session_completed",
            session_id=session_id,
            metadata=dict(metadata) if metadata else None,
            brick_count=brick_count,
            amount_total=_field(session, "amount_total"),
            currency=_field(session, "currency"),
            customer_email=_field(_field(session, "customer_details"), "email"),
        )

        if brick_count <= 0 or not session_id:
            logger.warning(
                "webhook_brick_count_missing",
                session_id=session_id,
                reason="brickCount is missing or zero, counter not updated",
            )
            return {"status": "skipped", "session_id": session_id, "bricks": 0}

        inventory = self.inventory_factory()
        applied = await inventory.apply_purchase(session_id, brick_count)

        if not applied:
            logger.info("webhook_duplicate_session", session_id=session_id)
            return {"status": "duplicate", "session_id": session_id, "bricks": brick_count}

        metrics.record_bricks_sponsored(brick_count)
        logger.info("webhook_purchase_recorded", session_id=session_id, bricks=brick_count)
        return {"status": "recorded", "session_id": session_id, "bricks": brick_count}

    async def handle_payment_intent_succeeded(self, payment_intent: Any) -> Dict[str, Any]:
        logger.info("payment_intent_succeeded", payment_intent_id=_field(payment_intent, "id"))
        return {"status": "logged"}

    async def handle_payment_intent_payment_failed(self, payment_intent: Any) -> Dict[str, Any]:
        # No notification or retry side effect is implemented for failed payments.
        error = _field(_field(payment_intent, "last_payment_error"), "message")
        logger.warning(
            "payment_intent_failed",
            payment_intent_id=_field(payment_intent, "id"),
            error=error,
        )
        return {"status": "logged"}
