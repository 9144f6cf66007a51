"""
Stripe API client with error classification.

Implements:
- Checkout Session creation and retrieval
- Webhook signature verification
- Mapping of Stripe SDK errors onto the service error taxonomy

SDK calls are blocking, so they run in the default executor.
"""
import asyncio
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

import stripe
import structlog

from ..config import Settings, get_settings
from ..core.exceptions import ConfigurationError, InvalidSignature, UpstreamError
from ..monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class StripeErrorType(Enum):
    """Classification of Stripe errors."""

    TRANSIENT = "transient"  # Caller may retry
    PERMANENT = "permanent"  # Retrying will not help
    RATE_LIMIT = "rate_limit"  # Retry later


class StripeClient:
    """
    Thin wrapper over the Stripe SDK.

    Credentials are passed per call instead of being set on the global
    ``stripe`` module, so separate settings never leak into each other.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

        logger.info(
            "stripe_client_initialized",
            api_version=self.settings.stripe_api_version,
            test_mode=self.settings.is_test_mode,
            configured=bool(self.settings.stripe_secret_key),
        )

    def _require_secret_key(self) -> str:
        if not self.settings.stripe_secret_key:
            logger.error("stripe_secret_key_missing")
            raise ConfigurationError(
                "STRIPE_SECRET_KEY is not defined",
                user_message="Server configuration error: Stripe key missing",
            )
        return self.settings.stripe_secret_key

    @staticmethod
    def _classify_error(error: stripe.StripeError) -> StripeErrorType:
        """
        Classify Stripe error for retry decisions.

        Args:
            error: Stripe error

        Returns:
            StripeErrorType: Error classification
        """
        if isinstance(error, stripe.RateLimitError):
            return StripeErrorType.RATE_LIMIT
        elif isinstance(error, (stripe.APIConnectionError, stripe.APIError)):
            return StripeErrorType.TRANSIENT
        elif isinstance(
            error,
            (
                stripe.CardError,
                stripe.InvalidRequestError,
                stripe.AuthenticationError,
                stripe.PermissionError,
            ),
        ):
            return StripeErrorType.PERMANENT
        else:
            # Unknown errors are treated as transient
            return StripeErrorType.TRANSIENT

    def _to_upstream_error(
        self, operation: str, error: stripe.StripeError, user_message: str
    ) -> UpstreamError:
        error_type = self._classify_error(error)

        logger.error(
            "stripe_api_error",
            operation=operation,
            error_type=error_type.value,
            error_code=getattr(error, "code", None),
            error_message=str(error),
        )
        metrics.record_stripe_api_error(error_type.value)

        return UpstreamError(
            f"Stripe {operation} failed: {error}",
            user_message=user_message,
            original_error=error,
            retryable=error_type is not StripeErrorType.PERMANENT,
        )

    async def _call(self, operation: str, func: Callable[[], Any]) -> Any:
        start_time = time.time()
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, func)
        except stripe.StripeError:
            metrics.record_stripe_api_call(operation, "error", time.time() - start_time)
            raise
        metrics.record_stripe_api_call(operation, "success", time.time() - start_time)
        return result

    async def create_checkout_session(self, params: Dict[str, Any]) -> stripe.checkout.Session:
        """
        Create a hosted Checkout Session.

        Args:
            params: Session parameters (line items, redirects, metadata, ...)

        Returns:
            stripe.checkout.Session: Created session

        Raises:
            ConfigurationError: If the secret key is missing
            UpstreamError: If Stripe rejects or fails the call
        """
        api_key = self._require_secret_key()

        logger.info(
            "creating_checkout_session",
            line_items=len(params.get("line_items", [])),
            metadata=params.get("metadata"),
        )

        try:
            session = await self._call(
                "create_checkout_session",
                lambda: stripe.checkout.Session.create(
                    api_key=api_key,
                    stripe_version=self.settings.stripe_api_version,
                    **params,
                ),
            )
        except stripe.StripeError as e:
            raise self._to_upstream_error(
                "create_checkout_session", e, "Failed to create payment session"
            ) from e

        logger.info("checkout_session_created", session_id=session.id)
        return session

    async def retrieve_checkout_session(self, session_id: str) -> stripe.checkout.Session:
        """
        Retrieve a Checkout Session by ID.

        Raises:
            ConfigurationError: If the secret key is missing
            UpstreamError: If the session cannot be retrieved
        """
        api_key = self._require_secret_key()

        logger.info("retrieving_checkout_session", session_id=session_id)

        try:
            return await self._call(
                "retrieve_checkout_session",
                lambda: stripe.checkout.Session.retrieve(
                    session_id,
                    api_key=api_key,
                    stripe_version=self.settings.stripe_api_version,
                ),
            )
        except stripe.StripeError as e:
            raise self._to_upstream_error(
                "retrieve_checkout_session", e, "Failed to verify payment session"
            ) from e

    def construct_event(self, payload: bytes, signature: str, secret: str) -> stripe.Event:
        """
        Verify webhook signature and construct event.

        Args:
            payload: Raw request body as bytes, exactly as received
            signature: Stripe-Signature header value
            secret: Webhook signing secret

        Returns:
            stripe.Event: Verified Stripe event

        Raises:
            InvalidSignature: If verification fails or the payload is not an event
        """
        try:
            event = stripe.Webhook.construct_event(
                payload=payload,
                sig_header=signature,
                secret=secret,
            )
        except stripe.SignatureVerificationError as e:
            logger.error("webhook_signature_verification_failed", error=str(e))
            raise InvalidSignature(f"Invalid webhook signature: {e}", original_error=e) from e
        except ValueError as e:
            # Signed but not valid JSON
            logger.error("webhook_payload_invalid", error=str(e))
            raise InvalidSignature(f"Invalid webhook payload: {e}", original_error=e) from e

        logger.info(
            "webhook_signature_verified",
            event_id=event.id,
            event_type=event.type,
        )
        return event
