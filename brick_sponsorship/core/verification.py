"""Server-side verification of a completed Checkout Session."""
from enum import Enum
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel, Field

from ..integrations.stripe_client import StripeClient
from .exceptions import InvalidRequest

logger = structlog.get_logger(__name__)


class PaymentStatus(str, Enum):
    """Checkout Session payment status."""

    PAID = "paid"
    UNPAID = "unpaid"
    NO_PAYMENT_REQUIRED = "no_payment_required"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "PaymentStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class PaymentVerification(BaseModel):
    """Normalized view of a Checkout Session."""

    session_id: str = Field(..., description="Stripe Checkout Session ID")
    payment_status: PaymentStatus = Field(..., description="Payment status")
    amount_total: Optional[int] = Field(default=None, description="Total in minor units")
    currency: Optional[str] = Field(default=None, description="Currency code")
    customer_email: Optional[str] = Field(default=None, description="Customer email")
    metadata: Dict[str, str] = Field(default_factory=dict, description="Session metadata")
    created: Optional[int] = Field(default=None, description="Creation time (unix seconds)")


def _get(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


def normalize_session(session: Any) -> PaymentVerification:
    """Build a PaymentVerification from a Stripe session object."""
    metadata = _get(session, "metadata") or {}
    return PaymentVerification(
        session_id=_get(session, "id"),
        payment_status=PaymentStatus.parse(_get(session, "payment_status")),
        amount_total=_get(session, "amount_total"),
        currency=_get(session, "currency"),
        customer_email=_get(_get(session, "customer_details"), "email"),
        metadata={str(k): str(v) for k, v in dict(metadata).items()},
        created=_get(session, "created"),
    )


class PaymentVerifier:
    """Fetches the authoritative session state from Stripe."""

    def __init__(self, stripe_client: Optional[StripeClient] = None):
        self.stripe_client = stripe_client or StripeClient()

    async def verify(self, session_id: Any) -> PaymentVerification:
        """
        Verify a Checkout Session.

        Raises:
            InvalidRequest: If session_id is missing or empty
            ConfigurationError: If the Stripe secret key is missing
            UpstreamError: If Stripe cannot return the session
        """
        if not session_id or not isinstance(session_id, str) or not session_id.strip():
            raise InvalidRequest("Session ID missing", user_message="Session ID is required")

        session = await self.stripe_client.retrieve_checkout_session(session_id.strip())
        verification = normalize_session(session)

        logger.info(
            "payment_verified",
            session_id=verification.session_id,
            payment_status=verification.payment_status.value,
        )
        return verification
