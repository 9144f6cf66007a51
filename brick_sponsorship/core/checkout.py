"""
Checkout Session creation from a client-held cart.

Each cart entry is one brick and becomes its own line item with
quantity 1. Prices arrive in major currency units and are sent to
Stripe in minor units.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog
from pydantic import BaseModel, Field, ValidationError

from ..config import Settings, get_settings
from ..integrations.stripe_client import StripeClient
from ..monitoring.metrics import metrics
from .exceptions import InvalidCart
from .urls import cancel_url, success_url

logger = structlog.get_logger(__name__)

DONATION_TYPE = "chaithya_bricks"
PRODUCT_NAME = "Sacred Brick - {section}"
PRODUCT_DESCRIPTION = "Sponsoring a brick in the {section} section of the Sacred Chaithya"
DONOR_MESSAGE_LABEL = "Optional Message for the Sacred Chaithya"


class CartItem(BaseModel):
    """A single brick placed in the cart."""

    id: str = Field(..., min_length=1, description="Brick identifier")
    section: str = Field(..., min_length=1, description="Monument section name")
    price: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Price in major currency units"
    )


def to_minor_units(price: float) -> int:
    """Convert a major-unit price to integer minor units (cents)."""
    return int(round(price * 100))


def parse_cart(items: Any) -> List[CartItem]:
    """
    Validate raw cart items.

    Raises:
        InvalidCart: If items is missing, not a list, empty, or holds an
            entry that is not a valid cart item
    """
    if not items or not isinstance(items, (list, tuple)):
        raise InvalidCart("Cart items missing, not a list, or empty")

    cart: List[CartItem] = []
    for index, item in enumerate(items):
        try:
            cart.append(CartItem.model_validate(item))
        except ValidationError as e:
            raise InvalidCart(f"Cart item {index} is invalid: {e}") from e
    return cart


def build_line_items(items: Sequence[CartItem], currency: str) -> List[Dict[str, Any]]:
    return [
        {
            "price_data": {
                "currency": currency,
                "product_data": {
                    "name": PRODUCT_NAME.format(section=item.section),
                    "description": PRODUCT_DESCRIPTION.format(section=item.section),
                },
                "unit_amount": to_minor_units(item.price),
            },
            "quantity": 1,
        }
        for item in items
    ]


def build_metadata(
    items: Sequence[CartItem], metadata: Optional[Mapping[str, Any]] = None
) -> Dict[str, str]:
    """Caller metadata plus the derived brick total and donation tag."""
    merged = {str(key): str(value) for key, value in (metadata or {}).items()}
    merged["totalBricks"] = str(len(items))
    merged["donationType"] = DONATION_TYPE
    return merged


def build_session_params(
    items: Sequence[CartItem],
    base_url: str,
    settings: Settings,
    metadata: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Assemble the Checkout Session request. Pure; makes no remote call."""
    return {
        "payment_method_types": ["card"],
        "line_items": build_line_items(items, settings.checkout_currency),
        "mode": "payment",
        "success_url": success_url(base_url),
        "cancel_url": cancel_url(base_url),
        "metadata": build_metadata(items, metadata),
        "billing_address_collection": "required",
        "shipping_address_collection": {
            "allowed_countries": settings.get_shipping_countries_list(),
        },
        "custom_fields": [
            {
                "key": "donor_message",
                "label": {"type": "custom", "custom": DONOR_MESSAGE_LABEL},
                "type": "text",
                "optional": True,
            }
        ],
    }


class CheckoutSessionCreator:
    """Builds and creates Stripe Checkout Sessions for brick carts."""

    def __init__(
        self,
        stripe_client: Optional[StripeClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.stripe_client = stripe_client or StripeClient(self.settings)

    async def create_session(
        self,
        items: Any,
        base_url: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Create a Checkout Session for the cart.

        Args:
            items: Raw cart items from the request body
            base_url: Resolved base URL for the redirects
            metadata: Optional caller metadata

        Returns:
            str: Stripe Checkout Session ID

        Raises:
            InvalidCart: If the cart is invalid (no remote call is made)
            ConfigurationError: If the Stripe secret key is missing
            UpstreamError: If Stripe fails
        """
        cart = parse_cart(items)
        params = build_session_params(cart, base_url, self.settings, metadata)

        session = await self.stripe_client.create_checkout_session(params)

        metrics.record_checkout_session(len(cart))
        logger.info(
            "checkout_session_ready",
            session_id=session.id,
            bricks=len(cart),
            base_url=base_url,
        )
        return session.id
