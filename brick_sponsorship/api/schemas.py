"""
Pydantic schemas for API request/response models.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CreatePaymentSessionRequest(BaseModel):
    """
    Request schema for creating a checkout session.

    Items are validated by the checkout creator so that a bad cart is a
    400 with a stable message instead of a framework validation error.
    """

    items: Optional[Any] = Field(default=None, description="Cart items: [{id, section, price}]")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Optional session metadata")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {"id": "dome-12-4", "section": "dome", "price": 1000},
                        {"id": "dome-12-5", "section": "dome", "price": 1000},
                    ],
                    "metadata": {"brickCount": "2"},
                }
            ]
        }
    }


class CreatePaymentSessionResponse(BaseModel):
    """Response schema for checkout session creation."""

    sessionId: str = Field(..., description="Stripe Checkout Session ID")


class VerifyPaymentRequest(BaseModel):
    """Request schema for payment verification."""

    sessionId: Optional[str] = Field(default=None, description="Stripe Checkout Session ID")


class WebhookResponse(BaseModel):
    """Acknowledgement returned to Stripe."""

    received: bool = Field(..., description="Event was authenticated and dispatched")


class BricksResponse(BaseModel):
    """Response schema for the brick counter."""

    total: int = Field(..., description="Total bricks in the monument")
    sponsored: int = Field(..., description="Bricks sponsored so far")
    available: int = Field(..., description="Bricks still available")


class PurchaseItem(BaseModel):
    """A processed checkout session."""

    session: str = Field(..., description="Stripe Checkout Session ID")
    bricks: int = Field(..., description="Bricks sponsored by the session")


class PurchasesResponse(BaseModel):
    """Response schema for the purchase listing."""

    sponsored: int = Field(..., description="Bricks sponsored so far")
    purchases: List[PurchaseItem] = Field(..., description="Recorded purchases")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall status")
    timestamp: str = Field(..., description="Check time (ISO 8601)")
    environment: str = Field(..., description="Application environment")
    environmentVariables: Dict[str, Any] = Field(..., description="Environment validation result")
    hasKeys: Dict[str, bool] = Field(..., description="Which secrets are configured")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Dependency checks")
