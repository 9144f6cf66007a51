"""
API routes for brick sponsorship.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type, TypeVar

import structlog
from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, ValidationError

from ..config import Settings, get_settings
from ..core.checkout import CheckoutSessionCreator
from ..core.exceptions import (
    BrickSponsorshipError,
    ConfigurationError,
    InvalidRequest,
    InvalidSignature,
    UpstreamError,
)
from ..core.inventory import InventoryStore
from ..core.urls import cancel_url, resolve_base_url, success_url
from ..core.verification import PaymentVerification, PaymentVerifier
from ..core.webhooks import WebhookProcessor
from ..monitoring.health import HealthCheck
from .dependencies import (
    get_checkout_creator,
    get_health_check,
    get_inventory_store,
    get_payment_verifier,
    get_webhook_processor,
)
from .schemas import (
    BricksResponse,
    CreatePaymentSessionRequest,
    CreatePaymentSessionResponse,
    HealthCheckResponse,
    PurchasesResponse,
    VerifyPaymentRequest,
    WebhookResponse,
)

logger = structlog.get_logger(__name__)

# Create routers
payment_router = APIRouter(tags=["payments"])
webhook_router = APIRouter(tags=["webhooks"])
inventory_router = APIRouter(tags=["bricks"])
monitoring_router = APIRouter(tags=["monitoring"])


RequestModel = TypeVar("RequestModel", bound=BaseModel)


def _http_error(error: BrickSponsorshipError) -> HTTPException:
    return HTTPException(status_code=error.http_status, detail=error.user_message)


def _parse_body(model: Type[RequestModel], payload: Any) -> RequestModel:
    """
    Validate a JSON body against a request schema.

    A missing or non-object body reads as an empty object, so the missing
    field is reported by the domain check (400) instead of a framework 422.

    Raises:
        InvalidRequest: If a present field has the wrong type
    """
    if not isinstance(payload, dict):
        payload = {}
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequest(f"Malformed {model.__name__}: {e}") from e


@payment_router.post(
    "/create-payment-session",
    response_model=CreatePaymentSessionResponse,
    summary="Create a checkout session",
    description="Create a Stripe Checkout Session for a cart of bricks",
)
async def create_payment_session(
    request: Request,
    payload: Any = Body(default=None, description="CreatePaymentSessionRequest"),
    creator: CheckoutSessionCreator = Depends(get_checkout_creator),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Create a checkout session and return its ID for the client redirect."""
    base_url = resolve_base_url(settings.public_domain, request.headers)

    try:
        body = _parse_body(CreatePaymentSessionRequest, payload)
        session_id = await creator.create_session(
            items=body.items,
            base_url=base_url.url,
            metadata=body.metadata,
        )
    except InvalidRequest as e:
        logger.warning("api_create_session_invalid_request", error=str(e))
        raise _http_error(e)
    except (ConfigurationError, UpstreamError) as e:
        logger.error("api_create_session_error", kind=e.kind, error=str(e))
        raise _http_error(e)

    logger.info(
        "api_create_session_success",
        session_id=session_id,
        base_url_source=base_url.source,
    )
    return {"sessionId": session_id}


@payment_router.post(
    "/verify-payment",
    response_model=PaymentVerification,
    summary="Verify a checkout session",
    description="Fetch the authoritative payment state of a Checkout Session",
)
async def verify_payment(
    payload: Any = Body(default=None, description="VerifyPaymentRequest"),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
) -> PaymentVerification:
    """Verify payment for the success page."""
    try:
        body = _parse_body(VerifyPaymentRequest, payload)
        return await verifier.verify(body.sessionId)
    except InvalidRequest as e:
        logger.warning("api_verify_payment_invalid", error=str(e))
        raise _http_error(e)
    except (ConfigurationError, UpstreamError) as e:
        logger.error("api_verify_payment_error", kind=e.kind, error=str(e))
        raise _http_error(e)


@webhook_router.post(
    "/webhook",
    response_model=WebhookResponse,
    summary="Stripe webhook endpoint",
    description="Handle Stripe webhook events",
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> Dict[str, Any]:
    """
    Handle Stripe webhook events.

    Authenticated events are always acknowledged, whatever happened to
    the counter update, so Stripe does not redeliver them forever.
    """
    # Raw bytes: the signature covers the exact body.
    body = await request.body()

    try:
        result = await processor.handle(body, stripe_signature)
    except InvalidSignature as e:
        logger.warning("api_webhook_rejected", error=str(e))
        raise _http_error(e)
    except ConfigurationError as e:
        logger.error("api_webhook_configuration_error", error=str(e))
        raise _http_error(e)

    logger.info("api_webhook_processed", **result)
    return {"received": True}


@webhook_router.get(
    "/webhook",
    response_model=PurchasesResponse,
    summary="List recorded purchases",
    description="Sponsored count plus every recorded checkout session",
)
async def list_purchases(
    inventory: InventoryStore = Depends(get_inventory_store),
) -> Dict[str, Any]:
    try:
        sponsored = await inventory.get_sponsored_count()
        purchases = await inventory.list_purchases()
    except UpstreamError as e:
        raise _http_error(e)

    return {
        "sponsored": sponsored,
        "purchases": [purchase.to_dict() for purchase in purchases],
    }


@inventory_router.get(
    "/bricks",
    response_model=BricksResponse,
    summary="Brick counter",
    description="Total, sponsored and available bricks",
)
async def get_bricks(
    inventory: InventoryStore = Depends(get_inventory_store),
) -> Dict[str, Any]:
    try:
        snapshot = await inventory.get_inventory()
    except UpstreamError as e:
        raise _http_error(e)
    return snapshot.to_dict()


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Configuration status and dependency checks",
)
async def health(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    return await health_check.check_all()


@monitoring_router.get(
    "/debug-urls",
    summary="Redirect URL diagnostics",
    description="Show how checkout redirect URLs are resolved for this request",
)
async def debug_urls(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    base_url = resolve_base_url(settings.public_domain, request.headers)
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.app_env,
        "baseUrl": {"url": base_url.url, "source": base_url.source},
        "headers": {
            name: request.headers.get(name)
            for name in (
                "host",
                "x-forwarded-proto",
                "x-forwarded-protocol",
                "x-forwarded-ssl",
                "x-forwarded-host",
            )
        },
        "environmentVariables": {"PUBLIC_DOMAIN": settings.public_domain or "not set"},
        "generatedUrls": {
            "success": success_url(base_url.url),
            "cancel": cancel_url(base_url.url),
        },
    }


@monitoring_router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics",
    include_in_schema=False,  # Don't include in OpenAPI docs
)
async def prometheus_metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
