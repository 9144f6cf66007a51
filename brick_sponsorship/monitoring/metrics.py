"""
Prometheus metrics for brick sponsorship monitoring.

Tracks:
- Checkout sessions created
- Stripe API calls and errors
- Webhook events by type and outcome
- Bricks sponsored through webhooks
"""
from prometheus_client import Counter, Histogram

# Checkout metrics
checkout_sessions_created_total = Counter(
    "checkout_sessions_created_total",
    "Total Stripe Checkout Sessions created",
)

checkout_bricks_requested_total = Counter(
    "checkout_bricks_requested_total",
    "Total bricks placed into created checkout sessions",
)

# Stripe API metrics
stripe_api_requests_total = Counter(
    "stripe_api_requests_total",
    "Total Stripe API requests",
    ["operation", "status"],  # operation: create_checkout_session, retrieve_checkout_session
)

stripe_api_errors_total = Counter(
    "stripe_api_errors_total",
    "Total Stripe API errors",
    ["error_type"],  # transient, permanent, rate_limit
)

stripe_api_duration_seconds = Histogram(
    "stripe_api_duration_seconds",
    "Stripe API call duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0),
)

# Webhook metrics
webhook_events_received_total = Counter(
    "webhook_events_received_total",
    "Total webhook events received",
    ["event_type"],
)

webhook_events_processed_total = Counter(
    "webhook_events_processed_total",
    "Total webhook events processed",
    ["event_type", "status"],  # recorded, duplicate, skipped, store_failed, logged, unhandled
)

webhook_processing_duration_seconds = Histogram(
    "webhook_processing_duration_seconds",
    "Webhook processing duration in seconds",
    ["event_type"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

webhook_rejections_total = Counter(
    "webhook_rejections_total",
    "Total webhook deliveries rejected before dispatch",
    ["reason"],  # configuration, signature
)

# Inventory metrics
bricks_sponsored_total = Counter(
    "bricks_sponsored_total",
    "Total bricks added to the sponsored counter",
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_checkout_session(brick_count: int) -> None:
        """Record a created checkout session."""
        checkout_sessions_created_total.inc()
        checkout_bricks_requested_total.inc(brick_count)

    @staticmethod
    def record_stripe_api_call(
        operation: str, status: str, duration_seconds: float
    ) -> None:
        """Record Stripe API call."""
        stripe_api_requests_total.labels(operation=operation, status=status).inc()
        stripe_api_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_stripe_api_error(error_type: str) -> None:
        """Record Stripe API error."""
        stripe_api_errors_total.labels(error_type=error_type).inc()

    @staticmethod
    def record_webhook_event(event_type: str, status: str, duration_seconds: float) -> None:
        """Record webhook event processing."""
        webhook_events_received_total.labels(event_type=event_type).inc()
        webhook_events_processed_total.labels(event_type=event_type, status=status).inc()
        webhook_processing_duration_seconds.labels(event_type=event_type).observe(
            duration_seconds
        )

    @staticmethod
    def record_webhook_rejection(reason: str) -> None:
        """Record a webhook rejected before dispatch."""
        webhook_rejections_total.labels(reason=reason).inc()

    @staticmethod
    def record_bricks_sponsored(brick_count: int) -> None:
        """Record bricks added to the sponsored counter."""
        bricks_sponsored_total.inc(brick_count)


# Export singleton instance
metrics = MetricsCollector()
