"""
Exception classes for the brick sponsorship service.

Every error carries:
- a kind tag (for callers and logs)
- a user message (safe to return over HTTP)
- an HTTP status code (for API responses)

The exception message itself may contain internal detail and is only
ever logged, never returned.
"""
from typing import Optional


class BrickSponsorshipError(Exception):
    """Base exception for all service errors."""

    kind = "error"
    http_status = 500
    default_user_message = "An error occurred. Please try again."

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or self.default_user_message
        self.original_error = original_error


class ConfigurationError(BrickSponsorshipError):
    """
    A required secret or setting is missing.

    Fatal to the operation and not retryable by the client.
    """

    kind = "configuration_error"
    http_status = 500
    default_user_message = "Server configuration error"


class InvalidRequest(BrickSponsorshipError):
    """Malformed caller input. The client must fix it and resubmit."""

    kind = "invalid_request"
    http_status = 400
    default_user_message = "Invalid request"


class InvalidCart(InvalidRequest):
    """The cart items are missing, not a list, empty, or malformed."""

    kind = "invalid_cart"
    default_user_message = "Invalid or empty cart items"


class InvalidSignature(BrickSponsorshipError):
    """
    Webhook authentication failed.

    Indicates tampering or a secret mismatch, not a transient failure,
    so it must not be retried blindly.
    """

    kind = "invalid_signature"
    http_status = 400
    default_user_message = "Webhook signature verification failed"


class UpstreamError(BrickSponsorshipError):
    """
    A Stripe or counter-store call failed.

    Possibly transient: the caller may retry the whole operation.
    """

    kind = "upstream_error"
    http_status = 500
    default_user_message = "Upstream service error"

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        original_error: Optional[Exception] = None,
        retryable: bool = True,
    ):
        super().__init__(message, user_message=user_message, original_error=original_error)
        self.retryable = retryable
