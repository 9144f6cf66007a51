"""
Environment validation for payment operations.

Checks that the Stripe credentials are present, split into the set the
browser needs and the set only the server may see, and collects
warnings for risky-but-valid setups. Validation never raises; callers
inspect the returned status.
"""
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

import structlog

from .settings import Settings, get_settings

logger = structlog.get_logger(__name__)

# Environment variable name -> settings attribute
CLIENT_REQUIRED: Tuple[Tuple[str, str], ...] = (
    ("STRIPE_PUBLISHABLE_KEY", "stripe_publishable_key"),
)
SERVER_REQUIRED: Tuple[Tuple[str, str], ...] = (
    ("STRIPE_SECRET_KEY", "stripe_secret_key"),
    ("STRIPE_WEBHOOK_SECRET", "stripe_webhook_secret"),
)

PUBLIC_DOMAIN_WARNING = "PUBLIC_DOMAIN not set - using request headers for URL detection"


@dataclass(frozen=True)
class EnvironmentStatus:
    """Result of an environment validation pass."""

    is_valid: bool
    missing: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "isValid": self.is_valid,
            "missing": list(self.missing),
            "warnings": list(self.warnings),
        }


def validate_environment(
    settings: Optional[Settings] = None, context: str = "server"
) -> EnvironmentStatus:
    """
    Validate the payment configuration.

    Args:
        settings: Settings to validate (cached settings if not provided)
        context: "client" checks only browser-visible keys, "server"
            checks browser-visible and server-only keys

    Returns:
        EnvironmentStatus: validity flag plus missing names and warnings
    """
    settings = settings or get_settings()

    required = list(CLIENT_REQUIRED)
    if context != "client":
        required.extend(SERVER_REQUIRED)

    missing = [name for name, attr in required if not getattr(settings, attr)]
    warnings: List[str] = []

    if not settings.public_domain:
        warnings.append(PUBLIC_DOMAIN_WARNING)

    if settings.is_production:
        if settings.stripe_publishable_key and "pk_test" in settings.stripe_publishable_key:
            warnings.append("Using test Stripe publishable key in production")
        if settings.stripe_secret_key and "sk_test" in settings.stripe_secret_key:
            warnings.append("Using test Stripe secret key in production")

    return EnvironmentStatus(is_valid=not missing, missing=missing, warnings=warnings)


@lru_cache()
def get_environment_status() -> EnvironmentStatus:
    """Server-side validation result, computed once per process."""
    return validate_environment(get_settings(), context="server")


def log_environment_status(status: Optional[EnvironmentStatus] = None) -> EnvironmentStatus:
    """Log the validation result and return it."""
    status = status or get_environment_status()

    if not status.is_valid:
        logger.error("environment_missing_variables", missing=status.missing)
    else:
        logger.info("environment_valid")

    if status.warnings:
        logger.warning("environment_warnings", warnings=status.warnings)
        if PUBLIC_DOMAIN_WARNING in status.warnings:
            logger.warning(
                "environment_public_domain_unset",
                hint="redirect URLs will be inferred from request headers; "
                "set PUBLIC_DOMAIN in production",
            )

    return status
