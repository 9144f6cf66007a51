"""Core payment and inventory logic."""
from .exceptions import (
    BrickSponsorshipError,
    ConfigurationError,
    InvalidCart,
    InvalidRequest,
    InvalidSignature,
    UpstreamError,
)
from .inventory import TOTAL_BRICKS, InventoryStore

__all__ = [
    "BrickSponsorshipError",
    "ConfigurationError",
    "InvalidCart",
    "InvalidRequest",
    "InvalidSignature",
    "InventoryStore",
    "TOTAL_BRICKS",
    "UpstreamError",
]
