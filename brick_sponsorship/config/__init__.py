"""Configuration package for the brick sponsorship service."""
from .environment import (
    EnvironmentStatus,
    get_environment_status,
    log_environment_status,
    validate_environment,
)
from .settings import Settings, get_settings

__all__ = [
    "EnvironmentStatus",
    "Settings",
    "get_environment_status",
    "get_settings",
    "log_environment_status",
    "validate_environment",
]
