"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    FallbackConfig,
    FallbackRecordConfig,
    GlobalConfig,
    ProviderConfig,
    Tier,
    normalise_provider_id,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "FallbackConfig",
    "FallbackRecordConfig",
    "GlobalConfig",
    "ProviderConfig",
    "Tier",
    "normalise_provider_id",
]
