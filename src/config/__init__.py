"""Configuration module for the benefits navigation platform."""

from .settings import (
    CacheSettings,
    CalculationServiceSettings,
    PreviewSettings,
    Settings,
    get_settings,
)

__all__ = [
    "CacheSettings",
    "CalculationServiceSettings",
    "PreviewSettings",
    "Settings",
    "get_settings",
]
