"""Configuration package."""

from swiss_bookkeeping.config.settings import (
    AppSettings,
    ComplianceAccumulation,
    GeminiSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ComplianceAccumulation",
    "GeminiSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
