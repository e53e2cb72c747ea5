"""Configuration package."""

from finplan.config.settings import (
    AppSettings,
    PlanningSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "PlanningSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
