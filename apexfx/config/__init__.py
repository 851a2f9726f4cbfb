"""Configuration package."""

from apexfx.config.settings import (
    DEFAULT_ADMIN_ROUTES,
    DEFAULT_USER_PATHS,
    SessionSettings,
    get_settings,
)

__all__ = [
    "DEFAULT_ADMIN_ROUTES",
    "DEFAULT_USER_PATHS",
    "SessionSettings",
    "get_settings",
]
