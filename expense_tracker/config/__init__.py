"""Configuration package."""

from expense_tracker.config.settings import (
    AppSettings,
    AuthSettings,
    CloudinarySettings,
    MailSettings,
    MongoSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AuthSettings",
    "CloudinarySettings",
    "MailSettings",
    "MongoSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
