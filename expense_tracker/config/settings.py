"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MongoSettings(BaseSettings):
    """MongoDB document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONGO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="mongodb://127.0.0.1:27017",
        description="MongoDB connection string"
    )
    database: str = Field(
        default="expensetracker",
        description="Database holding all collections"
    )
    server_selection_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="How long the driver waits for a reachable server"
    )


class AuthSettings(BaseSettings):
    """Password hashing and reset token configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    secret_key: str = Field(
        ...,
        min_length=8,
        description="Secret used to sign password reset tokens"
    )
    algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    reset_token_minutes: int = Field(
        default=15,
        ge=1,
        le=1440,
        description="Lifetime of a password reset token"
    )
    bcrypt_rounds: int = Field(
        default=10,
        ge=4,
        le=31,
        description="bcrypt cost factor"
    )
    # The one identity that always logs in as admin, whatever its stored role.
    # Leave empty to disable the override.
    forced_admin_email: Optional[str] = Field(
        default="sarjan@gmail.com",
        description="Email that always resolves to the admin role"
    )

    @field_validator("forced_admin_email")
    @classmethod
    def normalize_forced_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().lower()

    @property
    def forced_roles(self) -> dict[str, str]:
        """Identity -> role name overrides applied at login."""
        if not self.forced_admin_email:
            return {}
        return {self.forced_admin_email: "admin"}


class MailSettings(BaseSettings):
    """Outbound SMTP configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    host: str = Field(
        default="smtp.gmail.com",
        description="SMTP server host"
    )
    port: int = Field(
        default=587,
        description="SMTP server port"
    )
    username: Optional[str] = Field(
        default=None,
        description="SMTP login"
    )
    password: Optional[str] = Field(
        default=None,
        description="SMTP password or app password"
    )
    use_tls: bool = Field(
        default=True,
        description="Upgrade the connection with STARTTLS"
    )
    sender: str = Field(
        default="no-reply@expensetracker.local",
        description="From address for outgoing mail"
    )
    admin_address: Optional[str] = Field(
        default=None,
        description="Receives a notification for every new signup"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="SMTP socket timeout"
    )


class CloudinarySettings(BaseSettings):
    """Cloudinary receipt hosting configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )
    folder: str = Field(
        default="expense_tracker/receipts",
        description="Folder receipts are uploaded into"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # Password reset links
    frontend_origin: str = Field(
        default="http://localhost:5175",
        description="Origin used in reset links when the request has none"
    )
    reset_fallback_ports: str = Field(
        default="5173,5174,5175",
        description="Local dev ports that get an alternative reset link"
    )

    # File upload limits
    upload_dir: str = Field(
        default="./uploads",
        description="Transient location for receipts before upload"
    )
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp",
        description="Comma-separated list of supported image formats"
    )

    # Audit
    persist_audit_events: bool = Field(
        default=True,
        description="Also write audit events to the document store"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def reset_fallback_ports_list(self) -> list[int]:
        return [int(port) for port in self.reset_fallback_ports.split(",") if port.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so a missing Cloudinary account
    # does not stop the rest of the API from starting.

    @property
    def mongo(self) -> MongoSettings:
        return MongoSettings()

    @property
    def auth(self) -> AuthSettings:
        return AuthSettings()

    @property
    def mail(self) -> MailSettings:
        return MailSettings()

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("mongo", "auth", "mail", "cloudinary", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
