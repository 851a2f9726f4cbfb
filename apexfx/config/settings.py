"""
Configuration Management for the ApexFX session engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Route tables, onboarding defaults and paging limits live in one place and are
validated when the settings object is first built.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_PATHS = [
    "/",
    "/deposit",
    "/withdraw",
    "/transactions",
    "/onboarding",
    "/settings",
]

DEFAULT_ADMIN_ROUTES = [
    "/admin",
    "/admin/users",
    "/admin/users/{user_id}",
]


class SessionSettings(BaseSettings):
    """
    Session and ledger settings.

    Loads configuration from environment variables (prefix ``APEXFX_``)
    and the ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="APEXFX_",
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

    # Onboarding
    starting_balance: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Balance (and initial balance) given to newly registered users"
    )
    admin_emails: list[str] = Field(
        default_factory=list,
        description="Addresses allowed to resolve to administrator identities (empty = any)"
    )
    identity_latency_seconds: float = Field(
        default=0.0,
        ge=0.0,
        le=30.0,
        description="Simulated latency of the identity resolution round-trip"
    )

    # Routing
    landing_path: str = Field(
        default="/",
        description="Anonymous landing view (renders the login/register wrapper)"
    )
    admin_path_prefix: str = Field(
        default="/admin",
        description="Prefix of the admin view tree"
    )
    admin_routes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ADMIN_ROUTES),
        description="Admin route patterns; {name} matches one path segment"
    )
    user_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_PATHS),
        description="Protected paths of the user view tree"
    )
    redirect_storage_key: str = Field(
        default="apexfx_redirect_after_login",
        description="Key under which the post-login redirect target is kept"
    )

    # History view
    transactions_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Transactions shown per history page"
    )

    @field_validator("landing_path", "admin_path_prefix")
    @classmethod
    def validate_absolute_path(cls, v: str) -> str:
        """Route settings must be absolute paths."""
        if not v.startswith("/"):
            raise ValueError(f"Path must start with '/': {v!r}")
        return v

    @field_validator("admin_emails")
    @classmethod
    def normalize_admin_emails(cls, v: list[str]) -> list[str]:
        return [email.strip().lower() for email in v if email.strip()]


@lru_cache()
def get_settings() -> SessionSettings:
    """
    Get session settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return SessionSettings()
