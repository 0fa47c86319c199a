"""Service settings for the activity domain.

Settings are read once at process start (environment variables prefixed
with ``ACTIVITY_`` and an optional ``.env`` file) and handed to each
component. The object is frozen: components never change configuration
at runtime.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ActivitySettings(BaseSettings):
    """Immutable configuration for notification generation and delivery."""

    model_config = SettingsConfigDict(
        env_prefix="ACTIVITY_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    enabled: bool = True

    # Email
    email_enabled: bool = False
    mailer_sender: str | None = None
    email_service_url: str | None = None

    # Subscriptions
    subscription_enabled: bool = False
    subscribe_as_default: bool = True
    subscribe_to_email_as_default: bool = True
    subscribe_to_optional_targets_as_default: bool = True

    # Index and grouping
    opened_index_limit: int = Field(default=10, gt=0)
    group_expiry_delay: float | None = Field(
        default=None,
        ge=0,
        description="Seconds after which a group stops accepting new members (None = unbounded)",
    )

    # Batch email
    batch_email_enabled: bool = False

    # HTTP API
    api_authentication_required: bool = False

    # Optional targets
    slack_webhook_url: str | None = None
    http_timeout: float = Field(default=10.0, gt=0)


_settings: ActivitySettings | None = None


def get_settings() -> ActivitySettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = ActivitySettings()
    return _settings


def set_settings(settings: ActivitySettings | None) -> None:
    """Install the settings constructed at process start (None reloads lazily)."""
    global _settings
    _settings = settings
