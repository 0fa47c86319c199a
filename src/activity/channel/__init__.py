"""Channel adapter registry — email transport and built-in optional targets.

Provides singleton access to channel adapters. Uses fake adapters by
default; the HTTP email service and the Slack webhook are used once
their URLs are configured in ``ActivitySettings``.
"""

from activity.config import ActivitySettings, get_settings

EMAIL = "email"
SLACK = "slack"
CONSOLE_OUTPUT = "console_output"

_channel_instances: dict[str, object] = {}


def get_channel(channel_type: str, settings: ActivitySettings | None = None):
    """Return the configured channel adapter (singleton per channel type).

    Args:
        channel_type: One of "email", "slack", "console_output"
    """
    if channel_type not in _channel_instances:
        settings = settings or get_settings()
        if channel_type == EMAIL:
            if settings.email_service_url:
                from activity.channel.http_email import HttpEmailAdapter

                _channel_instances[channel_type] = HttpEmailAdapter(
                    settings.email_service_url, timeout=settings.http_timeout
                )
            else:
                from activity.channel.fake_email import FakeEmailAdapter

                _channel_instances[channel_type] = FakeEmailAdapter()
        elif channel_type == SLACK:
            if settings.slack_webhook_url:
                from activity.channel.slack import SlackTarget

                _channel_instances[channel_type] = SlackTarget(
                    webhook_url=settings.slack_webhook_url, timeout=settings.http_timeout
                )
            else:
                from activity.channel.fake_target import FakeTarget

                _channel_instances[channel_type] = FakeTarget(name=SLACK)
        elif channel_type == CONSOLE_OUTPUT:
            from activity.channel.console_output import ConsoleOutputTarget

            _channel_instances[channel_type] = ConsoleOutputTarget()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
