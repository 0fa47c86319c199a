"""Slack optional target — posts notifications to an incoming webhook."""

import httpx
import structlog

from activity.channel.optional_target import OptionalTarget
from activity.errors import ChannelDeliveryError

logger = structlog.get_logger(__name__)


class SlackTarget(OptionalTarget):
    def initialize_target(self, webhook_url=None, channel=None, username=None, icon_emoji=None, timeout=10.0, **options):
        if not webhook_url:
            raise ValueError("SlackTarget requires a webhook_url")
        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.icon_emoji = icon_emoji
        self.timeout = timeout
        self.message_template = options.get("message_template")

    def notify(self, notification, **options):
        message = self.render_notification_message(
            notification, message_template=options.get("message_template", self.message_template)
        )
        payload = {"text": message}
        for field in ("channel", "username", "icon_emoji"):
            value = options.get(field, getattr(self, field))
            if value:
                payload[field] = value

        try:
            response = httpx.post(self.webhook_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ChannelDeliveryError(self.name, str(exc)) from exc

        logger.info("Slack message posted", notification_id=str(notification.id), channel=payload.get("channel"))
        return {"status": "sent"}
