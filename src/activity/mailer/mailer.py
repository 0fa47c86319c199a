"""Notification mailer — composes and sends notification emails.

Headers follow the target and the notification key:

    to             target.mailer_to()
    from/reply_to  configured mailer_sender
    subject        template subject, else "Notification of <notifiable type>"
    template_path  [<target resources name>, "default"]
    template_name  key with dots replaced by slashes

When no template is registered for the key, the ``default`` (or
``batch_default``) template is used instead.
"""

import structlog

from activity.channel import EMAIL, get_channel
from activity.channel.optional_target import message_context
from activity.config import ActivitySettings
from activity.errors import ChannelDeliveryError, TemplateMissingError
from activity.mailer.templates import get_template
from activity.roles import printable_type, resources_name

logger = structlog.get_logger(__name__)


class Mailer:
    def __init__(self, settings: ActivitySettings, email=None):
        self.settings = settings
        self.email = email or get_channel(EMAIL, settings)

    def headers_for(self, target, notifiable_type, key, notifiable=None, batch=False) -> dict:
        email_key = key
        if notifiable is not None:
            email_key = notifiable.overriding_notification_email_key(target, key) or key

        kind = "Batch notification" if batch else "Notification"
        return {
            "to": target.mailer_to(),
            "from": self.settings.mailer_sender,
            "reply_to": self.settings.mailer_sender,
            "subject": f"{kind} of {printable_type(notifiable_type).lower()}",
            "template_path": [resources_name(target.target_type), "default"],
            "template_name": email_key.replace(".", "/"),
        }

    def render(self, headers, context, fallback="default") -> dict:
        try:
            template = get_template(headers["template_path"], headers["template_name"])
        except TemplateMissingError as exc:
            logger.debug("Email template missing, using fallback", error=str(exc), fallback=fallback)
            template = get_template(headers["template_path"], fallback)

        rendered = template.render(context)
        return {"subject": rendered.get("subject") or headers["subject"], "body": rendered["body"]}

    def send_notification_email(self, notification, target, notifiable=None, fallback="default") -> dict:
        headers = self.headers_for(target, notification.notifiable_type, notification.key, notifiable=notifiable)
        context = message_context(notification)
        if notifiable is not None:
            try:
                context["notifiable_path"] = notifiable.notifiable_path(target.target_type, notification.key)
            except NotImplementedError:
                context["notifiable_path"] = None
        return self._deliver(headers, context, fallback)

    def send_batch_notification_email(self, target, notifications, batch_key=None, fallback="batch_default") -> dict:
        if not notifications:
            raise ValueError("A batch email needs at least one notification")

        first = notifications[0]
        headers = self.headers_for(target, first.notifiable_type, batch_key or first.key, batch=True)
        context = {
            "key": batch_key or first.key,
            "target_name": target.printable_target_name(),
            "notifications": [message_context(n) for n in notifications],
        }
        return self._deliver(headers, context, fallback)

    def _deliver(self, headers, context, fallback) -> dict:
        if not headers["to"]:
            raise ChannelDeliveryError(EMAIL, "Target has no email address")

        message = self.render(headers, context, fallback)
        result = self.email.send(
            to=headers["to"],
            subject=message["subject"],
            body=message["body"],
            from_address=headers["from"],
            reply_to=headers["reply_to"],
        )
        if result.get("status") != "sent":
            raise ChannelDeliveryError(EMAIL, result.get("error", "Unknown dispatch error"))

        logger.info("Notification email sent", to=headers["to"], template=headers["template_name"])
        return result
