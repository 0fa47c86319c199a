"""Error taxonomy of the activity domain.

Invariant violations reuse Protean's ``ValidationError``; the classes
here cover the remaining failure kinds.
"""

from protean.exceptions import ObjectNotFoundError


class NotFoundError(ObjectNotFoundError):
    """A referenced target, notifiable, notifier or notification does not exist."""


class AuthorizationError(Exception):
    """The current resource is missing or is not allowed to act for the target."""


class TemplateMissingError(LookupError):
    """No email template is registered on the resolved template path."""

    def __init__(self, template_path, template_name):
        self.template_path = list(template_path)
        self.template_name = template_name
        super().__init__(f"Missing template {template_name} in paths: {', '.join(self.template_path)}")


class ChannelDeliveryError(Exception):
    """A delivery channel failed to send a notification."""

    def __init__(self, channel, reason):
        self.channel = channel
        self.reason = reason
        super().__init__(f"{channel} delivery failed: {reason}")
