"""Fake optional target — records notifications for testing."""

from activity.channel.optional_target import OptionalTarget
from activity.errors import ChannelDeliveryError


class FakeTarget(OptionalTarget):
    """Optional target that records delivered notifications in memory.

    The channel name defaults to ``fake`` and can be overridden so that
    several fakes take part in one delivery.
    """

    def initialize_target(self, name="fake", should_succeed=True, failure_reason="Delivery failed", **options):
        self._name = name
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delivered: list[dict] = []

    @property
    def name(self) -> str:
        return self._name

    def configure(self, should_succeed: bool = True, failure_reason: str = "Delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def notify(self, notification, **options):
        if not self.should_succeed:
            raise ChannelDeliveryError(self.name, self.failure_reason)
        self.delivered.append(
            {
                "notification_id": str(notification.id),
                "key": notification.key,
                "message": self.render_notification_message(notification),
                "options": options,
            }
        )
        return {"status": "sent"}

    def reset(self):
        self.delivered.clear()
        self.should_succeed = True
        self.failure_reason = "Delivery failed"
