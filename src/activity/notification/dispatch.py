"""Delivery Dispatcher — sends stored notifications through their channels.

Reacts to NotificationGenerated events. Email goes out when both the
target and the notifiable allow it and the target subscribes to email
for the key; each optional target of the notifiable goes out when the
target subscribes to it. Channels are isolated from each other: a failing
channel is logged and recorded, and the remaining channels still run.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from activity.channel import EMAIL
from activity.config import ActivitySettings, get_settings
from activity.domain import activity
from activity.errors import NotFoundError
from activity.mailer.mailer import Mailer
from activity.notification.events import NotificationGenerated
from activity.notification.notification import DeliveryStatus, Notification
from activity.registry import notifiables, targets
from activity.subscription.store import SubscriptionStore

logger = structlog.get_logger(__name__)


class DeliveryDispatcher:
    def __init__(
        self,
        settings: ActivitySettings,
        subscriptions: SubscriptionStore | None = None,
        mailer: Mailer | None = None,
    ):
        self.settings = settings
        self.subscriptions = subscriptions or SubscriptionStore(settings)
        self._mailer = mailer

    @property
    def mailer(self) -> Mailer:
        if self._mailer is None:
            self._mailer = Mailer(self.settings)
        return self._mailer

    def deliver(self, notification, target, notifiable, send_email=True, publish_optional_targets=True) -> dict:
        """Deliver ``notification`` and record every channel decision on it.

        Returns a mapping of channel name to delivery status.
        """
        outcomes = {}
        if send_email:
            outcomes[EMAIL] = self.deliver_email(notification, target, notifiable)
        if publish_optional_targets:
            for optional_target in notifiable.optional_targets(target.target_type, notification.key):
                outcomes[optional_target.name] = self.deliver_optional_target(notification, target, optional_target)

        for channel, (status, error) in outcomes.items():
            notification.record_delivery(channel, status, error)

        return {channel: status.value for channel, (status, _) in outcomes.items()}

    def email_allowed(self, notification, target, notifiable) -> bool:
        key = notification.key
        return (
            target.email_allowed(notifiable, key, self.settings)
            and notifiable.email_allowed(target, key, self.settings)
            and self.subscriptions.subscribes_to_email(target, key)
        )

    def deliver_email(self, notification, target, notifiable):
        if not self.email_allowed(notification, target, notifiable):
            return DeliveryStatus.SKIPPED, None

        if self.settings.batch_email_enabled and notification.is_group_member:
            logger.info(
                "Email deferred to batch",
                notification_id=str(notification.id),
                group_owner_id=str(notification.group_owner_id),
            )
            return DeliveryStatus.DEFERRED, None

        try:
            self.mailer.send_notification_email(notification, target, notifiable)
        except Exception as e:
            logger.error(
                "Notification delivery failed",
                notification_id=str(notification.id),
                channel=EMAIL,
                error=str(e),
            )
            return DeliveryStatus.FAILED, str(e)

        return DeliveryStatus.SENT, None

    def deliver_optional_target(self, notification, target, optional_target, **options):
        name = optional_target.name
        if not self.subscriptions.subscribes_to_optional_target(target, notification.key, name):
            return DeliveryStatus.SKIPPED, None

        try:
            result = optional_target.notify(notification, **options)
        except Exception as e:
            logger.error(
                "Notification delivery failed",
                notification_id=str(notification.id),
                channel=name,
                error=str(e),
            )
            return DeliveryStatus.FAILED, str(e)

        if isinstance(result, dict) and result.get("status") == DeliveryStatus.SKIPPED.value:
            return DeliveryStatus.SKIPPED, None
        return DeliveryStatus.SENT, None


def load_delivery_context(notification):
    """Resolve the target and notifiable capabilities of a stored notification."""
    target = targets.resolve_reference(notification.target_reference)
    notifiable = notifiables.resolve_reference(notification.notifiable_reference)
    return target, notifiable


@activity.event_handler(part_of=Notification)
class NotificationDeliveryHandler:
    """Dispatches notifications through their channels once they are stored."""

    @handle(NotificationGenerated)
    def on_notification_generated(self, event: NotificationGenerated) -> None:
        repo = current_domain.repository_for(Notification)

        try:
            notification = repo.get(event.notification_id)
        except ObjectNotFoundError:
            logger.warning(
                "Notification disappeared before delivery",
                notification_id=str(event.notification_id),
            )
            return

        try:
            target, notifiable = load_delivery_context(notification)
        except NotFoundError as e:
            logger.warning(
                "Skipping delivery of notification with missing record",
                notification_id=str(notification.id),
                error=str(e),
            )
            return

        outcomes = DeliveryDispatcher(get_settings()).deliver(
            notification,
            target,
            notifiable,
            send_email=event.send_email,
            publish_optional_targets=event.publish_optional_targets,
        )
        repo.add(notification)

        logger.info("Notification delivered", notification_id=str(notification.id), outcomes=outcomes)
