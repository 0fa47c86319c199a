"""FlushBatchNotifications command + handler — send a digest email.

With batch email enabled, notifications that merge into an existing
group do not send their own email. Flushing collects the target's
unopened notifications for a key into one batch email.
"""

import structlog
from protean.fields import String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from activity.config import get_settings
from activity.domain import activity
from activity.mailer.mailer import Mailer
from activity.notification.notification import DeliveryStatus, Notification
from activity.registry import Reference, targets
from activity.subscription.store import SubscriptionStore

logger = structlog.get_logger(__name__)

BATCH_EMAIL = "batch_email"


@activity.command(part_of="Notification")
class FlushBatchNotifications:
    """Send one batch email for a target's unopened notifications of a key."""

    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True)


@activity.command_handler(part_of=Notification)
class FlushBatchNotificationsHandler:
    @handle(FlushBatchNotifications)
    def flush(self, command: FlushBatchNotifications) -> int:
        settings = get_settings()
        target = targets.resolve(command.target_type, command.target_id)

        if not target.batch_email_allowed(command.key, settings) or not SubscriptionStore(
            settings
        ).subscribes_to_email(target, command.key):
            logger.info(
                "Batch email not allowed for target",
                target_type=command.target_type,
                target_id=command.target_id,
                key=command.key,
            )
            return 0

        repo = current_domain.repository_for(Notification)
        pending = [
            n
            for n in repo.for_target(Reference(command.target_type, command.target_id), filtered_by_key=command.key)
            if n.is_unopened
        ]
        if not pending:
            return 0

        try:
            Mailer(settings).send_batch_notification_email(target, pending, batch_key=command.key)
            status, error = DeliveryStatus.SENT, None
        except Exception as e:
            logger.error(
                "Batch email delivery failed",
                target_type=command.target_type,
                target_id=command.target_id,
                key=command.key,
                error=str(e),
            )
            status, error = DeliveryStatus.FAILED, str(e)

        for notification in pending:
            notification.record_delivery(BATCH_EMAIL, status, error)
            repo.add(notification)

        logger.info(
            "Batch notifications flushed",
            target_type=command.target_type,
            target_id=command.target_id,
            key=command.key,
            count=len(pending),
            status=status.value,
        )
        return len(pending) if status is DeliveryStatus.SENT else 0
