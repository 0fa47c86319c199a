"""DeliveryLog — one row per channel decision for a notification."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from activity.domain import activity
from activity.notification.events import DeliveryRecorded
from activity.notification.notification import Notification
from activity.notification.repository import fetch_all


@activity.projection
class DeliveryLog:
    delivery_id: Identifier(identifier=True, required=True)
    notification_id: Identifier(required=True)
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True)
    channel: String(required=True)
    status: String(required=True)
    error: String(max_length=1000)
    recorded_at: DateTime()


@activity.projector(projector_for=DeliveryLog, aggregates=[Notification])
class DeliveryLogProjector:
    @on(DeliveryRecorded)
    def on_delivery_recorded(self, event: DeliveryRecorded):
        current_domain.repository_for(DeliveryLog).add(
            DeliveryLog(
                delivery_id=event.delivery_id,
                notification_id=event.notification_id,
                target_type=event.target_type,
                target_id=event.target_id,
                key=event.key,
                channel=event.channel,
                status=event.status,
                error=event.error,
                recorded_at=event.recorded_at,
            )
        )


def deliveries_for(notification_id) -> list[DeliveryLog]:
    """Logged channel decisions for a notification, oldest first."""
    results = fetch_all(current_domain.repository_for(DeliveryLog)._dao, notification_id=str(notification_id))
    return sorted(results, key=lambda d: d.recorded_at)
