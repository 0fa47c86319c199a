"""OpenNotification / OpenAllNotifications commands + handler — mark as read."""

from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.mixins import handle

from activity.config import get_settings
from activity.domain import activity
from activity.notification.notification import Notification
from activity.notification.store import NotificationStore
from activity.registry import Reference


@activity.command(part_of="Notification")
class OpenNotification:
    """Open one notification of a target (and its group members)."""

    target_type: String(required=True)
    target_id: String(required=True)
    notification_id: Identifier(required=True)
    with_members: Boolean(default=True)
    opened_at: DateTime()


@activity.command(part_of="Notification")
class OpenAllNotifications:
    """Open every unopened notification of a target matching the filters."""

    target_type: String(required=True)
    target_id: String(required=True)
    filtered_by_type: String()
    filtered_by_group_type: String()
    filtered_by_group_id: String()
    filtered_by_key: String()
    opened_at: DateTime()


@activity.command_handler(part_of=Notification)
class OpenNotificationsHandler:
    @handle(OpenNotification)
    def open_notification(self, command: OpenNotification) -> int:
        store = NotificationStore(get_settings())
        notification = store.find(Reference(command.target_type, command.target_id), command.notification_id)
        return store.open(notification, opened_at=command.opened_at, with_members=command.with_members)

    @handle(OpenAllNotifications)
    def open_all_notifications(self, command: OpenAllNotifications) -> int:
        group = None
        if command.filtered_by_group_type and command.filtered_by_group_id:
            group = Reference(command.filtered_by_group_type, command.filtered_by_group_id)

        return NotificationStore(get_settings()).open_all_of(
            Reference(command.target_type, command.target_id),
            opened_at=command.opened_at,
            filtered_by_type=command.filtered_by_type,
            filtered_by_group=group,
            filtered_by_key=command.filtered_by_key,
        )
