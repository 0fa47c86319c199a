"""Domain events for the Notification aggregate."""

from protean.fields import Boolean, DateTime, Identifier, String

from activity.domain import activity


@activity.event(part_of="Notification")
class NotificationGenerated:
    """A notification was stored for a target and is ready for delivery."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    target_type: String(required=True)
    target_id: String(required=True)
    notifiable_type: String(required=True)
    notifiable_id: String(required=True)
    key: String(required=True)
    group_owner_id: Identifier()
    send_email: Boolean(default=True)
    publish_optional_targets: Boolean(default=True)
    created_at: DateTime(required=True)


@activity.event(part_of="Notification")
class NotificationOpened:
    """A target read a notification."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True)
    opened_at: DateTime(required=True)


@activity.event(part_of="Notification")
class GroupMemberAdded:
    """A newer notification joined the group owned by this notification."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    member_id: Identifier(required=True)
    added_at: DateTime(required=True)


@activity.event(part_of="Notification")
class GroupOwnerReassigned:
    """A group member was moved under a new group owner (or became one)."""

    __version__ = "v1"

    notification_id: Identifier(required=True)
    previous_owner_id: Identifier()
    new_owner_id: Identifier()
    reassigned_at: DateTime(required=True)


@activity.event(part_of="Notification")
class DeliveryRecorded:
    """A delivery channel handled (or declined) a notification."""

    __version__ = "v1"

    delivery_id: Identifier(required=True)
    notification_id: Identifier(required=True)
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True)
    channel: String(required=True)
    status: String(required=True)
    error: String(max_length=1000)
    recorded_at: DateTime(required=True)
