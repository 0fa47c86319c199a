"""Domain events for the Subscription aggregate."""

from protean.fields import Boolean, DateTime, Identifier, String

from activity.domain import activity


@activity.event(part_of="Subscription")
class SubscriptionCreated:
    """A target configured its subscription to a notification key."""

    __version__ = "v1"

    subscription_id: Identifier(required=True)
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True)
    subscribing: Boolean(required=True)
    subscribing_to_email: Boolean(required=True)
    created_at: DateTime(required=True)


@activity.event(part_of="Subscription")
class Subscribed:
    """A target subscribed to a notification key."""

    __version__ = "v1"

    subscription_id: Identifier(required=True)
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True)
    with_email: Boolean(required=True)
    subscribed_at: DateTime(required=True)


@activity.event(part_of="Subscription")
class Unsubscribed:
    """A target unsubscribed from a notification key and all its channels."""

    __version__ = "v1"

    subscription_id: Identifier(required=True)
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True)
    unsubscribed_at: DateTime(required=True)


@activity.event(part_of="Subscription")
class EmailSubscriptionChanged:
    """Email delivery for a notification key was switched on or off."""

    __version__ = "v1"

    subscription_id: Identifier(required=True)
    key: String(required=True)
    subscribing_to_email: Boolean(required=True)
    changed_at: DateTime(required=True)


@activity.event(part_of="Subscription")
class OptionalTargetSubscriptionChanged:
    """Delivery through a named optional target was switched on or off."""

    __version__ = "v1"

    subscription_id: Identifier(required=True)
    key: String(required=True)
    optional_target: String(required=True)
    subscribing: Boolean(required=True)
    changed_at: DateTime(required=True)
