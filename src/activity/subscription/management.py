"""Subscription management commands + handlers — create and toggle subscriptions."""

import json

from protean.fields import Boolean, String, Text
from protean.utils.mixins import handle

from activity.config import get_settings
from activity.domain import activity
from activity.registry import Reference
from activity.subscription.store import SubscriptionStore
from activity.subscription.subscription import Subscription


@activity.command(part_of="Subscription")
class CreateSubscription:
    """Configure a target's subscription to a notification key."""

    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True, max_length=255)
    subscribing: Boolean()
    subscribing_to_email: Boolean()
    optional_targets: Text()  # JSON: {name: bool}


@activity.command(part_of="Subscription")
class Subscribe:
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True, max_length=255)
    with_email_subscription: Boolean(default=True)
    with_optional_targets: Boolean()


@activity.command(part_of="Subscription")
class Unsubscribe:
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True, max_length=255)


@activity.command(part_of="Subscription")
class SubscribeToEmail:
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True, max_length=255)


@activity.command(part_of="Subscription")
class UnsubscribeToEmail:
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True, max_length=255)


@activity.command(part_of="Subscription")
class SubscribeToOptionalTarget:
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True, max_length=255)
    optional_target_name: String(required=True, max_length=255)


@activity.command(part_of="Subscription")
class UnsubscribeToOptionalTarget:
    target_type: String(required=True)
    target_id: String(required=True)
    key: String(required=True, max_length=255)
    optional_target_name: String(required=True, max_length=255)


def _target(command) -> Reference:
    return Reference(command.target_type, command.target_id)


@activity.command_handler(part_of=Subscription)
class ManageSubscriptionsHandler:
    @handle(CreateSubscription)
    def create_subscription(self, command: CreateSubscription):
        subscription = SubscriptionStore(get_settings()).create(
            _target(command),
            command.key,
            subscribing=command.subscribing,
            subscribing_to_email=command.subscribing_to_email,
            optional_targets=json.loads(command.optional_targets) if command.optional_targets else None,
        )
        return str(subscription.id)

    @handle(Subscribe)
    def subscribe(self, command: Subscribe):
        subscription = SubscriptionStore(get_settings()).subscribe(
            _target(command),
            command.key,
            with_email=command.with_email_subscription,
            with_optional_targets=command.with_optional_targets,
        )
        return str(subscription.id)

    @handle(Unsubscribe)
    def unsubscribe(self, command: Unsubscribe):
        return str(SubscriptionStore(get_settings()).unsubscribe(_target(command), command.key).id)

    @handle(SubscribeToEmail)
    def subscribe_to_email(self, command: SubscribeToEmail):
        return str(SubscriptionStore(get_settings()).subscribe_to_email(_target(command), command.key).id)

    @handle(UnsubscribeToEmail)
    def unsubscribe_to_email(self, command: UnsubscribeToEmail):
        return str(SubscriptionStore(get_settings()).unsubscribe_to_email(_target(command), command.key).id)

    @handle(SubscribeToOptionalTarget)
    def subscribe_to_optional_target(self, command: SubscribeToOptionalTarget):
        subscription = SubscriptionStore(get_settings()).subscribe_to_optional_target(
            _target(command), command.key, command.optional_target_name
        )
        return str(subscription.id)

    @handle(UnsubscribeToOptionalTarget)
    def unsubscribe_to_optional_target(self, command: UnsubscribeToOptionalTarget):
        subscription = SubscriptionStore(get_settings()).unsubscribe_to_optional_target(
            _target(command), command.key, command.optional_target_name
        )
        return str(subscription.id)
