"""Subscription Store — lazy subscription records and their evaluation.

A target without a subscription record for a key follows the configured
defaults. Evaluation is only consulted when the target allows
subscription management; otherwise every key and channel counts as
subscribed.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from activity.config import ActivitySettings
from activity.notification.notification import Notification
from activity.registry import Reference
from activity.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)


def _evaluate(record, check, subscribe_as_default) -> bool:
    if subscribe_as_default:
        return record is None or check(record)
    return record is not None and check(record)


class SubscriptionStore:
    def __init__(self, settings: ActivitySettings):
        self.settings = settings

    @property
    def repository(self):
        return current_domain.repository_for(Subscription)

    # -------------------------------------------------------------------
    # Lookup and creation
    # -------------------------------------------------------------------
    def find(self, target, key) -> Subscription | None:
        return self.repository.find_for(Reference.of(target), key)

    def find_or_create(self, target, key, **params) -> Subscription:
        return self.find(target, key) or self.create(target, key, **params)

    def create(self, target, key, subscribing=None, subscribing_to_email=None, optional_targets=None, at=None):
        """Create the subscription of ``target`` for ``key``.

        Unset flags fall back to the configured defaults; email is never
        defaulted on for an unsubscribed key.
        """
        target_ref = Reference.of(target)
        if not key:
            raise ValidationError({"key": ["Notification key is required"]})
        if self.repository.find_for(target_ref, key) is not None:
            raise ValidationError({"key": [f"Subscription for {key} already exists"]})

        if subscribing is None:
            subscribing = self.settings.subscribe_as_default
        if subscribing_to_email is None:
            subscribing_to_email = subscribing and self.settings.subscribe_to_email_as_default

        subscription = Subscription.create(
            target_ref,
            key,
            subscribing=subscribing,
            subscribing_to_email=subscribing_to_email,
            optional_targets=optional_targets,
            at=at,
        )
        self.repository.add(subscription)

        logger.info(
            "Subscription created",
            target_type=target_ref.type,
            target_id=target_ref.id,
            key=key,
            subscribing=subscribing,
            subscribing_to_email=subscribing_to_email,
        )
        return subscription

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def subscribe(self, target, key, with_email=True, with_optional_targets=None, subscribed_at=None):
        if with_optional_targets is None:
            with_optional_targets = self.settings.subscribe_to_optional_targets_as_default
        subscription = self.find_or_create(target, key)
        subscription.subscribe(
            with_email=with_email,
            with_optional_targets=with_optional_targets,
            subscribed_at=subscribed_at,
        )
        self.repository.add(subscription)
        return subscription

    def unsubscribe(self, target, key, unsubscribed_at=None):
        subscription = self.find_or_create(target, key)
        subscription.unsubscribe(unsubscribed_at=unsubscribed_at)
        self.repository.add(subscription)
        return subscription

    def subscribe_to_email(self, target, key, subscribed_at=None):
        subscription = self.find_or_create(target, key)
        subscription.subscribe_to_email(subscribed_at)
        self.repository.add(subscription)
        return subscription

    def unsubscribe_to_email(self, target, key, unsubscribed_at=None):
        subscription = self.find_or_create(target, key)
        subscription.unsubscribe_to_email(unsubscribed_at)
        self.repository.add(subscription)
        return subscription

    def subscribe_to_optional_target(self, target, key, name, subscribed_at=None):
        subscription = self.find_or_create(target, key)
        subscription.subscribe_to_optional_target(name, subscribed_at)
        self.repository.add(subscription)
        return subscription

    def unsubscribe_to_optional_target(self, target, key, name, unsubscribed_at=None):
        subscription = self.find_or_create(target, key)
        subscription.unsubscribe_to_optional_target(name, unsubscribed_at)
        self.repository.add(subscription)
        return subscription

    # -------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------
    def subscribes_to_notification(self, target, key, subscribe_as_default=None) -> bool:
        """Whether notifications for ``key`` are generated for ``target``."""
        if not target.subscription_allowed(key, self.settings):
            return True
        if subscribe_as_default is None:
            subscribe_as_default = self.settings.subscribe_as_default
        return _evaluate(self.find(target, key), lambda s: s.subscribing, subscribe_as_default)

    def subscribes_to_email(self, target, key) -> bool:
        if not target.subscription_allowed(key, self.settings):
            return True
        record = self.find(target, key)
        return _evaluate(record, lambda s: s.subscribing, self.settings.subscribe_as_default) and _evaluate(
            record, lambda s: s.subscribing_to_email, self.settings.subscribe_to_email_as_default
        )

    def subscribes_to_optional_target(self, target, key, name) -> bool:
        if not target.subscription_allowed(key, self.settings):
            return True
        record = self.find(target, key)
        default = self.settings.subscribe_to_optional_targets_as_default
        return _evaluate(record, lambda s: s.subscribing, self.settings.subscribe_as_default) and _evaluate(
            record, lambda s: s.subscribing_to_optional_target(name, default), default
        )

    # -------------------------------------------------------------------
    # Index
    # -------------------------------------------------------------------
    def subscription_index(self, target, limit=None, reverse=False, filtered_by_key=None) -> list[Subscription]:
        """Subscriptions of ``target``, latest first (oldest first with ``reverse``)."""
        subscriptions = self.repository.for_target(Reference.of(target), filtered_by_key=filtered_by_key)
        if reverse:
            subscriptions.reverse()
        return subscriptions[:limit] if limit is not None else subscriptions

    def notification_keys(self, target, filter=None, limit=None, reverse=False, filtered_by_key=None) -> list[str]:
        """Keys of the target's notifications, latest first.

        ``filter`` narrows to keys that have a subscription record
        (``configured``) or that do not (``unconfigured``).
        """
        target_ref = Reference.of(target)
        notifications = current_domain.repository_for(Notification).for_target(
            target_ref, filtered_by_key=filtered_by_key
        )
        keys = list(dict.fromkeys(n.key for n in notifications))
        if reverse:
            keys.reverse()

        if filter in ("configured", "unconfigured"):
            configured = {s.key for s in self.repository.for_target(target_ref)}
            keys = [k for k in keys if (k in configured) == (filter == "configured")]
        elif filter is not None:
            raise ValidationError({"filter": [f"Unknown notification key filter: {filter}"]})

        return keys[:limit] if limit is not None else keys
