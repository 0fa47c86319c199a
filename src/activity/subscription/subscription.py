"""Subscription aggregate — a target's delivery preferences for one key.

One record per (target, notification key). ``subscribing`` controls
whether notifications are generated at all; ``subscribing_to_email`` and
the per-name ``optional_targets`` flags control the delivery channels.
Every flag carries the timestamp of its last change, and channel flags
can only be on while the key itself is subscribed.
"""

import json
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String, Text

from activity.domain import activity
from activity.registry import Reference
from activity.subscription.events import (
    EmailSubscriptionChanged,
    OptionalTargetSubscriptionChanged,
    Subscribed,
    SubscriptionCreated,
    Unsubscribed,
)


def target_key_for(target: Reference, key: str) -> str:
    """Natural key enforcing one subscription per (target, key)."""
    return f"{target.type}:{target.id}:{key}"


@activity.aggregate
class Subscription:
    """Delivery preferences of one target for one notification key."""

    target_type: String(required=True, max_length=255)
    target_id: String(required=True, max_length=255)
    key: String(required=True, max_length=255)
    target_key: String(required=True, max_length=767, unique=True)

    subscribing: Boolean(default=True)
    subscribing_to_email: Boolean(default=True)

    subscribed_at: DateTime()
    unsubscribed_at: DateTime()
    subscribed_to_email_at: DateTime()
    unsubscribed_to_email_at: DateTime()

    # JSON: {name: {"subscribing": bool, "subscribed_at": iso, "unsubscribed_at": iso}}
    optional_targets: Text()

    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def email_requires_subscription(self):
        if self.subscribing_to_email and not self.subscribing:
            raise ValidationError(
                {"subscribing_to_email": ["Cannot subscribe to email without subscribing to the notification"]}
            )

    @invariant.post
    def optional_targets_require_subscription(self):
        if self.subscribing:
            return
        subscribed = [name for name, state in self.optional_target_settings().items() if state.get("subscribing")]
        if subscribed:
            raise ValidationError(
                {
                    "optional_targets": [
                        f"Cannot subscribe to {', '.join(sorted(subscribed))} without subscribing to the notification"
                    ]
                }
            )

    @invariant.post
    def subscription_timestamp_matches_flag(self):
        if self.subscribing and self.subscribed_at is None:
            raise ValidationError({"subscribed_at": ["Subscribed time is required while subscribing"]})
        if not self.subscribing and self.unsubscribed_at is None:
            raise ValidationError({"unsubscribed_at": ["Unsubscribed time is required while not subscribing"]})

    @invariant.post
    def email_timestamp_matches_flag(self):
        if self.subscribing_to_email and self.subscribed_to_email_at is None:
            raise ValidationError(
                {"subscribed_to_email_at": ["Subscribed to email time is required while subscribing to email"]}
            )
        if not self.subscribing_to_email and self.unsubscribed_to_email_at is None:
            raise ValidationError(
                {"unsubscribed_to_email_at": ["Unsubscribed to email time is required while not subscribing to email"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, target: Reference, key, subscribing=True, subscribing_to_email=True, optional_targets=None, at=None):
        """Create a subscription with timestamps stamped according to the flags.

        ``optional_targets`` maps an optional target name to its flag.
        """
        now = at or datetime.now(UTC)
        stamp = now.isoformat()

        subscription = cls(
            target_type=target.type,
            target_id=str(target.id),
            key=key,
            target_key=target_key_for(target, key),
            subscribing=subscribing,
            subscribing_to_email=subscribing_to_email,
            subscribed_at=now if subscribing else None,
            unsubscribed_at=None if subscribing else now,
            subscribed_to_email_at=now if subscribing_to_email else None,
            unsubscribed_to_email_at=None if subscribing_to_email else now,
            optional_targets=json.dumps(
                {
                    name: {"subscribing": flag, "subscribed_at" if flag else "unsubscribed_at": stamp}
                    for name, flag in (optional_targets or {}).items()
                }
            ),
            created_at=now,
            updated_at=now,
        )

        subscription.raise_(
            SubscriptionCreated(
                subscription_id=str(subscription.id),
                target_type=subscription.target_type,
                target_id=subscription.target_id,
                key=key,
                subscribing=subscribing,
                subscribing_to_email=subscribing_to_email,
                created_at=now,
            )
        )

        return subscription

    # -------------------------------------------------------------------
    # Notification subscription
    # -------------------------------------------------------------------
    def subscribe(self, with_email=True, with_optional_targets=True, subscribed_at=None):
        now = subscribed_at or datetime.now(UTC)
        settings = self.optional_target_settings()

        with atomic_change(self):
            self.subscribing = True
            self.subscribed_at = now
            if with_email:
                self.subscribing_to_email = True
                self.subscribed_to_email_at = now
            if with_optional_targets:
                for name in settings:
                    settings[name].update(subscribing=True, subscribed_at=now.isoformat())
                self.optional_targets = json.dumps(settings)
            self.updated_at = now

        self.raise_(
            Subscribed(
                subscription_id=str(self.id),
                target_type=self.target_type,
                target_id=self.target_id,
                key=self.key,
                with_email=bool(with_email),
                subscribed_at=now,
            )
        )

    def unsubscribe(self, unsubscribed_at=None):
        """Stop the notification and every delivery channel for this key."""
        now = unsubscribed_at or datetime.now(UTC)
        settings = self.optional_target_settings()
        for name in settings:
            settings[name].update(subscribing=False, unsubscribed_at=now.isoformat())

        with atomic_change(self):
            self.subscribing = False
            self.unsubscribed_at = now
            self.subscribing_to_email = False
            self.unsubscribed_to_email_at = now
            self.optional_targets = json.dumps(settings)
            self.updated_at = now

        self.raise_(
            Unsubscribed(
                subscription_id=str(self.id),
                target_type=self.target_type,
                target_id=self.target_id,
                key=self.key,
                unsubscribed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Email channel
    # -------------------------------------------------------------------
    def subscribe_to_email(self, subscribed_to_email_at=None):
        now = subscribed_to_email_at or datetime.now(UTC)
        with atomic_change(self):
            self.subscribing_to_email = True
            self.subscribed_to_email_at = now
            self.updated_at = now
        self._email_changed(now)

    def unsubscribe_to_email(self, unsubscribed_to_email_at=None):
        now = unsubscribed_to_email_at or datetime.now(UTC)
        with atomic_change(self):
            self.subscribing_to_email = False
            self.unsubscribed_to_email_at = now
            self.updated_at = now
        self._email_changed(now)

    def _email_changed(self, now):
        self.raise_(
            EmailSubscriptionChanged(
                subscription_id=str(self.id),
                key=self.key,
                subscribing_to_email=self.subscribing_to_email,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Optional targets
    # -------------------------------------------------------------------
    def subscribe_to_optional_target(self, name, subscribed_at=None):
        self._set_optional_target(name, True, subscribed_at or datetime.now(UTC))

    def unsubscribe_to_optional_target(self, name, unsubscribed_at=None):
        self._set_optional_target(name, False, unsubscribed_at or datetime.now(UTC))

    def _set_optional_target(self, name, flag, now):
        if not name:
            raise ValidationError({"optional_target": ["Optional target name is required"]})

        settings = self.optional_target_settings()
        state = settings.setdefault(name, {})
        state["subscribing"] = flag
        state["subscribed_at" if flag else "unsubscribed_at"] = now.isoformat()

        with atomic_change(self):
            self.optional_targets = json.dumps(settings)
            self.updated_at = now

        self.raise_(
            OptionalTargetSubscriptionChanged(
                subscription_id=str(self.id),
                key=self.key,
                optional_target=name,
                subscribing=flag,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------
    def optional_target_settings(self) -> dict:
        return json.loads(self.optional_targets) if self.optional_targets else {}

    @property
    def optional_target_names(self) -> list[str]:
        return list(self.optional_target_settings())

    def subscribing_to_optional_target(self, name, subscribe_as_default=True) -> bool:
        """Stored flag for ``name``; ``subscribe_as_default`` when it was never set."""
        state = self.optional_target_settings().get(name)
        if state is None or "subscribing" not in state:
            return subscribe_as_default
        return bool(state["subscribing"])

    @property
    def target_reference(self):
        return Reference(self.target_type, self.target_id)
