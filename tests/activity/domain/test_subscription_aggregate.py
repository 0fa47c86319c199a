"""Tests for the Subscription aggregate — flags, timestamps and invariants."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from activity.registry import Reference
from activity.subscription.events import (
    EmailSubscriptionChanged,
    OptionalTargetSubscriptionChanged,
    Subscribed,
    SubscriptionCreated,
    Unsubscribed,
)
from activity.subscription.subscription import Subscription, target_key_for

USER = Reference("User", "u1")
T0 = datetime(2026, 4, 1, 9, 0, tzinfo=UTC)


def _create(**overrides):
    defaults = {"target": USER, "key": "comment.reply", "at": T0}
    defaults.update(overrides)
    return Subscription.create(**defaults)


class TestSubscriptionCreation:
    def test_target_key_is_unique_natural_key(self):
        s = _create()
        assert s.target_key == target_key_for(USER, "comment.reply") == "User:u1:comment.reply"

    def test_subscribed_record_stamps_subscribed_times(self):
        s = _create()
        assert s.subscribing is True
        assert s.subscribing_to_email is True
        assert s.subscribed_at == T0
        assert s.subscribed_to_email_at == T0
        assert s.unsubscribed_at is None
        assert s.unsubscribed_to_email_at is None

    def test_unsubscribed_record_stamps_unsubscribed_times(self):
        s = _create(subscribing=False, subscribing_to_email=False)
        assert s.unsubscribed_at == T0
        assert s.unsubscribed_to_email_at == T0
        assert s.subscribed_at is None

    def test_optional_targets_are_stamped(self):
        s = _create(optional_targets={"slack": True, "console_output": False})
        settings = s.optional_target_settings()
        assert settings["slack"] == {"subscribing": True, "subscribed_at": T0.isoformat()}
        assert settings["console_output"] == {"subscribing": False, "unsubscribed_at": T0.isoformat()}

    def test_created_event(self):
        s = _create()
        assert any(isinstance(e, SubscriptionCreated) for e in s._events)

    def test_email_requires_subscription(self):
        with pytest.raises(ValidationError) as exc:
            _create(subscribing=False, subscribing_to_email=True)
        assert "Cannot subscribe to email" in str(exc.value)

    def test_optional_target_requires_subscription(self):
        with pytest.raises(ValidationError) as exc:
            _create(subscribing=False, subscribing_to_email=False, optional_targets={"slack": True})
        assert "Cannot subscribe to slack" in str(exc.value)


class TestSubscribeAndUnsubscribe:
    def test_unsubscribe_clears_every_channel(self):
        s = _create(optional_targets={"slack": True})
        later = T0 + timedelta(days=1)

        s.unsubscribe(unsubscribed_at=later)

        assert s.subscribing is False
        assert s.subscribing_to_email is False
        assert s.unsubscribed_at == later
        assert s.unsubscribed_to_email_at == later
        assert s.subscribing_to_optional_target("slack") is False
        assert any(isinstance(e, Unsubscribed) for e in s._events)

    def test_subscribe_with_email(self):
        s = _create(subscribing=False, subscribing_to_email=False)
        later = T0 + timedelta(days=1)

        s.subscribe(subscribed_at=later)

        assert s.subscribing is True
        assert s.subscribing_to_email is True
        assert s.subscribed_at == later
        assert s.subscribed_to_email_at == later
        assert any(isinstance(e, Subscribed) for e in s._events)

    def test_subscribe_without_email_keeps_email_off(self):
        s = _create(subscribing=False, subscribing_to_email=False)
        s.subscribe(with_email=False)
        assert s.subscribing is True
        assert s.subscribing_to_email is False

    def test_subscribe_restores_optional_targets(self):
        s = _create(optional_targets={"slack": True})
        s.unsubscribe()
        s.subscribe(with_optional_targets=True)
        assert s.subscribing_to_optional_target("slack") is True

    def test_subscribe_without_optional_targets_keeps_them_off(self):
        s = _create(optional_targets={"slack": True})
        s.unsubscribe()
        s.subscribe(with_optional_targets=False)
        assert s.subscribing_to_optional_target("slack") is False


class TestEmailChannel:
    def test_unsubscribe_and_resubscribe_to_email(self):
        s = _create()
        off = T0 + timedelta(hours=1)
        on = T0 + timedelta(hours=2)

        s.unsubscribe_to_email(off)
        assert s.subscribing_to_email is False
        assert s.unsubscribed_to_email_at == off

        s.subscribe_to_email(on)
        assert s.subscribing_to_email is True
        assert s.subscribed_to_email_at == on
        assert sum(isinstance(e, EmailSubscriptionChanged) for e in s._events) == 2

    def test_cannot_subscribe_to_email_while_unsubscribed(self):
        s = _create(subscribing=False, subscribing_to_email=False)
        with pytest.raises(ValidationError):
            s.subscribe_to_email()


class TestOptionalTargets:
    def test_unknown_name_follows_default(self):
        s = _create()
        assert s.subscribing_to_optional_target("slack") is True
        assert s.subscribing_to_optional_target("slack", subscribe_as_default=False) is False

    def test_toggle_optional_target(self):
        s = _create()
        s.unsubscribe_to_optional_target("slack", T0)
        assert s.subscribing_to_optional_target("slack") is False
        assert s.optional_target_names == ["slack"]

        s.subscribe_to_optional_target("slack", T0 + timedelta(minutes=5))
        state = s.optional_target_settings()["slack"]
        assert state["subscribing"] is True
        assert state["unsubscribed_at"] == T0.isoformat()
        assert state["subscribed_at"] == (T0 + timedelta(minutes=5)).isoformat()

    def test_change_raises_event(self):
        s = _create()
        s._events.clear()
        s.subscribe_to_optional_target("slack")
        event = s._events[0]
        assert isinstance(event, OptionalTargetSubscriptionChanged)
        assert event.optional_target == "slack"
        assert event.subscribing is True

    def test_name_is_required(self):
        s = _create()
        with pytest.raises(ValidationError):
            s.subscribe_to_optional_target("")

    def test_cannot_subscribe_to_optional_target_while_unsubscribed(self):
        s = _create(subscribing=False, subscribing_to_email=False)
        with pytest.raises(ValidationError):
            s.subscribe_to_optional_target("slack")
