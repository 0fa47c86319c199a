"""Application tests for the Grouping Engine — which group a notification joins."""

from datetime import UTC, datetime, timedelta

import pytest

from activity.config import get_settings
from activity.notification.grouping import GroupingEngine, as_timedelta
from activity.notification.store import NotificationStore
from activity.registry import Reference

T0 = datetime(2026, 6, 1, 10, 0, tzinfo=UTC)
KEY = "comment.reply"


@pytest.fixture()
def alice(host):
    return host.user("alice")


def _notify(store, host, alice, comment_id, at, **options):
    comment = options.pop("comment", None) or host.comment(comment_id, recipients=[alice])
    [notification] = store.notify("User", comment, key=KEY, now=at, **options)
    return notification


class TestAsTimedelta:
    def test_seconds(self):
        assert as_timedelta(90) == timedelta(seconds=90)

    def test_passthrough(self):
        assert as_timedelta(timedelta(hours=1)) == timedelta(hours=1)
        assert as_timedelta(None) is None


class TestGrouping:
    def test_first_notification_owns_the_group(self, host, alice):
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0)
        assert first.is_group_owner
        assert first.grouping_key == "Comment"

    def test_second_notification_joins_the_group(self, host, alice):
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0)
        second = _notify(store, host, alice, "c2", T0 + timedelta(minutes=5))
        assert str(second.group_owner_id) == str(first.id)

    def test_different_keys_do_not_group(self, host, alice):
        store = NotificationStore(get_settings())
        _notify(store, host, alice, "c1", T0)
        [other] = store.notify("User", host.comment("c2", recipients=[alice]), key="comment.mention", now=T0)
        assert other.is_group_owner

    def test_different_targets_do_not_group(self, host, alice):
        bob = host.user("bob")
        store = NotificationStore(get_settings())
        _notify(store, host, alice, "c1", T0)
        [for_bob] = store.notify("User", host.comment("c2", recipients=[bob]), key=KEY, now=T0)
        assert for_bob.is_group_owner

    def test_group_reference_must_match(self, host, alice):
        store = NotificationStore(get_settings())
        on_a1 = host.comment("c1", recipients=[alice])
        on_a1.group = host.article("a1")
        on_a2 = host.comment("c2", recipients=[alice])
        on_a2.group = host.article("a2")
        also_a1 = host.comment("c3", recipients=[alice])
        also_a1.group = host.article("a1")

        first = _notify(store, host, alice, None, T0, comment=on_a1)
        second = _notify(store, host, alice, None, T0 + timedelta(seconds=1), comment=on_a2)
        third = _notify(store, host, alice, None, T0 + timedelta(seconds=2), comment=also_a1)

        assert second.is_group_owner
        assert str(third.group_owner_id) == str(first.id)
        assert third.group_reference == Reference("Article", "a1")

    def test_explicit_group_option(self, host, alice):
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0, group=host.article("a1"))
        second = _notify(store, host, alice, "c2", T0 + timedelta(seconds=1))
        third = _notify(store, host, alice, "c3", T0 + timedelta(seconds=2), group=host.article("a1"))

        assert second.is_group_owner
        assert str(third.group_owner_id) == str(first.id)

    def test_overriding_group_key(self, host, alice):
        store = NotificationStore(get_settings())
        _notify(store, host, alice, "c1", T0)
        thread = host.comment("c2", recipients=[alice])
        thread.group_key = "Thread"

        second = _notify(store, host, alice, None, T0 + timedelta(seconds=1), comment=thread)

        assert second.is_group_owner
        assert second.grouping_key == "Thread"

    def test_opened_owner_does_not_accept_members(self, host, alice):
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0)
        store.open(first)

        second = _notify(store, host, alice, "c2", T0 + timedelta(seconds=1))

        assert second.is_group_owner

    def test_member_is_never_an_owner_candidate(self, host, alice):
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0)
        _notify(store, host, alice, "c2", T0 + timedelta(seconds=1))
        third = _notify(store, host, alice, "c3", T0 + timedelta(seconds=2))
        assert str(third.group_owner_id) == str(first.id)


class TestGroupExpiry:
    def test_configured_expiry(self, host, alice, configure):
        configure(group_expiry_delay=60)
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0)

        inside = _notify(store, host, alice, "c2", T0 + timedelta(seconds=30))
        outside = _notify(store, host, alice, "c3", T0 + timedelta(seconds=90))

        assert str(inside.group_owner_id) == str(first.id)
        assert outside.is_group_owner

    def test_notifiable_expiry_overrides_settings(self, host, alice, configure):
        configure(group_expiry_delay=3600)
        store = NotificationStore(get_settings())
        _notify(store, host, alice, "c1", T0)
        quick = host.comment("c2", recipients=[alice])
        quick.group_expiry_delay = timedelta(seconds=10)

        second = _notify(store, host, alice, None, T0 + timedelta(seconds=20), comment=quick)

        assert second.is_group_owner

    def test_option_overrides_notifiable(self, host, alice):
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0)
        slow = host.comment("c2", recipients=[alice])
        slow.group_expiry_delay = timedelta(seconds=10)

        second = _notify(store, host, alice, None, T0 + timedelta(seconds=20), comment=slow, group_expiry_delay=60)

        assert str(second.group_owner_id) == str(first.id)

    def test_latest_open_owner_wins(self, host, alice):
        store = NotificationStore(get_settings())
        _notify(store, host, alice, "c1", T0)
        newer_owner = _notify(store, host, alice, "c2", T0 + timedelta(seconds=120), group_expiry_delay=60)

        member = _notify(store, host, alice, "c3", T0 + timedelta(seconds=130))

        assert newer_owner.is_group_owner
        assert str(member.group_owner_id) == str(newer_owner.id)

    def test_owners_created_together_tie_break_on_id(self, host, alice):
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0)
        # A zero expiry window skips the first owner, giving two owners at T0
        second = _notify(store, host, alice, "c2", T0, group_expiry_delay=0)
        assert first.is_group_owner and second.is_group_owner

        member = _notify(store, host, alice, "c3", T0 + timedelta(seconds=5))

        expected = max([first, second], key=lambda n: str(n.id))
        assert str(member.group_owner_id) == str(expected.id)


class TestGroupingEngine:
    def test_resolve_without_candidates(self, host, alice):
        comment = host.comment("c1", recipients=[alice])
        decision = GroupingEngine(get_settings()).resolve(alice, comment, KEY, now=T0)
        assert decision.owner is None
        assert decision.group_owner_id is None
        assert decision.grouping_key == "Comment"
        assert decision.group is None

    def test_merge_bumps_owner(self, host, alice, fresh):
        store = NotificationStore(get_settings())
        first = _notify(store, host, alice, "c1", T0)
        later = T0 + timedelta(minutes=3)
        _notify(store, host, alice, "c2", later)

        assert fresh(first).updated_at.replace(tzinfo=UTC) == later
