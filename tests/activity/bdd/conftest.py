"""Shared BDD fixtures and step definitions for the activity domain."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when

from activity.channel import get_channel
from activity.config import get_settings
from activity.notification.notification import Notification
from activity.notification.store import NotificationStore
from activity.registry import targets


@pytest.fixture()
def world():
    """Notifications generated in the scenario, by comment id."""
    return {"notifications": {}, "optional_targets": []}


@pytest.fixture()
def flags():
    return {}


def _notification(world, comment_id) -> Notification:
    return current_domain.repository_for(Notification).get(world["notifications"][comment_id].id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the "{flag}" setting is on'))
def setting_is_on(configure, flags, flag):
    flags[flag] = True
    configure(**flags)


@given(parsers.cfparse('a user "{user_id}"'))
def a_user(host, user_id):
    host.user(user_id)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{author}" comments "{comment_id}" for "{recipient}" with key "{key}"'))
def user_comments(host, world, author, comment_id, recipient, key):
    comment = host.comment(
        comment_id,
        author=targets.resolve("User", author),
        recipients=[targets.resolve("User", recipient)],
    )
    comment.optional = list(world["optional_targets"])
    notifications = NotificationStore(get_settings()).notify("User", comment, key=key)
    if notifications:
        world["notifications"][comment_id] = notifications[0]


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{user_id}" has {count:d} unopened notification'))
@then(parsers.cfparse('"{user_id}" has {count:d} unopened notifications'))
def unopened_notifications(user_id, count):
    target = targets.resolve("User", user_id)
    assert NotificationStore(get_settings()).unopened_notification_count(target, with_group_members=True) == count


@then(parsers.cfparse('"{user_id}" received {count:d} email'))
@then(parsers.cfparse('"{user_id}" received {count:d} emails'))
def received_emails(user_id, count):
    sent = [m for m in get_channel("email").sent_emails if m["to"] == f"{user_id}@example.com"]
    assert len(sent) == count


@then(parsers.cfparse('the notification of "{comment_id}" owns its group'))
def owns_its_group(world, comment_id):
    assert _notification(world, comment_id).is_group_owner
