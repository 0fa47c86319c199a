from dataclasses import dataclass, field

import pytest
from protean.integrations.pytest import DomainFixture

from activity.channel import get_channel, reset_channels
from activity.config import ActivitySettings, set_settings
from activity.mailer.templates import reset_templates
from activity.registry import Reference, notifiables, notifiers, reset_registries, targets
from activity.roles import Notifiable, Notifier, Target


# ---------------------------------------------------------------------------
# Host application stand-ins
# ---------------------------------------------------------------------------
@dataclass
class User:
    id: str
    name: str
    email: str | None = None
    email_allowed: bool | None = None
    batch_email_allowed: bool | None = None
    subscription_allowed: bool | None = None


@dataclass
class Comment:
    id: str
    article_id: str
    author: User | None = None
    recipients: list[User] = field(default_factory=list)
    body: str = ""


class UserTarget(Target, Notifier):
    target_type = "User"
    notifier_type = "User"

    def __init__(self, user: User):
        self.user = user

    @property
    def target_id(self):
        return self.user.id

    @property
    def notifier_id(self):
        return self.user.id

    def notification_email(self):
        return self.user.email

    def notification_email_allowed(self, notifiable, key):
        return self.user.email_allowed

    def batch_notification_email_allowed(self, key):
        return self.user.batch_email_allowed

    def notification_subscription_allowed(self, key):
        return self.user.subscription_allowed

    def printable_notification_target_name(self):
        return self.user.name

    def printable_notification_notifier_name(self):
        return self.user.name


def _comment_recipients(notifiable, key):
    return [UserTarget(user) for user in notifiable.comment.recipients]


class CommentNotifiable(Notifiable):
    notifiable_type = "Comment"
    notification_targets_map = {"User": _comment_recipients}

    def __init__(self, comment: Comment):
        self.comment = comment
        self.group = None
        self.group_expiry_delay = None
        self.group_key = None
        self.email_key = None
        self.optional = []

    @property
    def notifiable_id(self):
        return self.comment.id

    def notification_group(self, target_type, key):
        return self.group

    def notification_group_expiry_delay(self, target_type, key):
        return self.group_expiry_delay

    def notifier(self, target_type, key):
        return UserTarget(self.comment.author) if self.comment.author else None

    def notification_parameters(self, target_type, key):
        return {"body": self.comment.body}

    def optional_targets(self, target_type, key):
        return list(self.optional)

    def overriding_notification_group_key(self, target_type, key):
        return self.group_key

    def overriding_notification_email_key(self, target, key):
        return self.email_key

    def notifiable_path(self, target_type, key):
        return f"/articles/{self.comment.article_id}/comments/{self.comment.id}"


class Host:
    """In-memory host application wired into the type registries."""

    def __init__(self):
        self.users: dict[str, User] = {}
        self.comments: dict[str, CommentNotifiable] = {}
        targets.register("User", self._load_user)
        notifiers.register("User", self._load_user)
        notifiables.register("Comment", self.comments.get)

    def _load_user(self, user_id):
        user = self.users.get(user_id)
        return UserTarget(user) if user else None

    def user(self, user_id, name=None, email="default", **policies) -> UserTarget:
        if email == "default":
            email = f"{user_id}@example.com"
        user = User(id=user_id, name=name or user_id.capitalize(), email=email, **policies)
        self.users[user_id] = user
        return UserTarget(user)

    def comment(self, comment_id, author=None, recipients=(), article_id="a1", body="Nice post") -> CommentNotifiable:
        notifiable = CommentNotifiable(
            Comment(
                id=comment_id,
                article_id=article_id,
                author=author.user if author else None,
                recipients=[r.user for r in recipients],
                body=body,
            )
        )
        self.comments[comment_id] = notifiable
        return notifiable

    def delete_comment(self, comment_id):
        self.comments.pop(comment_id, None)

    @staticmethod
    def article(article_id) -> Reference:
        return Reference("Article", article_id)


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------
@pytest.fixture(scope="session")
def activity_bed():
    from activity.domain import activity

    bed = DomainFixture(activity)
    bed.setup()
    yield bed
    bed.teardown()


def _reset_process_state():
    set_settings(ActivitySettings(_env_file=None))
    reset_channels()
    reset_registries()
    reset_templates()


@pytest.fixture(autouse=True)
def _ctx(activity_bed):
    with activity_bed.domain_context():
        _reset_process_state()
        yield
        _reset_process_state()

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def configure():
    """Install settings for the test; channels are rebuilt from them."""

    def _configure(**overrides) -> ActivitySettings:
        settings = ActivitySettings(_env_file=None, **overrides)
        set_settings(settings)
        reset_channels()
        return settings

    return _configure


@pytest.fixture()
def host():
    return Host()


@pytest.fixture()
def email():
    """The fake email adapter used by the mailer.

    Request it after any fixture that calls ``configure``; reconfiguring
    replaces the adapter.
    """
    return get_channel("email")


def _reload(notification):
    from protean import current_domain

    from activity.notification.notification import Notification

    return current_domain.repository_for(Notification).get(notification.id)


@pytest.fixture()
def fresh():
    """Reload a notification from its repository."""
    return _reload
