"""Notification Store — generating, opening and querying notifications.

``notify`` asks the notifiable for its targets and stores one
notification per subscribed target, grouped by the Grouping Engine.
Delivery happens separately, in reaction to NotificationGenerated.

Index queries list group owners only (unless ``with_group_members``),
latest first; the opened part of the index is bounded by
``opened_index_limit``.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from activity.config import ActivitySettings
from activity.errors import NotFoundError
from activity.notification.grouping import GroupingEngine
from activity.notification.notification import Notification
from activity.notification.repository import latest_first
from activity.registry import Reference, notifiables
from activity.subscription.store import SubscriptionStore

logger = structlog.get_logger(__name__)


class NotificationStore:
    def __init__(
        self,
        settings: ActivitySettings,
        subscriptions: SubscriptionStore | None = None,
        grouping: GroupingEngine | None = None,
    ):
        self.settings = settings
        self.subscriptions = subscriptions or SubscriptionStore(settings)
        self.grouping = grouping or GroupingEngine(settings)

    @property
    def repository(self):
        return current_domain.repository_for(Notification)

    # -------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------
    def notify(self, target_type, notifiable, **options) -> list[Notification]:
        """Notify every target of ``target_type`` the notifiable declares for the key."""
        if not self.settings.enabled:
            return []
        key = options.pop("key", None) or notifiable.default_notification_key()
        targets = notifiable.notification_targets(target_type, key)
        return self.notify_all(targets, notifiable, key=key, **options)

    def notify_all(self, targets, notifiable, **options) -> list[Notification]:
        notifications = []
        for target in targets:
            notification = self.notify_to(target, notifiable, **options)
            if notification is not None:
                notifications.append(notification)
        return notifications

    def notify_to(self, target, notifiable, **options) -> Notification | None:
        if not self.settings.enabled:
            return None
        return self.generate(target, notifiable, **options)

    def generate(
        self,
        target,
        notifiable,
        key=None,
        group=None,
        group_expiry_delay=None,
        notifier=None,
        parameters=None,
        send_email=True,
        publish_optional_targets=True,
        now=None,
    ) -> Notification | None:
        """Store a notification for ``target`` unless it does not subscribe to the key."""
        key = key or notifiable.default_notification_key()
        if not self.subscriptions.subscribes_to_notification(target, key):
            logger.info(
                "Target does not subscribe to notification",
                target_type=target.target_type,
                target_id=str(target.target_id),
                key=key,
            )
            return None

        target_type = target.target_type
        if notifier is None:
            notifier = notifiable.notifier(target_type, key)
        merged_parameters = {**notifiable.notification_parameters(target_type, key), **(parameters or {})}

        return self.create(
            target,
            notifiable,
            key,
            group=group,
            notifier=notifier,
            parameters=merged_parameters,
            group_expiry_delay=group_expiry_delay,
            send_email=send_email,
            publish_optional_targets=publish_optional_targets,
            now=now,
        )

    def create(
        self,
        target,
        notifiable,
        key,
        group=None,
        notifier=None,
        parameters=None,
        group_expiry_delay=None,
        send_email=True,
        publish_optional_targets=True,
        now=None,
    ) -> Notification:
        now = now or datetime.now(UTC)
        decision = self.grouping.resolve(
            target, notifiable, key, group=group, group_expiry_delay=group_expiry_delay, now=now
        )

        notification = Notification.generate(
            target=Reference.of(target),
            notifiable=Reference.of(notifiable),
            key=key,
            grouping_key=decision.grouping_key,
            group=decision.group,
            group_owner_id=decision.group_owner_id,
            notifier=Reference.of(notifier),
            parameters=parameters,
            send_email=send_email,
            publish_optional_targets=publish_optional_targets,
            created_at=now,
        )

        self.grouping.merge(decision, notification)
        self.repository.add(notification)

        logger.info(
            "Notification generated",
            notification_id=str(notification.id),
            target_type=notification.target_type,
            target_id=notification.target_id,
            key=key,
            group_owner_id=decision.group_owner_id,
        )
        return notification

    # -------------------------------------------------------------------
    # Opening
    # -------------------------------------------------------------------
    def find(self, target, notification_id) -> Notification:
        """Load a notification of ``target``.

        Raises:
            NotFoundError: no such notification, or it belongs to another target.
        """
        try:
            notification = self.repository.get(notification_id)
        except ObjectNotFoundError:
            raise NotFoundError(f"Couldn't find notification with id {notification_id}") from None

        if notification.target_reference != Reference.of(target):
            raise NotFoundError(f"Couldn't find notification with id {notification_id}")
        return notification

    def open(self, notification_or_list, opened_at=None, with_members=True) -> int:
        """Open notifications and return how many were newly opened.

        Opening a group owner opens its unopened members too, unless
        ``with_members`` is False. Opened notifications keep their
        original ``opened_at`` and are not counted.
        """
        if isinstance(notification_or_list, list | tuple):
            notifications = notification_or_list
        else:
            notifications = [notification_or_list]

        opened_at = opened_at or datetime.now(UTC)
        repo = self.repository
        count = 0
        for item in notifications:
            notification = repo.get(item.id)
            if not notification.open(opened_at):
                continue
            repo.add(notification)
            count += 1

            if with_members and notification.is_group_owner:
                for member in repo.group_members(notification.id):
                    if member.open(opened_at):
                        repo.add(member)
                        count += 1
        return count

    def open_all_of(
        self,
        target,
        opened_at=None,
        filtered_by_type=None,
        filtered_by_group=None,
        filtered_by_key=None,
    ) -> int:
        """Open every unopened notification of ``target`` matching the filters."""
        unopened = [
            n
            for n in self.repository.for_target(
                Reference.of(target),
                filtered_by_key=filtered_by_key,
                filtered_by_type=filtered_by_type,
                filtered_by_group=Reference.of(filtered_by_group),
            )
            if n.is_unopened
        ]
        count = self.open(unopened, opened_at=opened_at, with_members=False)
        logger.info(
            "Notifications opened",
            target_type=Reference.of(target).type,
            target_id=Reference.of(target).id,
            count=count,
        )
        return count

    # -------------------------------------------------------------------
    # Index
    # -------------------------------------------------------------------
    def _index(self, target, opened, with_group_members=False, **filters) -> list[Notification]:
        notifications = self.repository.for_target(
            Reference.of(target),
            filtered_by_key=filters.get("filtered_by_key"),
            filtered_by_type=filters.get("filtered_by_type"),
            filtered_by_group=Reference.of(filters.get("filtered_by_group")),
        )
        return [
            n for n in notifications if n.is_opened == opened and (with_group_members or n.is_group_owner)
        ]

    def unopened_notification_index(
        self, target, limit=None, reverse=False, with_group_members=False, **filters
    ) -> list[Notification]:
        notifications = self._index(target, False, with_group_members, **filters)
        if reverse:
            notifications.reverse()
        return notifications[:limit] if limit is not None else notifications

    def opened_notification_index(
        self, target, limit=None, reverse=False, with_group_members=False, **filters
    ) -> list[Notification]:
        notifications = self._index(target, True, with_group_members, **filters)
        if reverse:
            notifications.reverse()
        return notifications[: self.settings.opened_index_limit if limit is None else limit]

    def notification_index(
        self, target, limit=None, reverse=False, with_group_members=False, **filters
    ) -> list[Notification]:
        """Unopened notifications first, then the recently opened ones.

        Opened notifications only fill the slots left under ``limit``
        (``opened_index_limit`` when not given) after the unopened ones.
        """
        unopened = self.unopened_notification_index(
            target, limit=limit, reverse=reverse, with_group_members=with_group_members, **filters
        )
        if not unopened:
            return self.opened_notification_index(
                target, limit=limit, reverse=reverse, with_group_members=with_group_members, **filters
            )

        total = self.settings.opened_index_limit if limit is None else limit
        opened_limit = total - len(unopened)
        if opened_limit <= 0:
            return unopened
        return unopened + self.opened_notification_index(
            target, limit=opened_limit, reverse=reverse, with_group_members=with_group_members, **filters
        )

    def unopened_notification_count(self, target, with_group_members=False, **filters) -> int:
        return len(self._index(target, False, with_group_members, **filters))

    def has_unopened_notifications(self, target, **filters) -> bool:
        return self.unopened_notification_count(target, **filters) > 0

    # -------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------
    def group_owner(self, notification) -> Notification:
        if notification.is_group_owner:
            return notification
        return self.repository.get(notification.group_owner_id)

    def group_members(self, notification) -> list[Notification]:
        """Members of the group ``notification`` owns (empty for a member)."""
        if notification.is_group_member:
            return []
        return self.repository.group_members(notification.id)

    def _counted_members(self, notification) -> list[Notification]:
        owner = self.group_owner(notification)
        return [m for m in self.repository.group_members(owner.id) if m.is_opened == owner.is_opened]

    def group_member_count(self, notification) -> int:
        """Members of the group sharing the owner's opened state."""
        return len(self._counted_members(notification))

    def group_notification_count(self, notification) -> int:
        return self.group_member_count(notification) + 1

    def group_notifier_count(self, notification) -> int:
        """Distinct notifiers across the owner and its counted members."""
        owner = self.group_owner(notification)
        notifiers = {n.notifier_reference for n in [owner, *self._counted_members(owner)]}
        notifiers.discard(None)
        return len(notifiers)

    def latest_group_member(self, notification) -> Notification:
        """Most recent member of the group, or the notification itself."""
        members = self.group_members(notification)
        return latest_first(members)[0] if members else notification

    def remove_from_group(self, notification) -> Notification | None:
        """Take ``notification`` out of its group.

        An owner hands the group to its earliest member, which is
        returned; a member becomes the owner of a group of its own.
        """
        repo = self.repository
        notification = repo.get(notification.id)
        if notification.is_group_member:
            notification.reassign_group_owner(None)
            repo.add(notification)
            return None

        members = repo.group_members(notification.id)
        if not members:
            return None

        new_owner, *others = members
        new_owner.reassign_group_owner(None)
        repo.add(new_owner)
        for member in others:
            member.reassign_group_owner(new_owner.id)
            repo.add(member)

        logger.info(
            "Group owner reassigned",
            previous_owner_id=str(notification.id),
            new_owner_id=str(new_owner.id),
            members=len(others),
        )
        return new_owner

    # -------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------
    def notifiable_path(self, notification) -> str:
        """Path of the notification's notifiable in the host application.

        Raises:
            NotFoundError: the notifiable no longer exists.
        """
        notifiable = notifiables.resolve_reference(notification.notifiable_reference)
        return notifiable.notifiable_path(notification.target_type, notification.key)
