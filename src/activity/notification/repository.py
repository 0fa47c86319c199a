"""Repository for the Notification aggregate."""

from datetime import UTC

from activity.domain import activity
from activity.notification.notification import Notification
from activity.registry import Reference

PAGE_SIZE = 100


def as_utc(value):
    """Treat naive datetimes (as returned by some providers) as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def fetch_all(dao, **filters) -> list:
    """Every record matching ``filters``, read page by page."""
    results = []
    offset = 0
    while True:
        page = dao.query.filter(**filters).offset(offset).limit(PAGE_SIZE).all()
        results.extend(page.items)
        if len(page.items) < PAGE_SIZE:
            return results
        offset += PAGE_SIZE


def latest_first(notifications):
    """Sort by ``created_at`` descending, ties broken by id descending."""
    return sorted(notifications, key=lambda n: (as_utc(n.created_at), str(n.id)), reverse=True)


@activity.repository(part_of=Notification)
class NotificationRepository:
    """Query methods over stored notifications.

    Filtering on nullable columns (group, group owner, opened_at) happens
    in Python so that every database provider behaves the same.
    """

    def _fetch_all(self, **filters) -> list[Notification]:
        return fetch_all(self._dao, **filters)

    def for_target(
        self,
        target: Reference,
        filtered_by_key=None,
        filtered_by_type=None,
        filtered_by_group: Reference | None = None,
    ) -> list[Notification]:
        """All notifications of ``target``, latest first."""
        filters = {"target_type": target.type, "target_id": str(target.id)}
        if filtered_by_key:
            filters["key"] = filtered_by_key
        if filtered_by_type:
            filters["notifiable_type"] = filtered_by_type

        notifications = self._fetch_all(**filters)
        if filtered_by_group is not None:
            notifications = [n for n in notifications if n.group_reference == filtered_by_group]
        return latest_first(notifications)

    def group_owner_candidates(
        self,
        target: Reference,
        key: str,
        grouping_key: str,
        group: Reference | None,
        created_after=None,
    ) -> list[Notification]:
        """Unopened group owners a new notification could merge into, latest first."""
        candidates = self._fetch_all(
            target_type=target.type,
            target_id=str(target.id),
            key=key,
            grouping_key=grouping_key,
        )
        return latest_first(
            n
            for n in candidates
            if n.is_group_owner
            and n.is_unopened
            and n.group_reference == group
            and (created_after is None or as_utc(n.created_at) > as_utc(created_after))
        )

    def group_members(self, owner_id) -> list[Notification]:
        """Members of the group owned by ``owner_id``, oldest first."""
        members = self._fetch_all(group_owner_id=str(owner_id))
        return sorted(members, key=lambda n: (as_utc(n.created_at), str(n.id)))
