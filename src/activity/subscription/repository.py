"""Repository for the Subscription aggregate."""

from activity.domain import activity
from activity.notification.repository import as_utc, fetch_all
from activity.registry import Reference
from activity.subscription.subscription import Subscription, target_key_for


@activity.repository(part_of=Subscription)
class SubscriptionRepository:
    def find_for(self, target: Reference, key: str) -> Subscription | None:
        """The subscription of ``target`` for ``key``, if configured."""
        results = self._dao.query.filter(target_key=target_key_for(target, key)).all().items
        return results[0] if results else None

    def for_target(self, target: Reference, filtered_by_key=None) -> list[Subscription]:
        """Subscriptions of ``target``, latest first."""
        filters = {"target_type": target.type, "target_id": str(target.id)}
        if filtered_by_key:
            filters["key"] = filtered_by_key

        results = fetch_all(self._dao, **filters)
        return sorted(results, key=lambda s: (as_utc(s.created_at), str(s.id)), reverse=True)
