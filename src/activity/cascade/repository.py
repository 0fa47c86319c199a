"""Repository for the Cascade aggregate."""

from activity.cascade.cascade import Cascade, CascadeStatus
from activity.domain import activity
from activity.notification.repository import as_utc, fetch_all


@activity.repository(part_of=Cascade)
class CascadeRepository:
    def active(self) -> list[Cascade]:
        """Every active cascade, earliest next run first."""
        cascades = fetch_all(self._dao, status=CascadeStatus.ACTIVE.value)
        return sorted(cascades, key=lambda c: (as_utc(c.next_run_at), str(c.id)))
