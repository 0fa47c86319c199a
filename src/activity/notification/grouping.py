"""Grouping Engine — decides whether a new notification joins an open group.

Notifications of the same target, key, grouping key and group reference
collapse into one group. The most recent unopened group owner inside the
expiry window accepts the new notification as a member; otherwise the new
notification starts its own group.

The lookup and the merge are two separate steps. Two concurrent notify
calls for the same target and key can both miss the lookup and create
two group owners.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from protean.utils.globals import current_domain

from activity.config import ActivitySettings
from activity.notification.notification import Notification
from activity.registry import Reference

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GroupDecision:
    group: Reference | None
    grouping_key: str
    owner: Notification | None = None

    @property
    def group_owner_id(self):
        return str(self.owner.id) if self.owner is not None else None


def as_timedelta(value) -> timedelta | None:
    """Accept a ``timedelta`` or a number of seconds."""
    if value is None or isinstance(value, timedelta):
        return value
    return timedelta(seconds=float(value))


class GroupingEngine:
    def __init__(self, settings: ActivitySettings):
        self.settings = settings

    def resolve(self, target, notifiable, key, group=None, group_expiry_delay=None, now=None) -> GroupDecision:
        target_ref = Reference.of(target)
        group_ref = Reference.of(group if group is not None else notifiable.notification_group(target_ref.type, key))
        grouping_key = (
            notifiable.overriding_notification_group_key(target_ref.type, key) or notifiable.notifiable_type
        )

        expiry = self._expiry_delay(target_ref, notifiable, key, group_expiry_delay)
        now = now or datetime.now(UTC)
        created_after = now - expiry if expiry is not None else None

        repo = current_domain.repository_for(Notification)
        candidates = repo.group_owner_candidates(target_ref, key, grouping_key, group_ref, created_after)
        owner = candidates[0] if candidates else None

        logger.debug(
            "Group resolved",
            target_type=target_ref.type,
            target_id=target_ref.id,
            key=key,
            grouping_key=grouping_key,
            owner_id=str(owner.id) if owner else None,
        )
        return GroupDecision(group=group_ref, grouping_key=grouping_key, owner=owner)

    def _expiry_delay(self, target_ref, notifiable, key, option) -> timedelta | None:
        if option is not None:
            return as_timedelta(option)
        delay = notifiable.notification_group_expiry_delay(target_ref.type, key)
        if delay is not None:
            return as_timedelta(delay)
        return as_timedelta(self.settings.group_expiry_delay)

    def merge(self, decision: GroupDecision, member: Notification) -> None:
        """Bump the owner after ``member`` joined its group."""
        if decision.owner is None:
            return
        decision.owner.add_group_member(member.id, added_at=member.created_at)
        current_domain.repository_for(Notification).add(decision.owner)
