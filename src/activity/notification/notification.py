"""Notification aggregate — one record per target for a notifiable event.

A notification references its target, notifiable, optional group and
optional notifier polymorphically (type + id). Notifications of the same
target, key, grouping key and group form a group: the first one is the
group owner (``group_owner_id`` is empty), later ones are members that
point at it.

Lifecycle:
    generated → (merged into a group as member | group owner)
    unopened → opened
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from activity.domain import activity
from activity.notification.events import (
    DeliveryRecorded,
    GroupMemberAdded,
    GroupOwnerReassigned,
    NotificationGenerated,
    NotificationOpened,
)
from activity.registry import Reference


class DeliveryStatus(Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"
    DEFERRED = "deferred"


@activity.aggregate
class Notification:
    """A notification delivered to one target."""

    # Target (recipient)
    target_type: String(required=True, max_length=255)
    target_id: String(required=True, max_length=255)

    # Notifiable (event source)
    notifiable_type: String(required=True, max_length=255)
    notifiable_id: String(required=True, max_length=255)

    key: String(required=True, max_length=255)

    # Grouping
    group_type: String(max_length=255)
    group_id: String(max_length=255)
    grouping_key: String(required=True, max_length=255)
    group_owner_id: Identifier()

    # Notifier (actor)
    notifier_type: String(max_length=255)
    notifier_id: String(max_length=255)

    parameters: Text()  # JSON

    opened_at: DateTime()

    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def cannot_own_itself(self):
        if self.group_owner_id is not None and str(self.group_owner_id) == str(self.id):
            raise ValidationError({"group_owner_id": ["A notification cannot be its own group member"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def generate(
        cls,
        target: Reference,
        notifiable: Reference,
        key,
        grouping_key=None,
        group: Reference | None = None,
        group_owner_id=None,
        notifier: Reference | None = None,
        parameters=None,
        send_email=True,
        publish_optional_targets=True,
        created_at=None,
    ):
        """Create a notification and raise ``NotificationGenerated``."""
        now = created_at or datetime.now(UTC)

        notification = cls(
            target_type=target.type,
            target_id=target.id,
            notifiable_type=notifiable.type,
            notifiable_id=notifiable.id,
            key=key,
            group_type=group.type if group else None,
            group_id=group.id if group else None,
            grouping_key=grouping_key or notifiable.type,
            group_owner_id=group_owner_id,
            notifier_type=notifier.type if notifier else None,
            notifier_id=notifier.id if notifier else None,
            parameters=json.dumps(parameters or {}, default=str),
            created_at=now,
            updated_at=now,
        )

        notification.raise_(
            NotificationGenerated(
                notification_id=str(notification.id),
                target_type=notification.target_type,
                target_id=notification.target_id,
                notifiable_type=notification.notifiable_type,
                notifiable_id=notification.notifiable_id,
                key=key,
                group_owner_id=str(group_owner_id) if group_owner_id else None,
                send_email=send_email,
                publish_optional_targets=publish_optional_targets,
                created_at=now,
            )
        )

        return notification

    # -------------------------------------------------------------------
    # Behavior
    # -------------------------------------------------------------------
    def open(self, opened_at=None):
        """Mark as read. Returns False when it was already opened.

        An opened notification keeps its first ``opened_at``.
        """
        if self.opened_at is not None:
            return False

        now = opened_at or datetime.now(UTC)
        self.opened_at = now

        self.raise_(
            NotificationOpened(
                notification_id=str(self.id),
                target_type=self.target_type,
                target_id=self.target_id,
                key=self.key,
                opened_at=now,
            )
        )
        return True

    def add_group_member(self, member_id, added_at=None):
        """Record that ``member_id`` merged into the group owned by this notification."""
        if not self.is_group_owner:
            raise ValidationError({"group_owner_id": ["Only a group owner can accept group members"]})

        now = added_at or datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            GroupMemberAdded(
                notification_id=str(self.id),
                member_id=str(member_id),
                added_at=now,
            )
        )

    def reassign_group_owner(self, new_owner_id):
        """Point this notification at another owner, or make it an owner (``None``)."""
        previous = self.group_owner_id
        now = datetime.now(UTC)
        self.group_owner_id = new_owner_id
        self.updated_at = now

        self.raise_(
            GroupOwnerReassigned(
                notification_id=str(self.id),
                previous_owner_id=str(previous) if previous else None,
                new_owner_id=str(new_owner_id) if new_owner_id else None,
                reassigned_at=now,
            )
        )

    def record_delivery(self, channel, status: DeliveryStatus, error=None):
        """Record how ``channel`` handled this notification."""
        self.raise_(
            DeliveryRecorded(
                delivery_id=str(uuid4()),
                notification_id=str(self.id),
                target_type=self.target_type,
                target_id=self.target_id,
                key=self.key,
                channel=channel,
                status=status.value,
                error=error[:1000] if error else None,
                recorded_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------
    @property
    def is_opened(self):
        return self.opened_at is not None

    @property
    def is_unopened(self):
        return self.opened_at is None

    @property
    def is_group_owner(self):
        return self.group_owner_id is None

    @property
    def is_group_member(self):
        return self.group_owner_id is not None

    @property
    def owner_id(self):
        """Id of the group owner (this notification's own id for an owner)."""
        return str(self.group_owner_id) if self.group_owner_id else str(self.id)

    @property
    def target_reference(self):
        return Reference(self.target_type, self.target_id)

    @property
    def notifiable_reference(self):
        return Reference(self.notifiable_type, self.notifiable_id)

    @property
    def group_reference(self):
        if self.group_type is None:
            return None
        return Reference(self.group_type, self.group_id)

    @property
    def notifier_reference(self):
        if self.notifier_type is None:
            return None
        return Reference(self.notifier_type, self.notifier_id)

    def parameter_dict(self):
        return json.loads(self.parameters) if self.parameters else {}
