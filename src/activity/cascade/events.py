"""Domain events for the Cascade aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from activity.domain import activity


@activity.event(part_of="Cascade")
class CascadeStarted:
    """Sequential delivery of an unread notification was scheduled."""

    __version__ = "v1"

    cascade_id: Identifier(required=True)
    notification_id: Identifier(required=True)
    step_count: Integer(required=True)
    next_run_at: DateTime(required=True)
    started_at: DateTime(required=True)


@activity.event(part_of="Cascade")
class CascadeStepExecuted:
    __version__ = "v1"

    cascade_id: Identifier(required=True)
    notification_id: Identifier(required=True)
    step: Integer(required=True)
    target: String(required=True)
    result: String(required=True)
    next_run_at: DateTime()
    executed_at: DateTime(required=True)


@activity.event(part_of="Cascade")
class CascadeCompleted:
    __version__ = "v1"

    cascade_id: Identifier(required=True)
    notification_id: Identifier(required=True)
    completed_at: DateTime(required=True)


@activity.event(part_of="Cascade")
class CascadeStopped:
    """The cascade ended early, typically because the notification was opened."""

    __version__ = "v1"

    cascade_id: Identifier(required=True)
    notification_id: Identifier(required=True)
    reason: String(required=True)
    stopped_at: DateTime(required=True)
