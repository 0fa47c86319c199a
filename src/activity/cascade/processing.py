"""StartCascade / ProcessDueCascades commands + handler.

Cascades are advanced by a background job or cron invoking
ProcessDueCascades (or ``POST /maintenance/process-cascades``).
"""

import json
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Identifier, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from activity.cascade.cascade import Cascade
from activity.channel import EMAIL
from activity.config import get_settings
from activity.domain import activity
from activity.errors import NotFoundError
from activity.notification.dispatch import DeliveryDispatcher, load_delivery_context
from activity.notification.notification import Notification

logger = structlog.get_logger(__name__)

NOT_FOUND = "not_found"


@activity.command(part_of="Cascade")
class StartCascade:
    """Deliver an unread notification through a sequence of channels."""

    notification_id: Identifier(required=True)
    steps: Text(required=True)  # JSON list of {target, delay, options}
    trigger_first_immediately: Boolean(default=False)


@activity.command(part_of="Cascade")
class ProcessDueCascades:
    """Run every cascade step that is due."""

    as_of: DateTime()  # Optional: process as of this time (defaults to now)


def run_cascade_step(notification, step, dispatcher: DeliveryDispatcher) -> str:
    """Deliver ``notification`` through the channel named by ``step``.

    Returns the delivery status, or ``not_found`` when the channel or the
    notification's records are gone.
    """
    try:
        target, notifiable = load_delivery_context(notification)
    except NotFoundError:
        return NOT_FOUND

    channel = step["target"]
    if channel == EMAIL:
        status, error = dispatcher.deliver_email(notification, target, notifiable)
    else:
        optional_target = next(
            (t for t in notifiable.optional_targets(target.target_type, notification.key) if t.name == channel),
            None,
        )
        if optional_target is None:
            logger.warning(
                "Cascade target not configured for notifiable",
                notification_id=str(notification.id),
                channel=channel,
            )
            return NOT_FOUND
        status, error = dispatcher.deliver_optional_target(
            notification, target, optional_target, **step.get("options", {})
        )

    notification.record_delivery(channel, status, error)
    current_domain.repository_for(Notification).add(notification)
    return status.value


@activity.command_handler(part_of=Cascade)
class CascadeHandler:
    @handle(StartCascade)
    def start_cascade(self, command: StartCascade):
        try:
            notification = current_domain.repository_for(Notification).get(command.notification_id)
        except ObjectNotFoundError:
            raise NotFoundError(f"Couldn't find notification with id {command.notification_id}") from None

        if notification.is_opened:
            raise ValidationError({"notification_id": ["Cannot cascade an opened notification"]})

        try:
            steps = json.loads(command.steps)
        except ValueError:
            raise ValidationError({"steps": ["Cascade configuration must be valid JSON"]}) from None

        cascade = Cascade.start(
            command.notification_id,
            steps,
            trigger_first_immediately=command.trigger_first_immediately,
        )
        repo = current_domain.repository_for(Cascade)

        if command.trigger_first_immediately:
            self._advance(cascade, notification, DeliveryDispatcher(get_settings()), cascade.started_at)

        repo.add(cascade)
        logger.info(
            "Cascade started",
            cascade_id=str(cascade.id),
            notification_id=str(command.notification_id),
            steps=len(cascade.step_list()),
        )
        return str(cascade.id)

    @handle(ProcessDueCascades)
    def process_due_cascades(self, command: ProcessDueCascades):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(Cascade)
        notification_repo = current_domain.repository_for(Notification)
        dispatcher = DeliveryDispatcher(get_settings())

        processed = 0
        for cascade in repo.active():
            if not cascade.is_due(as_of):
                continue

            try:
                notification = notification_repo.get(cascade.notification_id)
            except ObjectNotFoundError:
                logger.warning(
                    "Cascade notification no longer exists",
                    cascade_id=str(cascade.id),
                    notification_id=str(cascade.notification_id),
                )
                cascade.stop("Notification not found")
                repo.add(cascade)
                continue

            self._advance(cascade, notification, dispatcher, as_of)
            repo.add(cascade)
            processed += 1

        logger.info("Due cascades processed", processed=processed, as_of=str(as_of))
        return processed

    def _advance(self, cascade, notification, dispatcher, now):
        if notification.is_opened:
            cascade.stop("Notification opened")
            return

        result = run_cascade_step(notification, cascade.current_step_config(), dispatcher)
        cascade.record_step(result, executed_at=now)
