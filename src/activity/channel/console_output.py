"""Console output optional target — writes notifications to the log."""

import structlog

from activity.channel.optional_target import OptionalTarget

logger = structlog.get_logger(__name__)


class ConsoleOutputTarget(OptionalTarget):
    def initialize_target(self, console_out=True, **options):
        self.console_out = console_out
        self.message_template = options.get("message_template")

    def notify(self, notification, **options):
        if not options.get("console_out", self.console_out):
            return {"status": "skipped"}
        message = self.render_notification_message(notification, message_template=self.message_template)
        logger.info(
            "Notification",
            notification_id=str(notification.id),
            key=notification.key,
            message=message,
        )
        return {"status": "sent"}
