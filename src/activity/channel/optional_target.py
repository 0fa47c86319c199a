"""Optional targets — pluggable delivery channels besides email.

A notifiable lists the optional target instances that apply to a key
(``Notifiable.optional_targets``). Each target is subscribed to per name
on the Subscription record, so the name must stay stable.
"""

from abc import ABC, abstractmethod

from activity.errors import NotFoundError
from activity.registry import notifiables, notifiers, targets
from activity.roles import printable_type, resource_name


class OptionalTarget(ABC):
    """Base class for optional delivery channels."""

    def __init__(self, **options):
        self.initialize_target(**options)

    @property
    def name(self) -> str:
        """``SlackTarget`` → ``slack``."""
        class_name = type(self).__name__
        return resource_name(class_name.removesuffix("Target") or class_name)

    def initialize_target(self, **options):
        """Hook receiving the constructor options."""

    @abstractmethod
    def notify(self, notification, **options):
        """Deliver ``notification``; raise to report failure."""
        ...

    def render_notification_message(self, notification, **options) -> str:
        context = message_context(notification)
        template = options.get("message_template")
        if template:
            return template.format(**context)
        return (
            f"{context['notifier_name'] or 'Someone'} notified {context['target_name']} "
            f"of {context['notifiable_type']} ({context['key']})"
        )


def _printable(registry, reference, printer):
    if reference is None:
        return None
    try:
        return printer(registry.resolve_reference(reference))
    except NotFoundError:
        return f"{printable_type(reference.type)} ({reference.id})"


def message_context(notification) -> dict:
    """Values available when rendering a notification for a channel."""
    return {
        "key": notification.key,
        "notification_id": str(notification.id),
        "parameters": notification.parameter_dict(),
        "target_name": _printable(targets, notification.target_reference, lambda t: t.printable_target_name()),
        "notifier_name": _printable(notifiers, notification.notifier_reference, lambda n: n.printable_notifier_name()),
        "notifiable_type": _printable(notifiables, notification.notifiable_reference, lambda n: n.printable_type),
    }
