"""Capability interfaces implemented by host application entities.

The host composes one capability object around each of its entities
(a ``UserTarget`` around a user, a ``CommentNotifiable`` around a
comment, ...) and registers a loader for it in ``activity.registry``.
Policies such as ``email_allowed`` may be declared as static values or
as callables; ``resolve_value`` evaluates either form.
"""

import re
from abc import ABC, abstractmethod
from datetime import timedelta


def resolve_value(thing, *args):
    """Evaluate a policy declared as a static value or a callable."""
    if callable(thing):
        return thing(*args)
    if isinstance(thing, dict):
        return {key: resolve_value(value, *args) for key, value in thing.items()}
    return thing


def _policy(obj, name):
    """Class-level policy lookup (plain functions stay unbound)."""
    return getattr(type(obj), name, None)


def _underscore(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def resource_name(type_name: str) -> str:
    """``BlogPost`` → ``blog_post``."""
    return _underscore(type_name)


def resources_name(type_name: str) -> str:
    """``BlogPost`` → ``blog_posts``."""
    name = _underscore(type_name)
    if name.endswith("y") and not name.endswith(("ay", "ey", "oy", "uy")):
        return f"{name[:-1]}ies"
    if name.endswith(("s", "x", "ch", "sh")):
        return f"{name}es"
    return f"{name}s"


def printable_type(type_name: str) -> str:
    """``BlogPost`` → ``Blog post``."""
    return _underscore(type_name).replace("_", " ").capitalize()


class Target(ABC):
    """Recipient of notifications (a user, an administrator, ...).

    Class-level policies default to ``None``, which means "use the
    configured default".
    """

    # str or callable(target) -> str
    notification_email = None
    # bool or callable(target, notifiable, key) -> bool
    notification_email_allowed = None
    # bool or callable(target, key) -> bool
    batch_notification_email_allowed = None
    # bool or callable(target, key) -> bool
    notification_subscription_allowed = None
    # str or callable(target) -> str
    printable_notification_target_name = None

    @property
    @abstractmethod
    def target_type(self) -> str: ...

    @property
    @abstractmethod
    def target_id(self) -> str: ...

    def mailer_to(self):
        return resolve_value(_policy(self, "notification_email"), self)

    def email_allowed(self, notifiable, key, settings) -> bool:
        value = resolve_value(_policy(self, "notification_email_allowed"), self, notifiable, key)
        return settings.email_enabled if value is None else bool(value)

    def batch_email_allowed(self, key, settings) -> bool:
        value = resolve_value(_policy(self, "batch_notification_email_allowed"), self, key)
        return settings.email_enabled if value is None else bool(value)

    def subscription_allowed(self, key, settings) -> bool:
        value = resolve_value(_policy(self, "notification_subscription_allowed"), self, key)
        return settings.subscription_enabled if value is None else bool(value)

    def authenticated_with(self, current_resource) -> bool:
        """Whether the authenticated resource may act for this target.

        The default accepts a resource carrying the same type and id.
        """
        if current_resource is None:
            return False
        return (current_resource.type, str(current_resource.id)) == (self.target_type, str(self.target_id))

    def printable_target_name(self) -> str:
        name = resolve_value(_policy(self, "printable_notification_target_name"), self)
        return name or f"{printable_type(self.target_type)} ({self.target_id})"


class Notifiable(ABC):
    """Entity whose events generate notifications (a comment, an article, ...)."""

    # dict of target_type -> list or callable(notifiable, key) -> list
    notification_targets_map: dict = {}
    # bool or callable(notifiable, target, key) -> bool
    notification_email_allowed = None

    @property
    @abstractmethod
    def notifiable_type(self) -> str: ...

    @property
    @abstractmethod
    def notifiable_id(self) -> str: ...

    def notification_targets(self, target_type, key):
        """Targets of ``target_type`` to notify for ``key``."""
        if target_type not in self.notification_targets_map:
            raise NotImplementedError(
                f"You have to implement {type(self).__name__}.notification_targets "
                f"or declare {target_type} in notification_targets_map"
            )
        return list(resolve_value(self.notification_targets_map[target_type], self, key) or [])

    def notification_group(self, target_type, key):
        return None

    def notification_group_expiry_delay(self, target_type, key) -> timedelta | None:
        return None

    def notifier(self, target_type, key):
        return None

    def notification_parameters(self, target_type, key) -> dict:
        return {}

    def email_allowed(self, target, key, settings) -> bool:
        value = resolve_value(_policy(self, "notification_email_allowed"), self, target, key)
        return settings.email_enabled if value is None else bool(value)

    def optional_targets(self, target_type, key) -> list:
        """Optional target instances (see ``activity.channel.optional_target``)."""
        return []

    def overriding_notification_group_key(self, target_type, key) -> str | None:
        return None

    def overriding_notification_email_key(self, target, key) -> str | None:
        return None

    def notifiable_path(self, target_type, key) -> str:
        raise NotImplementedError(f"You have to implement {type(self).__name__}.notifiable_path")

    def default_notification_key(self) -> str:
        return f"{resource_name(self.notifiable_type)}.default"

    @property
    def printable_type(self) -> str:
        return printable_type(self.notifiable_type)


class Notifier(ABC):
    """Entity credited as the actor of a notification."""

    printable_notification_notifier_name = None

    @property
    @abstractmethod
    def notifier_type(self) -> str: ...

    @property
    @abstractmethod
    def notifier_id(self) -> str: ...

    def printable_notifier_name(self) -> str:
        name = resolve_value(_policy(self, "printable_notification_notifier_name"), self)
        return name or f"{printable_type(self.notifier_type)} ({self.notifier_id})"
