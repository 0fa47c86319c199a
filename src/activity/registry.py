"""Polymorphic references — ``(type, id)`` pairs and the loaders behind them.

Notifications and subscriptions store targets, notifiables, groups and
notifiers as a type name plus an identifier. A ``TypeRegistry`` maps each
type name to a loader that turns an identifier back into a capability
object (see ``activity.roles``).
"""

from collections.abc import Callable
from typing import Any, NamedTuple

import structlog

from activity.errors import NotFoundError

logger = structlog.get_logger(__name__)


class Reference(NamedTuple):
    """Tagged reference to an entity owned by the host application."""

    type: str
    id: str

    @classmethod
    def of(cls, obj) -> "Reference | None":
        """Build a reference from a capability object, a reference or ``None``."""
        if obj is None:
            return None
        if isinstance(obj, Reference):
            return obj
        if isinstance(obj, tuple) and len(obj) == 2:
            return cls(str(obj[0]), str(obj[1]))
        for type_attr, id_attr in (
            ("target_type", "target_id"),
            ("notifiable_type", "notifiable_id"),
            ("notifier_type", "notifier_id"),
            ("group_type", "group_id"),
        ):
            if hasattr(obj, type_attr) and hasattr(obj, id_attr):
                return cls(str(getattr(obj, type_attr)), str(getattr(obj, id_attr)))
        raise TypeError(f"Cannot build a reference from {type(obj).__name__}")


class TypeRegistry:
    """Maps type names to loader callables for one role (target, notifiable, ...)."""

    def __init__(self, role: str):
        self.role = role
        self._loaders: dict[str, Callable[[str], Any]] = {}

    def register(self, type_name: str, loader: Callable[[str], Any] | None = None):
        """Register a loader; usable directly or as a decorator."""
        if loader is None:

            def decorator(fn):
                self._loaders[type_name] = fn
                return fn

            return decorator

        self._loaders[type_name] = loader
        return loader

    def unregister(self, type_name: str) -> None:
        self._loaders.pop(type_name, None)

    def is_registered(self, type_name: str) -> bool:
        return type_name in self._loaders

    def resolve(self, type_name: str, identifier) -> Any:
        """Load the object behind ``(type_name, identifier)``.

        Raises:
            NotFoundError: the type is unknown or the loader found nothing.
        """
        loader = self._loaders.get(type_name)
        if loader is None:
            raise NotFoundError(f"Unknown {self.role} type: {type_name}")

        obj = loader(str(identifier))
        if obj is None:
            logger.info("Reference not found", role=self.role, type=type_name, id=str(identifier))
            raise NotFoundError(f"Couldn't find {self.role} {type_name} with id {identifier}")
        return obj

    def resolve_reference(self, reference: Reference) -> Any:
        return self.resolve(reference.type, reference.id)

    def clear(self) -> None:
        self._loaders.clear()


targets = TypeRegistry("target")
notifiables = TypeRegistry("notifiable")
notifiers = TypeRegistry("notifier")


def reset_registries() -> None:
    """Forget every registered loader (useful for testing)."""
    for registry in (targets, notifiables, notifiers):
        registry.clear()
