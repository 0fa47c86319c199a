"""Request-scoped context carrying the authenticated resource.

The host's authentication layer decides who is signed in; the API turns
that identity into a ``RequestContext`` and passes it down explicitly to
every operation that needs to authorize against a target.
"""

from dataclasses import dataclass

import structlog

from activity.errors import AuthorizationError
from activity.registry import Reference

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RequestContext:
    current_resource: Reference | None = None
    request_id: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.current_resource is not None


def authorize(context: RequestContext, target, required: bool) -> None:
    """Ensure the current resource may act for ``target``.

    Raises:
        AuthorizationError: authentication is required and the current
            resource is missing or does not match the target.
    """
    if not required:
        return

    if not context.authenticated:
        raise AuthorizationError("Authentication required")

    if not target.authenticated_with(context.current_resource):
        logger.warning(
            "Resource not authorized for target",
            resource_type=context.current_resource.type,
            resource_id=context.current_resource.id,
            target_type=target.target_type,
            target_id=str(target.target_id),
        )
        raise AuthorizationError(
            f"{context.current_resource.type} {context.current_resource.id} "
            f"is not allowed to access {target.target_type} {target.target_id}"
        )
