"""Request dependencies — current resource and authorized target."""

from fastapi import Depends, Header, Request

from activity.config import get_settings
from activity.context import RequestContext, authorize
from activity.registry import Reference, targets


def request_context(
    request: Request,
    x_resource_type: str | None = Header(None),
    x_resource_id: str | None = Header(None),
) -> RequestContext:
    """Current resource as supplied by the host's authentication layer."""
    resource = Reference(x_resource_type, x_resource_id) if x_resource_type and x_resource_id else None
    return RequestContext(current_resource=resource, request_id=getattr(request.state, "request_id", None))


def authorized_target(target_type: str, target_id: str, context: RequestContext = Depends(request_context)):
    """Load the target from the path and check the current resource may act for it."""
    target = targets.resolve(target_type, target_id)
    authorize(context, target, get_settings().api_authentication_required)
    return target
