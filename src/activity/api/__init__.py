"""Activity domain API package."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers as register_protean_exception_handlers

from activity.api.routes import maintenance_router, router
from activity.errors import AuthorizationError

__all__ = ["router", "maintenance_router", "register_exception_handlers"]


async def _authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"error": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Protean error mapping (400/404/...) plus 403 for authorization failures."""
    register_protean_exception_handlers(app)
    app.add_exception_handler(AuthorizationError, _authorization_error_handler)
