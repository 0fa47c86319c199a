"""Activity notification FastAPI application.

Serves the notification and subscription API for targets of the host
application. Each request is wrapped in the activity domain context and
tagged with a request id for logging.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - unset/"test"  → event_processing = "sync"  (delivery runs in the request)
#   - "production"  → event_processing = "async" (delivery runs in the Engine)
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from activity.config import ActivitySettings, set_settings
from activity.domain import activity
from activity.utils.logging import add_context, clear_context

activity.init()
set_settings(ActivitySettings())

_DOMAIN_PREFIXES = ("/targets", "/maintenance")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Activity Notification API",
    description="Notifications, subscriptions and delivery channels for application targets",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the activity domain context and bind a request id to the logs."""
    request.state.request_id = request.headers.get("X-Request-Id") or uuid4().hex
    add_context(request_id=request.state.request_id)
    try:
        if request.url.path.startswith(_DOMAIN_PREFIXES):
            with activity.domain_context():
                return await call_next(request)
        # Health check, docs, etc.
        return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from activity.api import maintenance_router, register_exception_handlers, router  # noqa: E402

app.include_router(router)
app.include_router(maintenance_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": activity.name}})
