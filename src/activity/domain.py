"""Activity bounded context — per-target notifications and subscriptions.

Notifiable events generate notification records for their targets.
Notifications of the same target and key are grouped for digest-style
presentation, and delivered through the email channel and pluggable
optional targets (Slack, console, ...) according to each target's
subscriptions.
"""

import structlog
from protean.domain import Domain

from activity.utils.logging import configure_logging

configure_logging()

activity = Domain(name="activity")

logger = structlog.get_logger(__name__)
