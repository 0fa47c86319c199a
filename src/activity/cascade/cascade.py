"""Cascade aggregate — delayed, sequential delivery while a notification is unread.

A cascade walks a list of steps, each naming a delivery target (an
optional target name or ``email``), a delay in seconds measured from the
previous step, and optional options for the target:

    [{"target": "slack", "delay": 600},
     {"target": "email", "delay": 3600, "options": {...}}]

The cascade stops as soon as the notification is opened.

State machine:
    Active → Completed
    Active → Stopped
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from activity.cascade.events import (
    CascadeCompleted,
    CascadeStarted,
    CascadeStepExecuted,
    CascadeStopped,
)
from activity.domain import activity


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class CascadeStatus(Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    STOPPED = "Stopped"


def validate_steps(steps) -> list[dict]:
    """Check a cascade configuration and return it normalized.

    Raises:
        ValidationError: the configuration is not a list of valid steps.
    """
    if not isinstance(steps, list) or not steps:
        raise ValidationError({"steps": ["Cascade configuration must be a non-empty list of steps"]})

    normalized = []
    for index, step in enumerate(steps):
        if not isinstance(step, dict):
            raise ValidationError({"steps": [f"Step {index} must be a mapping"]})

        target = step.get("target")
        if not isinstance(target, str) or not target:
            raise ValidationError({"steps": [f"Step {index} requires a target name"]})

        delay = step.get("delay")
        if isinstance(delay, bool) or not isinstance(delay, int | float) or delay < 0:
            raise ValidationError({"steps": [f"Step {index} requires a non-negative delay in seconds"]})

        options = step.get("options", {})
        if not isinstance(options, dict):
            raise ValidationError({"steps": [f"Step {index} options must be a mapping"]})

        normalized.append({"target": target, "delay": delay, "options": options})
    return normalized


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@activity.aggregate
class Cascade:
    notification_id: Identifier(required=True)
    steps: Text(required=True)  # JSON list of steps
    current_step: Integer(default=0)
    next_run_at: DateTime()
    status: String(choices=CascadeStatus, default=CascadeStatus.ACTIVE.value)
    results: Text()  # JSON list of step outcomes

    started_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, notification_id, steps, trigger_first_immediately=False, now=None):
        steps = validate_steps(steps)
        now = now or datetime.now(UTC)
        first_run = now if trigger_first_immediately else now + timedelta(seconds=steps[0]["delay"])

        cascade = cls(
            notification_id=notification_id,
            steps=json.dumps(steps),
            current_step=0,
            next_run_at=first_run,
            status=CascadeStatus.ACTIVE.value,
            results=json.dumps([]),
            started_at=now,
            updated_at=now,
        )

        cascade.raise_(
            CascadeStarted(
                cascade_id=str(cascade.id),
                notification_id=str(notification_id),
                step_count=len(steps),
                next_run_at=first_run,
                started_at=now,
            )
        )

        return cascade

    # -------------------------------------------------------------------
    # Behavior
    # -------------------------------------------------------------------
    def record_step(self, result, executed_at=None):
        """Store the outcome of the current step and schedule the next one."""
        self._assert_active()
        now = executed_at or datetime.now(UTC)
        steps = self.step_list()
        step = steps[self.current_step]

        results = self.result_list()
        results.append({"step": self.current_step, "target": step["target"], "result": result, "at": now.isoformat()})
        self.results = json.dumps(results)

        executed = self.current_step
        self.current_step = executed + 1
        self.updated_at = now

        if self.current_step < len(steps):
            self.next_run_at = now + timedelta(seconds=steps[self.current_step]["delay"])
        else:
            self.next_run_at = None

        self.raise_(
            CascadeStepExecuted(
                cascade_id=str(self.id),
                notification_id=str(self.notification_id),
                step=executed,
                target=step["target"],
                result=result,
                next_run_at=self.next_run_at,
                executed_at=now,
            )
        )

        if self.next_run_at is None:
            self.status = CascadeStatus.COMPLETED.value
            self.raise_(
                CascadeCompleted(
                    cascade_id=str(self.id),
                    notification_id=str(self.notification_id),
                    completed_at=now,
                )
            )

    def stop(self, reason):
        self._assert_active()
        now = datetime.now(UTC)
        self.status = CascadeStatus.STOPPED.value
        self.next_run_at = None
        self.updated_at = now

        self.raise_(
            CascadeStopped(
                cascade_id=str(self.id),
                notification_id=str(self.notification_id),
                reason=reason,
                stopped_at=now,
            )
        )

    def _assert_active(self):
        if self.status != CascadeStatus.ACTIVE.value:
            raise ValidationError({"status": [f"Cascade is {self.status}"]})

    # -------------------------------------------------------------------
    # Query helpers
    # -------------------------------------------------------------------
    def step_list(self) -> list[dict]:
        return json.loads(self.steps) if self.steps else []

    def result_list(self) -> list[dict]:
        return json.loads(self.results) if self.results else []

    def current_step_config(self) -> dict | None:
        steps = self.step_list()
        return steps[self.current_step] if self.current_step < len(steps) else None

    def is_due(self, as_of) -> bool:
        if self.status != CascadeStatus.ACTIVE.value or self.next_run_at is None:
            return False
        next_run = self.next_run_at
        # Normalize timezone awareness for comparison
        if next_run.tzinfo is None and as_of.tzinfo is not None:
            next_run = next_run.replace(tzinfo=as_of.tzinfo)
        elif next_run.tzinfo is not None and as_of.tzinfo is None:
            next_run = next_run.replace(tzinfo=None)
        return next_run <= as_of
