"""Tests for the Cascade aggregate — step validation and progression."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from activity.cascade.cascade import Cascade, CascadeStatus, validate_steps
from activity.cascade.events import CascadeCompleted, CascadeStarted, CascadeStepExecuted, CascadeStopped

T0 = datetime(2026, 5, 1, 8, 0, tzinfo=UTC)
STEPS = [{"target": "slack", "delay": 600}, {"target": "email", "delay": 3600, "options": {"urgent": True}}]


class TestValidateSteps:
    def test_normalizes_options(self):
        assert validate_steps([{"target": "slack", "delay": 0}]) == [{"target": "slack", "delay": 0, "options": {}}]

    @pytest.mark.parametrize("steps", [[], None, {"target": "slack", "delay": 1}])
    def test_requires_non_empty_list(self, steps):
        with pytest.raises(ValidationError) as exc:
            validate_steps(steps)
        assert "non-empty list" in str(exc.value)

    def test_step_must_be_mapping(self):
        with pytest.raises(ValidationError) as exc:
            validate_steps(["slack"])
        assert "must be a mapping" in str(exc.value)

    def test_target_is_required(self):
        with pytest.raises(ValidationError) as exc:
            validate_steps([{"delay": 10}])
        assert "requires a target name" in str(exc.value)

    @pytest.mark.parametrize("delay", [-1, "10", None, True])
    def test_delay_must_be_non_negative_number(self, delay):
        with pytest.raises(ValidationError) as exc:
            validate_steps([{"target": "slack", "delay": delay}])
        assert "non-negative delay" in str(exc.value)

    def test_options_must_be_mapping(self):
        with pytest.raises(ValidationError):
            validate_steps([{"target": "slack", "delay": 1, "options": ["x"]}])


class TestCascadeStart:
    def test_first_run_waits_for_first_delay(self):
        cascade = Cascade.start("n-1", STEPS, now=T0)
        assert cascade.status == CascadeStatus.ACTIVE.value
        assert cascade.current_step == 0
        assert cascade.next_run_at == T0 + timedelta(seconds=600)
        assert any(isinstance(e, CascadeStarted) for e in cascade._events)

    def test_trigger_first_immediately(self):
        cascade = Cascade.start("n-1", STEPS, trigger_first_immediately=True, now=T0)
        assert cascade.next_run_at == T0

    def test_invalid_steps_are_rejected(self):
        with pytest.raises(ValidationError):
            Cascade.start("n-1", [])


class TestCascadeProgression:
    def test_record_step_schedules_next(self):
        cascade = Cascade.start("n-1", STEPS, now=T0)
        executed_at = T0 + timedelta(seconds=600)

        cascade.record_step("sent", executed_at=executed_at)

        assert cascade.current_step == 1
        assert cascade.next_run_at == executed_at + timedelta(seconds=3600)
        assert cascade.current_step_config()["target"] == "email"
        assert cascade.result_list()[0]["result"] == "sent"
        assert any(isinstance(e, CascadeStepExecuted) for e in cascade._events)

    def test_last_step_completes(self):
        cascade = Cascade.start("n-1", STEPS, now=T0)
        cascade.record_step("sent", executed_at=T0)
        cascade.record_step("skipped", executed_at=T0)

        assert cascade.status == CascadeStatus.COMPLETED.value
        assert cascade.next_run_at is None
        assert cascade.current_step_config() is None
        assert [r["target"] for r in cascade.result_list()] == ["slack", "email"]
        assert any(isinstance(e, CascadeCompleted) for e in cascade._events)

    def test_completed_cascade_rejects_steps(self):
        cascade = Cascade.start("n-1", STEPS[:1], now=T0)
        cascade.record_step("sent", executed_at=T0)
        with pytest.raises(ValidationError):
            cascade.record_step("sent")

    def test_stop(self):
        cascade = Cascade.start("n-1", STEPS, now=T0)
        cascade.stop("Notification opened")
        assert cascade.status == CascadeStatus.STOPPED.value
        assert cascade.next_run_at is None
        assert any(isinstance(e, CascadeStopped) for e in cascade._events)

    def test_stopped_cascade_cannot_stop_again(self):
        cascade = Cascade.start("n-1", STEPS, now=T0)
        cascade.stop("done")
        with pytest.raises(ValidationError):
            cascade.stop("again")


class TestIsDue:
    def test_due_after_next_run(self):
        cascade = Cascade.start("n-1", STEPS, now=T0)
        assert not cascade.is_due(T0 + timedelta(seconds=599))
        assert cascade.is_due(T0 + timedelta(seconds=600))

    def test_naive_as_of_is_compared(self):
        cascade = Cascade.start("n-1", STEPS, trigger_first_immediately=True, now=T0)
        assert cascade.is_due(T0.replace(tzinfo=None) + timedelta(seconds=1))

    def test_inactive_cascade_is_never_due(self):
        cascade = Cascade.start("n-1", STEPS, now=T0)
        cascade.stop("done")
        assert not cascade.is_due(T0 + timedelta(days=1))
