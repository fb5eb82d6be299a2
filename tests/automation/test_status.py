"""Tests for run status transitions."""

from __future__ import annotations

import pytest

from autoflow.automation.status import RunStatus, validate_run_transition
from autoflow.core.errors import InvalidTransitionError


class TestRunStatus:
    def test_terminal(self):
        assert RunStatus.COMPLETED.is_terminal
        assert RunStatus.FAILED.is_terminal
        assert not RunStatus.RUNNING.is_terminal

    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending", "running"),
            ("pending", "completed"),
            ("pending", "failed"),
            ("running", "running"),
            ("running", "completed"),
            ("running", "failed"),
        ],
    )
    def test_valid_transitions(self, current, target):
        validate_run_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [("completed", "running"), ("failed", "completed"), ("completed", "failed"), ("running", "pending")],
    )
    def test_invalid_transitions(self, current, target):
        with pytest.raises(InvalidTransitionError) as exc_info:
            validate_run_transition(current, target)
        assert exc_info.value.current == current
        assert isinstance(exc_info.value, ValueError)
