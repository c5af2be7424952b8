"""Tests for the timer start/stop decision."""

from __future__ import annotations

import pytest

from harvest_deck.toggle import ToggleAction, decide_toggle

from .factories import make_entry, timer


class TestDecideToggle:
    def test_nothing_running_starts(self):
        decision = decide_toggle(timer(), [])
        assert decision.action is ToggleAction.START
        assert decision.entry_id is None

    def test_same_target_running_stops_it(self):
        running = [make_entry(entry_id="77", project_id="10", task_id="20", is_running=True)]
        decision = decide_toggle(timer(project_id="10", task_id="20"), running)
        assert decision.action is ToggleAction.STOP
        assert decision.entry_id == "77"

    @pytest.mark.parametrize(("project_id", "task_id"), [("11", "20"), ("10", "21"), ("99", "99")])
    def test_other_target_running_starts(self, project_id, task_id):
        running = [make_entry(project_id=project_id, task_id=task_id, is_running=True)]
        decision = decide_toggle(timer(project_id="10", task_id="20"), running)
        assert decision.action is ToggleAction.START

    def test_decision_is_deterministic(self):
        running = [make_entry(entry_id="5", is_running=True)]
        config = timer()
        assert decide_toggle(config, running) == decide_toggle(config, running)
