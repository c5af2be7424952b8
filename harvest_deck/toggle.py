"""Start/stop decision for timer button presses."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass

from .aggregator import timer_targets
from .harvest_api import TimeEntry
from .models import TimerButton


class ToggleAction(enum.Enum):
    START = "start"
    STOP = "stop"


@dataclass(frozen=True)
class ToggleDecision:
    action: ToggleAction
    entry_id: str | None = None


def decide_toggle(config: TimerButton, running: Sequence[TimeEntry]) -> ToggleDecision:
    """Choose what a press on ``config`` does, given the account's running entries.

    If the running entry is this button's project task it is stopped.
    Otherwise a new entry is started; Harvest stops any other running
    entry of the user on its own.
    """
    if running and timer_targets(config, running[0]):
        return ToggleDecision(ToggleAction.STOP, running[0].id)
    return ToggleDecision(ToggleAction.START)
