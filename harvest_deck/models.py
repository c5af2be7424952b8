"""Runtime data models for the Harvest Stream Deck plugin."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar, Union

from .const import (
    STATE_ACTIVE,
    STATE_IDLE,
    TIMER_SEPARATOR,
    TYPE_CLIENT,
    TYPE_DAILY,
    TYPE_PROJECT,
    TYPE_TIMER,
    TYPE_WEEKLY,
)


class ButtonKind(str, enum.Enum):
    """Button kinds, valued as the ``type`` setting of the property inspector."""

    TIMER = TYPE_TIMER
    DAILY = TYPE_DAILY
    WEEKLY = TYPE_WEEKLY
    PROJECT = TYPE_PROJECT
    CLIENT = TYPE_CLIENT

    @property
    def is_totals(self) -> bool:
        """Whether the button shows an aggregate rather than a timer."""
        return self is not ButtonKind.TIMER


class RenderState(enum.Enum):
    """Last state painted on a button."""

    IDLE = "idle"
    ACTIVE = "active"
    ERROR = "error"

    @property
    def state_index(self) -> int:
        """Manifest state slot: errors render with the idle icon."""
        return STATE_ACTIVE if self is RenderState.ACTIVE else STATE_IDLE


class LoopState(enum.Enum):
    """Reconciliation loop state."""

    IDLE = "idle"
    POLLING = "polling"


class QueryKind(enum.Enum):
    """The two kinds of payloads fetched and cached per account."""

    ENTRIES = "entries"
    RUNNING = "running"


@dataclass(frozen=True)
class Position:
    """Row and column of a key on the device."""

    row: int
    column: int


@dataclass(frozen=True)
class AccountKey:
    """A Harvest account and the token used to poll it."""

    account_id: str
    access_token: str


@dataclass(frozen=True)
class _ConfiguredButton:
    kind: ClassVar[ButtonKind]

    account_id: str
    access_token: str
    label: str
    position: Position

    @property
    def account(self) -> AccountKey:
        return AccountKey(self.account_id, self.access_token)


@dataclass(frozen=True)
class TimerButton(_ConfiguredButton):
    """Starts and stops a timer on one project task."""

    kind: ClassVar[ButtonKind] = ButtonKind.TIMER

    project_id: str = ""
    task_id: str = ""


@dataclass(frozen=True)
class DailyButton(_ConfiguredButton):
    """Shows the hours logged today on one account."""

    kind: ClassVar[ButtonKind] = ButtonKind.DAILY


@dataclass(frozen=True)
class WeeklyButton(_ConfiguredButton):
    """Shows the hours logged this week across every polled account."""

    kind: ClassVar[ButtonKind] = ButtonKind.WEEKLY


@dataclass(frozen=True)
class ProjectButton(_ConfiguredButton):
    """Shows this week's hours on one project."""

    kind: ClassVar[ButtonKind] = ButtonKind.PROJECT

    project_id: str = ""


@dataclass(frozen=True)
class ClientButton(_ConfiguredButton):
    """Shows this week's hours for one client."""

    kind: ClassVar[ButtonKind] = ButtonKind.CLIENT

    client_id: str = ""


@dataclass(frozen=True)
class IncompleteButton:
    """A button whose settings cannot be polled yet.

    ``declared_kind`` is None when the ``type`` setting is missing or unknown.
    """

    declared_kind: ButtonKind | None
    label: str
    position: Position
    reason: str = ""

    @property
    def kind(self) -> ButtonKind | None:
        return self.declared_kind


ButtonConfig = Union[
    TimerButton,
    DailyButton,
    WeeklyButton,
    ProjectButton,
    ClientButton,
    IncompleteButton,
]

CONFIGURED_BUTTON_TYPES = (
    TimerButton,
    DailyButton,
    WeeklyButton,
    ProjectButton,
    ClientButton,
)


def is_complete(config: ButtonConfig) -> bool:
    """Whether the button takes part in network polling."""
    return isinstance(config, CONFIGURED_BUTTON_TYPES)


@dataclass(frozen=True)
class ButtonUpdate:
    """What to paint on one button."""

    hours: float
    label: str
    state: RenderState = RenderState.IDLE
    show_time: bool = False
    separator: str = TIMER_SEPARATOR
    alert: bool = False


def idle_update(label: str, *, alert: bool = False) -> ButtonUpdate:
    """Paint a button off, showing only its label."""
    return ButtonUpdate(
        hours=0.0,
        label=label,
        state=RenderState.ERROR if alert else RenderState.IDLE,
        alert=alert,
    )
