"""Aggregation of time entries into per-button display values."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from dateutil.relativedelta import MO, relativedelta

from .const import ERROR_LABEL, TIMER_SEPARATOR, TOTALS_SEPARATOR
from .harvest_api import TimeEntry
from .models import (
    ButtonConfig,
    ButtonKind,
    ButtonUpdate,
    Position,
    RenderState,
    TimerButton,
    idle_update,
    is_complete,
)

_LOGGER = logging.getLogger(__name__)

ButtonUpdates = list[tuple[str, ButtonUpdate]]


def week_bounds(today: date) -> tuple[date, date]:
    """Monday of the current week and the Monday after it."""
    monday = today + relativedelta(weekday=MO(-1))
    return monday, monday + relativedelta(weeks=1)


@dataclass
class AccountTotals:
    """Hours of a single account, split by day, project and client."""

    today: str
    weekly_hours: float = 0.0
    daily_hours: float = 0.0
    project: dict[str, float] = field(default_factory=dict)
    client: dict[str, float] = field(default_factory=dict)
    account_active: bool = False

    def add(self, entry: TimeEntry) -> None:
        hours = entry.rounded_hours
        self.weekly_hours += hours
        if entry.spent_date == self.today:
            self.daily_hours += hours
        if entry.project_id is not None:
            self.project[entry.project_id] = self.project.get(entry.project_id, 0.0) + hours
        if entry.client_id is not None:
            self.client[entry.client_id] = self.client.get(entry.client_id, 0.0) + hours
        if entry.is_running:
            self.account_active = True


@dataclass
class AggregateTotals(AccountTotals):
    """Running totals of one reconciliation pass.

    Created fresh for every pass and fed one account at a time. The pass
    level sums span every account added so far, but only the weekly
    buttons read them: daily, project and client buttons are resolved
    from the ``AccountTotals`` of their own account.
    """

    any_active: bool = False
    accounts_processed: int = 0

    @classmethod
    def for_day(cls, day: date | None = None) -> AggregateTotals:
        return cls(today=(day or date.today()).isoformat())

    def add_entries(self, entries: Iterable[TimeEntry]) -> AccountTotals:
        """Add one account's entries and return that account's own totals."""
        account = AccountTotals(today=self.today)
        for entry in entries:
            account.add(entry)
            self.add(entry)

        self.account_active = account.account_active
        self.any_active = self.any_active or account.account_active
        self.accounts_processed += 1
        return account


def _matches(config: ButtonConfig, position: Position | None) -> bool:
    return position is None or config.position == position


def resolve_account_totals(
    account_id: str,
    entries: Iterable[TimeEntry],
    totals: AggregateTotals,
    buttons: Iterable[tuple[str, ButtonConfig]],
    *,
    is_last: bool,
    position: Position | None = None,
) -> ButtonUpdates:
    """Add an account to ``totals`` and compute the totals buttons it settles.

    Daily, project and client buttons of the account are resolved at once.
    Weekly buttons cover every account and are only resolved when
    ``is_last`` says the final account of the pass has been added.
    ``position`` limits the result to the button at that key.
    """
    buttons = tuple(buttons)
    account = totals.add_entries(entries)
    state = RenderState.ACTIVE if account.account_active else RenderState.IDLE
    updates: ButtonUpdates = []

    for context, config in buttons:
        if not is_complete(config) or not _matches(config, position):
            continue
        if config.account_id != account_id:
            continue
        if config.kind is ButtonKind.DAILY:
            hours = account.daily_hours
        elif config.kind is ButtonKind.PROJECT:
            hours = account.project.get(config.project_id, 0.0)
        elif config.kind is ButtonKind.CLIENT:
            hours = account.client.get(config.client_id, 0.0)
        else:
            continue
        updates.append((context, _totals_update(hours, config.label, state)))

    if is_last:
        weekly_state = RenderState.ACTIVE if totals.any_active else RenderState.IDLE
        for context, config in buttons:
            if config.kind is ButtonKind.WEEKLY and is_complete(config) and _matches(
                config, position
            ):
                updates.append(
                    (context, _totals_update(totals.weekly_hours, config.label, weekly_state))
                )

    return updates


def resolve_timer_buttons(
    account_id: str,
    running: Iterable[TimeEntry],
    buttons: Iterable[tuple[str, ButtonConfig]],
    *,
    position: Position | None = None,
) -> ButtonUpdates:
    """Light the timer button matching the account's running entry.

    Every other timer button of the account is painted idle.
    """
    running = list(running)
    entry = running[0] if running else None
    if len(running) > 1:
        _LOGGER.debug(
            "Account %s reports %d running entries, using the first",
            account_id,
            len(running),
        )

    updates: ButtonUpdates = []
    for context, config in _timer_buttons(account_id, buttons, position):
        if entry is not None and timer_targets(config, entry):
            updates.append(
                (
                    context,
                    ButtonUpdate(
                        hours=entry.hours,
                        label=config.label,
                        state=RenderState.ACTIVE,
                        show_time=True,
                        separator=TIMER_SEPARATOR,
                    ),
                )
            )
        else:
            updates.append((context, idle_update(config.label)))
    return updates


def resolve_timer_errors(
    account_id: str,
    buttons: Iterable[tuple[str, ButtonConfig]],
    *,
    error_label: bool = False,
    position: Position | None = None,
) -> ButtonUpdates:
    """Paint every timer button of a failed account idle with an alert.

    With ``error_label`` the title is replaced by ``ERROR``.
    """
    return [
        (context, idle_update(ERROR_LABEL if error_label else config.label, alert=True))
        for context, config in _timer_buttons(account_id, buttons, position)
    ]


def timer_targets(config: TimerButton, entry: TimeEntry) -> bool:
    """Whether ``entry`` is the project task ``config`` tracks."""
    return entry.project_id == config.project_id and entry.task_id == config.task_id


def _timer_buttons(
    account_id: str,
    buttons: Iterable[tuple[str, ButtonConfig]],
    position: Position | None,
) -> Iterable[tuple[str, TimerButton]]:
    for context, config in buttons:
        if (
            isinstance(config, TimerButton)
            and config.account_id == account_id
            and _matches(config, position)
        ):
            yield context, config


def _totals_update(hours: float, label: str, state: RenderState) -> ButtonUpdate:
    return ButtonUpdate(
        hours=hours,
        label=label,
        state=state,
        show_time=True,
        separator=TOTALS_SEPARATOR,
    )
