"""Reconciliation loop keeping the buttons in sync with Harvest."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine
from datetime import date
from typing import Any

from .aggregator import (
    AggregateTotals,
    ButtonUpdates,
    resolve_account_totals,
    resolve_timer_buttons,
    resolve_timer_errors,
    week_bounds,
)
from .cache import PayloadCache
from .const import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_REFRESH_DELAY_SECONDS,
    DEFAULT_REFRESH_GRACE_SECONDS,
    TIMER_SEPARATOR,
)
from .device import DeviceChannel
from .display import DisplayDispatcher
from .harvest_api import HarvestApiClient, HarvestError
from .models import (
    AccountKey,
    ButtonConfig,
    ButtonUpdate,
    IncompleteButton,
    LoopState,
    Position,
    QueryKind,
    RenderState,
    TimerButton,
    idle_update,
    is_complete,
)
from .registry import ButtonRegistry
from .toggle import ToggleAction, decide_toggle

_LOGGER = logging.getLogger(__name__)


class ReconciliationCoordinator:
    """Polls every account used by the registered buttons and repaints them.

    The coordinator is IDLE until the first button registers, then POLLING
    until the registry is found empty at the top of a cycle. Each cycle
    fans out one totals fetch (when a totals button exists) and one
    running-timer fetch per distinct account. Every fetch is its own task,
    so a failing or hung account only degrades its own buttons and the
    cycle cadence does not depend on how long any account takes.
    """

    def __init__(
        self,
        client: HarvestApiClient,
        channel: DeviceChannel,
        *,
        registry: ButtonRegistry | None = None,
        cache: PayloadCache | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        refresh_grace: float = DEFAULT_REFRESH_GRACE_SECONDS,
        refresh_delay: float = DEFAULT_REFRESH_DELAY_SECONDS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self.registry = registry or ButtonRegistry()
        self.cache = cache or PayloadCache()
        self.dispatcher = DisplayDispatcher(channel)
        self._poll_interval = poll_interval
        self._refresh_grace = refresh_grace
        self._refresh_delay = refresh_delay
        self._today = today

        self._state = LoopState.IDLE
        self._task: asyncio.Task[None] | None = None
        self._wake = asyncio.Event()
        self._next_refresh_at: float | None = None
        self._refresh_requested = False
        self._sequence = 0
        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def sequence(self) -> int:
        """Number of the most recent reconciliation pass."""
        return self._sequence

    # ------------------------------------------------------------------ #
    #  Button lifecycle
    # ------------------------------------------------------------------ #

    async def async_add_button(self, context: str, config: ButtonConfig) -> None:
        """Register a button, paint it from cache and make sure polling runs."""
        self.registry.add(context, config)
        await self.async_refresh_from_cache(config.position)

        if self._state is LoopState.IDLE:
            self.ensure_polling()
        elif is_complete(config) and not self._polled_last_pass(config.account):
            self.request_refresh_soon()

    async def async_remove_button(self, context: str) -> None:
        if self.registry.remove(context):
            self.dispatcher.forget(context)
        if not len(self.registry) and self._next_refresh_at is not None:
            # let the loop reach the top of its cycle and go idle
            self._next_refresh_at = self._now()
            self._wake.set()

    def ensure_polling(self) -> None:
        """Start the polling task unless it is already running."""
        if self._state is LoopState.POLLING or not len(self.registry):
            return
        self._state = LoopState.POLLING
        self._task = asyncio.create_task(self._async_poll_loop())

    def request_refresh_soon(self) -> None:
        """Ask for a network refresh shortly, e.g. after a timer was toggled.

        Dropped when the periodic refresh is due within the grace window.
        Otherwise the loop is woken after the refresh delay and the periodic
        interval restarts from that refresh. A request made before the loop
        has scheduled its next pass shortens that first wait to the refresh
        delay.
        """
        if self._state is LoopState.IDLE:
            self.ensure_polling()
            return
        if self._next_refresh_at is None:
            # the loop has not scheduled its next pass yet; keep it short
            self._refresh_requested = True
            return

        now = self._now()
        if self._next_refresh_at - now <= self._refresh_grace:
            _LOGGER.debug("Refresh already due, ignoring request")
            return

        self._next_refresh_at = now + self._refresh_delay
        self._wake.set()

    async def async_shutdown(self) -> None:
        """Stop polling and cancel every fetch or toggle still in flight."""
        task = self._task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        pending = list(self._background_tasks)
        for background in pending:
            background.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------ #
    #  Polling loop
    # ------------------------------------------------------------------ #

    async def _async_poll_loop(self) -> None:
        _LOGGER.info("Beginning to poll")
        try:
            while len(self.registry):
                self._next_refresh_at = None
                try:
                    self.start_refresh()
                except Exception:  # noqa: BLE001
                    _LOGGER.exception("Unexpected error during refresh pass %s", self._sequence)
                delay = self._poll_interval
                if self._refresh_requested:
                    self._refresh_requested = False
                    delay = self._refresh_delay
                self._next_refresh_at = self._now() + delay
                await self._async_wait_for_next_refresh()
        finally:
            _LOGGER.info("Stopping polling, no buttons remain")
            self._state = LoopState.IDLE
            self._task = None
            self._next_refresh_at = None

    async def _async_wait_for_next_refresh(self) -> None:
        """Sleep until the next refresh; rescheduling wakes and re-arms the wait."""
        while True:
            self._wake.clear()
            remaining = self._next_refresh_at - self._now()
            if remaining <= 0:
                return
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                return

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    def _polled_last_pass(self, account: AccountKey) -> bool:
        snapshot = self.cache.last_pass
        return snapshot is not None and account in snapshot.accounts

    # ------------------------------------------------------------------ #
    #  Network refresh
    # ------------------------------------------------------------------ #

    async def async_refresh(self) -> None:
        """Run one reconciliation pass and wait for every account to settle."""
        tasks = self.start_refresh()
        if tasks:
            await asyncio.gather(*tasks)

    def start_refresh(self) -> list[asyncio.Task[None]]:
        """Start one reconciliation pass over every distinct account.

        Each account fetch runs as its own background task and the pass
        returns without waiting for them, so a hung account never delays
        the next cycle. Late results of an older pass are fenced off by
        the cache sequence numbers.
        """
        self._sequence += 1
        sequence = self._sequence

        accounts = self.registry.accounts()
        have_totals = self.registry.needs_totals()
        self.cache.remember_pass(accounts, have_totals)
        if not accounts:
            return []

        tasks = []
        if have_totals:
            today = self._today()
            totals = AggregateTotals.for_day(today)
            from_date, to_date = week_bounds(today)
            tasks.extend(
                self.create_background_task(
                    self._async_refresh_totals(
                        account, totals, len(accounts), sequence, from_date, to_date
                    ),
                    f"entries {account.account_id} pass {sequence}",
                )
                for account in accounts
            )
        tasks.extend(
            self.create_background_task(
                self._async_refresh_running(account, sequence),
                f"running {account.account_id} pass {sequence}",
            )
            for account in accounts
        )
        return tasks

    def create_background_task(
        self, coro: Coroutine[Any, Any, None], name: str
    ) -> asyncio.Task[None]:
        """Run ``coro`` without blocking the caller, keeping a reference to it."""
        task = asyncio.create_task(coro, name=name)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_task_done)
        return task

    def _background_task_done(self, task: asyncio.Task[None]) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.error(
                "Background task %s failed", task.get_name(), exc_info=err
            )

    async def async_wait_background(self) -> None:
        """Wait until every background fetch and toggle has finished."""
        while self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def _async_refresh_totals(
        self,
        account: AccountKey,
        totals: AggregateTotals,
        account_count: int,
        sequence: int,
        from_date: date,
        to_date: date,
    ) -> None:
        account_id = account.account_id
        try:
            entries = await self._client.async_get_entries(
                account_id, account.access_token, from_date, to_date
            )
        except HarvestError as err:
            _LOGGER.warning("Fetching entries for account %s failed: %s", account_id, err)
            if not self.cache.store_failure(QueryKind.ENTRIES, account_id, sequence):
                return
            entries = []
            await self._async_apply(
                resolve_timer_errors(account_id, self.registry.all(), error_label=True)
            )
        else:
            if not self.cache.store(QueryKind.ENTRIES, account_id, entries, sequence):
                return

        is_last = totals.accounts_processed + 1 == account_count
        await self._async_apply(
            resolve_account_totals(
                account_id, entries, totals, self.registry.all(), is_last=is_last
            )
        )

    async def _async_refresh_running(self, account: AccountKey, sequence: int) -> None:
        account_id = account.account_id
        try:
            running = await self._client.async_get_running_entries(
                account_id, account.access_token
            )
        except HarvestError as err:
            _LOGGER.warning(
                "Fetching running entry for account %s failed: %s", account_id, err
            )
            if self.cache.store_failure(QueryKind.RUNNING, account_id, sequence):
                await self._async_apply(
                    resolve_timer_errors(account_id, self.registry.all())
                )
            return

        if self.cache.store(QueryKind.RUNNING, account_id, running, sequence):
            if not running:
                _LOGGER.debug("No running entry on account %s", account_id)
            await self._async_apply(
                resolve_timer_buttons(account_id, running, self.registry.all())
            )

    # ------------------------------------------------------------------ #
    #  Cache replay
    # ------------------------------------------------------------------ #

    async def async_refresh_from_cache(self, position: Position) -> None:
        """Repaint the button at ``position`` from cached payloads only.

        Used when a button (re)appears, e.g. on a page switch, so it shows
        data without waiting for the next network pass.
        """
        _LOGGER.debug(
            "Refreshing button at row %s column %s from cache",
            position.row,
            position.column,
        )
        buttons = tuple(self.registry.at(position))
        updates: ButtonUpdates = [
            (context, idle_update(config.label))
            for context, config in buttons
            if isinstance(config, IncompleteButton)
        ]

        snapshot = self.cache.last_pass
        if snapshot is not None:
            if snapshot.have_totals:
                updates.extend(self._replay_totals(snapshot.accounts, buttons, position))
            for account in snapshot.accounts:
                cached = self.cache.get(QueryKind.RUNNING, account.account_id)
                running = cached.entries if cached is not None else ()
                updates.extend(
                    resolve_timer_buttons(
                        account.account_id, running, buttons, position=position
                    )
                )

        await self._async_apply(updates)

    def _replay_totals(
        self,
        accounts: tuple[AccountKey, ...],
        buttons: tuple[tuple[str, ButtonConfig], ...],
        position: Position,
    ) -> ButtonUpdates:
        totals = AggregateTotals.for_day(self._today())
        updates: ButtonUpdates = []
        # accounts whose first fetch has not landed yet are left out of the sum
        cached_accounts = []
        for account in accounts:
            cached = self.cache.get(QueryKind.ENTRIES, account.account_id)
            if cached is not None:
                cached_accounts.append((account.account_id, cached))
        for account_id, cached in cached_accounts:
            updates.extend(
                resolve_account_totals(
                    account_id,
                    cached.entries,
                    totals,
                    buttons,
                    is_last=totals.accounts_processed + 1 == len(cached_accounts),
                    position=position,
                )
            )
        return updates

    # ------------------------------------------------------------------ #
    #  Timer toggle
    # ------------------------------------------------------------------ #

    async def async_toggle(self, context: str, config: ButtonConfig) -> None:
        """Start or stop the timer of a pressed button.

        Presses on totals or incomplete buttons are ignored. Failures
        degrade the affected buttons and never propagate.
        """
        if not isinstance(config, TimerButton):
            _LOGGER.debug("Ignoring press on non-timer button %s", context)
            return

        account_id = config.account_id
        try:
            running = await self._client.async_get_running_entries(
                account_id, config.access_token
            )
        except HarvestError as err:
            _LOGGER.warning(
                "Fetching running entry for account %s failed: %s", account_id, err
            )
            await self._async_apply(
                resolve_timer_errors(account_id, self.registry.all())
            )
            return

        decision = decide_toggle(config, running)
        try:
            if decision.action is ToggleAction.STOP:
                await self._async_stop(context, config, decision.entry_id)
            else:
                await self._async_start(context, config)
        finally:
            self.request_refresh_soon()

    async def _async_start(self, context: str, config: TimerButton) -> None:
        await self.dispatcher.async_update(
            context,
            ButtonUpdate(
                hours=0.0,
                label=config.label,
                state=RenderState.ACTIVE,
                show_time=True,
                separator=TIMER_SEPARATOR,
            ),
        )
        try:
            entry_id = await self._client.async_start_timer(
                config.account_id,
                config.access_token,
                config.project_id,
                config.task_id,
                self._today(),
            )
        except HarvestError as err:
            _LOGGER.warning("Starting timer for button %s failed: %s", context, err)
            await self.dispatcher.async_update(context, idle_update(config.label, alert=True))
            return
        _LOGGER.info("Started time entry %s for button %s", entry_id, context)

    async def _async_stop(self, context: str, config: TimerButton, entry_id: str) -> None:
        await self.dispatcher.async_update(context, idle_update(config.label))
        try:
            await self._client.async_stop_timer(
                config.account_id, config.access_token, entry_id
            )
        except HarvestError as err:
            _LOGGER.warning("Stopping timer %s failed: %s", entry_id, err)
            await self.dispatcher.async_update(context, idle_update(config.label, alert=True))
            return
        _LOGGER.info("Stopped time entry %s for button %s", entry_id, context)

    # ------------------------------------------------------------------ #

    async def _async_apply(self, updates: ButtonUpdates) -> None:
        """Paint updates, skipping buttons that disappeared meanwhile."""
        for context, update in updates:
            if context not in self.registry:
                continue
            await self.dispatcher.async_update(context, update)
