"""Registry of the buttons currently visible on the device."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from .models import AccountKey, ButtonConfig, Position, is_complete

_LOGGER = logging.getLogger(__name__)


class ButtonRegistry:
    """Tracks the live set of buttons keyed by their host context id.

    Insertion order is kept so redraw passes run in a stable order.
    Replacing a button keeps its original slot.
    """

    def __init__(self) -> None:
        self._buttons: dict[str, ButtonConfig] = {}

    def __len__(self) -> int:
        return len(self._buttons)

    def __contains__(self, context: object) -> bool:
        return context in self._buttons

    def add(self, context: str, config: ButtonConfig) -> None:
        """Insert or replace the button shown under ``context``."""
        self._buttons[context] = config
        _LOGGER.debug(
            "Registered button %s (%s) at row %s column %s",
            context,
            config.kind.value if config.kind else "unconfigured",
            config.position.row,
            config.position.column,
        )

    def remove(self, context: str) -> bool:
        """Delete a button. Returns False if it was not registered."""
        if self._buttons.pop(context, None) is None:
            return False
        _LOGGER.debug("Removed button %s", context)
        return True

    def get(self, context: str) -> ButtonConfig | None:
        return self._buttons.get(context)

    def all(self) -> tuple[tuple[str, ButtonConfig], ...]:
        """Snapshot of ``(context, config)`` pairs in insertion order.

        The snapshot can be iterated any number of times and is unaffected
        by buttons added or removed while a pass is running.
        """
        return tuple(self._buttons.items())

    def at(self, position: Position) -> Iterator[tuple[str, ButtonConfig]]:
        """Iterate over the buttons shown at one key position."""
        return (
            (context, config)
            for context, config in self.all()
            if config.position == position
        )

    def accounts(self) -> list[AccountKey]:
        """Distinct accounts of every complete button, in first-seen order.

        An account id seen with two tokens is polled with the last one.
        """
        accounts: dict[str, AccountKey] = {}
        for _, config in self.all():
            if is_complete(config):
                accounts[config.account_id] = config.account
        return list(accounts.values())

    def needs_totals(self) -> bool:
        """Whether any totals-kind button is registered."""
        return any(
            config.kind is not None and config.kind.is_totals
            for _, config in self.all()
        )
