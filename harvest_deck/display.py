"""Translation of button updates into device display commands."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from .const import LINE_BREAK_TOKEN, MAX_LINE_BREAKS
from .models import ButtonUpdate, RenderState

if TYPE_CHECKING:
    from .device import DeviceChannel

_LOGGER = logging.getLogger(__name__)

_MINUTE_EPSILON = 1e-9


def format_elapsed(hours: float) -> str:
    """Format decimal hours as ``H:MM``.

    Minutes are always rounded down, so 1.83 hours reads ``1:49``.
    """
    whole = math.floor(hours)
    # epsilon keeps 0.35 h at 21 minutes despite its binary representation
    minutes = min(math.floor((hours - whole) * 60.0 + _MINUTE_EPSILON), 59)
    return f"{whole}:{minutes:02d}"


def expand_line_breaks(label: str) -> str:
    """Replace up to three line-break tokens with real newlines."""
    return label.replace(LINE_BREAK_TOKEN, "\n", MAX_LINE_BREAKS)


def build_title(update: ButtonUpdate) -> str:
    """Render the title text of a button update."""
    label = expand_line_breaks(update.label or "")
    if not update.show_time:
        return label
    elapsed = format_elapsed(update.hours or 0.0)
    if not label:
        return elapsed
    return f"{elapsed}{update.separator}{label}"


class DisplayDispatcher:
    """Sends button updates to the device and remembers what was painted."""

    def __init__(self, channel: DeviceChannel) -> None:
        self._channel = channel
        self._rendered: dict[str, RenderState] = {}
        self._titles: dict[str, str] = {}

    def rendered_state(self, context: str) -> RenderState | None:
        return self._rendered.get(context)

    def rendered_title(self, context: str) -> str | None:
        return self._titles.get(context)

    def forget(self, context: str) -> None:
        self._rendered.pop(context, None)
        self._titles.pop(context, None)

    async def async_update(self, context: str, update: ButtonUpdate) -> None:
        """Paint the state icon and title, then the alert if requested."""
        title = build_title(update)
        await self._channel.async_set_state(context, update.state.state_index)
        await self._channel.async_set_title(context, title)
        self._rendered[context] = update.state
        self._titles[context] = title
        if update.alert:
            await self.async_alert(context)

    async def async_alert(self, context: str, reason: str | None = None) -> None:
        """Flash the alert glyph on a button."""
        if reason:
            _LOGGER.warning("Showing alert on button %s: %s", context, reason)
        await self._channel.async_show_alert(context)
