"""Routing of host events to the button registry and reconciliation loop."""

from __future__ import annotations

import logging
from typing import Any

from .const import CONF_ACCESS_TOKEN, CONF_ACCOUNT_ID, CONF_LABEL
from .coordinator import ReconciliationCoordinator
from .device import (
    EVENT_DID_RECEIVE_GLOBAL_SETTINGS,
    EVENT_DID_RECEIVE_SETTINGS,
    EVENT_KEY_DOWN,
    EVENT_PROPERTY_INSPECTOR_DID_DISAPPEAR,
    EVENT_WILL_APPEAR,
    EVENT_WILL_DISAPPEAR,
    DeviceChannel,
    DeviceEvent,
)
from .models import IncompleteButton, Position
from .settings import parse_button_settings, parse_position

_LOGGER = logging.getLogger(__name__)

_CREDENTIAL_KEYS = (CONF_ACCOUNT_ID, CONF_ACCESS_TOKEN)


class HarvestDeckPlugin:
    """Applies host events to the coordinator.

    Keeps the raw settings of every visible button so they can be parsed
    again when the global settings (shared credentials) arrive.
    """

    def __init__(
        self, coordinator: ReconciliationCoordinator, channel: DeviceChannel
    ) -> None:
        self._coordinator = coordinator
        self._channel = channel
        self.global_settings: dict[str, Any] = {}
        self._raw: dict[str, tuple[dict[str, Any], Position]] = {}

    async def async_handle_event(self, event: DeviceEvent) -> None:
        """Dispatch one inbound event."""
        name = event.event
        if name == EVENT_KEY_DOWN:
            await self._async_key_down(event)
        elif name == EVENT_WILL_APPEAR:
            if not event.is_in_multi_action:
                await self._async_appear(event)
        elif name == EVENT_WILL_DISAPPEAR:
            if not event.is_in_multi_action:
                position = parse_position(event.coordinates)
                _LOGGER.info(
                    "Button removed from row %s column %s",
                    position.row + 1,
                    position.column + 1,
                )
                self._raw.pop(event.context, None)
                await self._coordinator.async_remove_button(event.context)
        elif name == EVENT_DID_RECEIVE_SETTINGS:
            if not event.is_in_multi_action:
                _LOGGER.debug(
                    "Received settings for button %s labeled %r",
                    event.context,
                    event.settings.get(CONF_LABEL),
                )
                await self._async_appear(event)
                self._coordinator.request_refresh_soon()
        elif name == EVENT_PROPERTY_INSPECTOR_DID_DISAPPEAR:
            # the inspector may have saved new settings; ask for them
            await self._channel.async_get_settings(event.context)
        elif name == EVENT_DID_RECEIVE_GLOBAL_SETTINGS:
            await self._async_global_settings(event.settings)
        else:
            _LOGGER.debug("Unhandled event %s", name)

    async def _async_key_down(self, event: DeviceEvent) -> None:
        known = self._coordinator.registry.get(event.context)
        position = known.position if known else parse_position(event.coordinates)
        config = parse_button_settings(event.settings, position, self.global_settings)
        _LOGGER.info("Pressed button %s labeled %r", event.context, config.label)
        # the toggle talks to Harvest; keep reading device events meanwhile
        self._coordinator.create_background_task(
            self._coordinator.async_toggle(event.context, config),
            f"toggle {event.context}",
        )

    async def _async_appear(self, event: DeviceEvent) -> None:
        settings = dict(event.settings)
        position = parse_position(event.coordinates)
        self._raw[event.context] = (settings, position)

        config = parse_button_settings(settings, position, self.global_settings)
        if isinstance(config, IncompleteButton):
            _LOGGER.debug("Button %s is incomplete: %s", event.context, config.reason)
        _LOGGER.info(
            "Button added to row %s column %s", position.row + 1, position.column + 1
        )
        await self._coordinator.async_add_button(event.context, config)
        await self._async_sync_credentials(event.context, settings)

    async def _async_global_settings(self, settings: dict[str, Any]) -> None:
        self.global_settings = dict(settings)
        _LOGGER.debug("Received global settings with keys %s", sorted(settings))

        # buttons waiting for shared credentials may be complete now
        for context, (raw, position) in list(self._raw.items()):
            current = self._coordinator.registry.get(context)
            if not isinstance(current, IncompleteButton):
                continue
            config = parse_button_settings(raw, position, self.global_settings)
            if not isinstance(config, IncompleteButton):
                await self._coordinator.async_add_button(context, config)
                await self._async_sync_credentials(context, raw)

    async def _async_sync_credentials(self, context: str, settings: dict[str, Any]) -> None:
        """Share credentials between a button and the global settings.

        A button without credentials inherits the global ones; the first
        button with credentials seeds the global settings for later buttons.
        """
        has_own = all(settings.get(key) for key in _CREDENTIAL_KEYS)
        has_global = all(self.global_settings.get(key) for key in _CREDENTIAL_KEYS)

        if not has_own and has_global:
            merged = dict(settings)
            for key in _CREDENTIAL_KEYS:
                if not merged.get(key):
                    merged[key] = self.global_settings[key]
            self._raw[context] = (merged, self._raw[context][1])
            await self._channel.async_set_settings(context, merged)
        elif has_own and not has_global:
            self.global_settings = {
                **self.global_settings,
                **{key: settings[key] for key in _CREDENTIAL_KEYS},
            }
            await self._channel.async_set_global_settings(self.global_settings)
