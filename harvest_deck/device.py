"""Websocket channel to the Stream Deck host application."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import aiohttp

_LOGGER = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"

# Inbound event names
EVENT_KEY_DOWN = "keyDown"
EVENT_WILL_APPEAR = "willAppear"
EVENT_WILL_DISAPPEAR = "willDisappear"
EVENT_DID_RECEIVE_SETTINGS = "didReceiveSettings"
EVENT_DID_RECEIVE_GLOBAL_SETTINGS = "didReceiveGlobalSettings"
EVENT_PROPERTY_INSPECTOR_DID_DISAPPEAR = "propertyInspectorDidDisappear"


class DeviceConnectionError(Exception):
    """The websocket to the host could not be opened or failed."""


class DeviceChannel(Protocol):
    """Outbound commands understood by the host."""

    async def async_set_state(self, context: str, state: int) -> None: ...

    async def async_set_title(self, context: str, title: str) -> None: ...

    async def async_show_alert(self, context: str) -> None: ...

    async def async_get_settings(self, context: str) -> None: ...

    async def async_get_global_settings(self) -> None: ...

    async def async_set_settings(self, context: str, payload: dict[str, Any]) -> None: ...

    async def async_set_global_settings(self, payload: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class DeviceEvent:
    """One message received from the host."""

    event: str
    context: str | None = None
    action: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_message(cls, data: dict[str, Any]) -> DeviceEvent:
        """Construct from a decoded websocket message."""
        return cls(
            event=str(data.get("event", "")),
            context=data.get("context"),
            action=data.get("action"),
            payload=data.get("payload") or {},
        )

    @property
    def settings(self) -> dict[str, Any]:
        return self.payload.get("settings") or {}

    @property
    def coordinates(self) -> dict[str, Any]:
        return self.payload.get("coordinates") or {}

    @property
    def is_in_multi_action(self) -> bool:
        return bool(self.payload.get("isInMultiAction", False))


EventHandler = Callable[[DeviceEvent], Awaitable[None]]


class StreamDeckConnection:
    """Message channel to the host over a local websocket.

    Usage::

        connection = StreamDeckConnection(port, plugin_uuid, register_event)
        await connection.async_connect()
        await connection.async_listen(plugin.async_handle_event)

    Commands sent while the socket is closed are dropped, matching the
    host's own plugins: the next poll repaints every button anyway.
    """

    def __init__(
        self,
        port: int,
        plugin_uuid: str,
        register_event: str,
        session: aiohttp.ClientSession | None = None,
        *,
        host: str = DEFAULT_HOST,
    ) -> None:
        self._url = f"ws://{host}:{port}"
        self._plugin_uuid = plugin_uuid
        self._register_event = register_event
        self._owns_session = session is None
        self._session = session or aiohttp.ClientSession()
        self._ws: aiohttp.ClientWebSocketResponse | None = None

    @property
    def plugin_uuid(self) -> str:
        return self._plugin_uuid

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def async_connect(self) -> None:
        """Open the websocket and register the plugin instance.

        Raises:
            DeviceConnectionError: If the host is unreachable.
        """
        try:
            self._ws = await self._session.ws_connect(self._url)
        except aiohttp.ClientError as err:
            raise DeviceConnectionError(f"Cannot connect to {self._url}: {err}") from err
        await self._send({"event": self._register_event, "uuid": self._plugin_uuid})
        _LOGGER.info("Registered plugin %s on %s", self._plugin_uuid, self._url)

    async def async_listen(self, handler: EventHandler) -> None:
        """Feed every inbound event to ``handler`` until the socket closes.

        A handler failure is logged and does not end the session.

        Raises:
            DeviceConnectionError: If the websocket reports an error.
        """
        if self._ws is None:
            raise DeviceConnectionError("Not connected. Call async_connect() first.")

        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    data = json.loads(msg.data)
                except ValueError:
                    _LOGGER.warning("Could not parse incoming message: %s", msg.data)
                    continue
                event = DeviceEvent.from_message(data)
                _LOGGER.debug("Incoming %s for %s", event.event, event.action)
                try:
                    await handler(event)
                except Exception:  # noqa: BLE001
                    _LOGGER.exception("Error handling %s event", event.event)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise DeviceConnectionError(
                    f"Websocket error: {self._ws.exception()}"
                )
            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED):
                break

        _LOGGER.info("Connection to %s closed", self._url)

    async def async_close(self) -> None:
        """Close the websocket, and the HTTP session if owned."""
        if self._ws is not None:
            await self._ws.close()
        if self._owns_session:
            await self._session.close()

    # ------------------------------------------------------------------ #
    #  Commands
    # ------------------------------------------------------------------ #

    async def async_set_state(self, context: str, state: int) -> None:
        await self._send({"event": "setState", "context": context, "payload": {"state": state}})

    async def async_set_title(self, context: str, title: str) -> None:
        await self._send({"event": "setTitle", "context": context, "payload": {"title": title}})

    async def async_show_alert(self, context: str) -> None:
        await self._send({"event": "showAlert", "context": context})

    async def async_get_settings(self, context: str) -> None:
        """Ask for a button's settings; answered by ``didReceiveSettings``."""
        await self._send({"event": "getSettings", "context": context})

    async def async_get_global_settings(self) -> None:
        """Ask for the plugin settings; answered by ``didReceiveGlobalSettings``."""
        await self._send({"event": "getGlobalSettings", "context": self._plugin_uuid})

    async def async_set_settings(self, context: str, payload: dict[str, Any]) -> None:
        await self._send({"event": "setSettings", "context": context, "payload": payload})

    async def async_set_global_settings(self, payload: dict[str, Any]) -> None:
        await self._send(
            {"event": "setGlobalSettings", "context": self._plugin_uuid, "payload": payload}
        )

    async def _send(self, message: dict[str, Any]) -> None:
        if not self.connected:
            _LOGGER.debug("Dropping %s, websocket is not open", message["event"])
            return
        try:
            await self._ws.send_str(json.dumps(message))
        except ConnectionResetError as err:
            _LOGGER.debug("Dropping %s, websocket is closing: %s", message["event"], err)
