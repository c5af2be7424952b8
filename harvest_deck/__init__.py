"""Stream Deck plugin mirroring Harvest time tracking onto device buttons."""

from __future__ import annotations

import logging

import aiohttp

from .coordinator import ReconciliationCoordinator
from .device import StreamDeckConnection
from .harvest_api import HarvestApiClient
from .plugin import HarvestDeckPlugin

_LOGGER = logging.getLogger(__name__)


async def async_run_plugin(port: int, plugin_uuid: str, register_event: str) -> None:
    """Connect to the host and serve events until the connection closes.

    Raises:
        DeviceConnectionError: If the host is unreachable or the socket fails.
    """
    async with aiohttp.ClientSession() as session:
        connection = StreamDeckConnection(port, plugin_uuid, register_event, session)
        client = HarvestApiClient(session)
        coordinator = ReconciliationCoordinator(client, connection)
        plugin = HarvestDeckPlugin(coordinator, connection)

        await connection.async_connect()
        try:
            await connection.async_get_global_settings()
            await connection.async_listen(plugin.async_handle_event)
        finally:
            await coordinator.async_shutdown()
            await connection.async_close()
