"""Tests for the host websocket channel and the command line."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from harvest_deck.__main__ import build_parser
from harvest_deck.device import DeviceConnectionError, StreamDeckConnection


def _connection(ws=None) -> StreamDeckConnection:
    session = MagicMock()
    session.ws_connect = AsyncMock(return_value=ws)
    return StreamDeckConnection(28196, "plugin-uuid", "registerPlugin", session)


def _open_socket() -> MagicMock:
    ws = MagicMock()
    ws.closed = False
    ws.send_str = AsyncMock()
    return ws


def _sent(ws: MagicMock) -> list[dict]:
    return [json.loads(call.args[0]) for call in ws.send_str.call_args_list]


class TestStreamDeckConnection:
    def test_connect_registers_plugin(self):
        ws = _open_socket()
        connection = _connection(ws)

        asyncio.run(connection.async_connect())

        connection._session.ws_connect.assert_awaited_once_with("ws://127.0.0.1:28196")
        assert _sent(ws) == [{"event": "registerPlugin", "uuid": "plugin-uuid"}]

    def test_connect_failure(self):
        connection = _connection()
        connection._session.ws_connect.side_effect = aiohttp.ClientConnectionError("refused")
        with pytest.raises(DeviceConnectionError):
            asyncio.run(connection.async_connect())

    def test_commands_dropped_while_closed(self):
        connection = _connection()
        asyncio.run(connection.async_set_title("ctx", "Dev"))
        assert not connection.connected

    def test_command_payloads(self):
        ws = _open_socket()
        connection = _connection(ws)

        async def scenario():
            await connection.async_connect()
            ws.send_str.reset_mock()
            await connection.async_set_state("ctx", 1)
            await connection.async_set_title("ctx", "0:00\n\nDev")
            await connection.async_show_alert("ctx")
            await connection.async_get_global_settings()
            await connection.async_set_global_settings({"accountId": "A1"})

        asyncio.run(scenario())

        assert _sent(ws) == [
            {"event": "setState", "context": "ctx", "payload": {"state": 1}},
            {"event": "setTitle", "context": "ctx", "payload": {"title": "0:00\n\nDev"}},
            {"event": "showAlert", "context": "ctx"},
            {"event": "getGlobalSettings", "context": "plugin-uuid"},
            {
                "event": "setGlobalSettings",
                "context": "plugin-uuid",
                "payload": {"accountId": "A1"},
            },
        ]

    def test_reset_while_sending_is_swallowed(self):
        ws = _open_socket()
        connection = _connection(ws)

        async def scenario():
            await connection.async_connect()
            ws.send_str.side_effect = ConnectionResetError("closing")
            await connection.async_show_alert("ctx")

        asyncio.run(scenario())

    def test_listen_requires_connection(self):
        connection = _connection()
        with pytest.raises(DeviceConnectionError):
            asyncio.run(connection.async_listen(AsyncMock()))


class TestCommandLine:
    def test_host_arguments(self):
        args = build_parser().parse_args(
            [
                "-port", "28196",
                "-pluginUUID", "abc",
                "-registerEvent", "registerPlugin",
                "-info", '{"application": {}}',
            ]
        )
        assert args.port == 28196
        assert args.plugin_uuid == "abc"
        assert args.register_event == "registerPlugin"
        assert args.info == '{"application": {}}'

    def test_port_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-pluginUUID", "abc", "-registerEvent", "r"])
