"""Entry point launched by the Stream Deck host.

The host starts the plugin as::

    harvest-deck -port 28196 -pluginUUID <uuid> -registerEvent registerPlugin -info '{...}'
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

from . import async_run_plugin
from .const import ENV_LOG_LEVEL
from .device import DeviceConnectionError

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="harvest-deck",
        description="Harvest time tracking plugin for the Stream Deck.",
    )
    parser.add_argument("-port", dest="port", type=int, required=True)
    parser.add_argument("-pluginUUID", dest="plugin_uuid", required=True)
    parser.add_argument("-registerEvent", dest="register_event", required=True)
    parser.add_argument("-info", dest="info", default="{}")
    parser.add_argument(
        "--log-level",
        default=os.environ.get(ENV_LOG_LEVEL, "INFO"),
        help=f"logging level (default: ${ENV_LOG_LEVEL} or INFO)",
    )
    parser.add_argument("--log-file", default=None, help="write logs to this file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        filename=args.log_file,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        info = json.loads(args.info)
    except ValueError:
        info = {}
    _LOGGER.debug("Host info: %s", info)

    try:
        asyncio.run(async_run_plugin(args.port, args.plugin_uuid, args.register_event))
    except DeviceConnectionError as err:
        _LOGGER.error("Lost connection to the Stream Deck: %s", err)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
