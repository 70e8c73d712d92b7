#!/usr/bin/env python3
"""Subscribe to a STOMP destination and log every message until interrupted.

Usage:
    python scripts/stomp_tail.py https://broker.example/ws /topic/prices

Reconnection settings come from STOMP_* environment variables when not given
on the command line.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

from resilient_stomp import ClientConfig, ConfigurationError, ConstructionError, ReconnectingClient
from resilient_stomp.logging_config import setup_logging

logger = logging.getLogger("stomp_tail")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("endpoint", help="Broker address (ws, wss, http or https)")
    parser.add_argument("destination", help="Destination to subscribe to, e.g. /topic/prices")
    parser.add_argument("--raw-websocket", action="store_true", help="Disable SockJS framing")
    parser.add_argument("--max-attempts", type=int, default=None, help="Reconnect attempt ceiling")
    parser.add_argument("--log-file", metavar="NAME", default=None, help="Also log to logs/NAME.log")
    return parser.parse_args()


def _on_message(message: Any) -> None:
    logger.info("Message: %s", message)


def _on_error(error: BaseException) -> None:
    logger.warning("Error: %s", error)


async def _tail(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {
        "endpoint_address": args.endpoint,
        "destination_topic": args.destination,
        "on_connect": lambda: logger.info("Connected to %s", args.endpoint),
        "on_disconnect": lambda: logger.info("Disconnected"),
        "on_error": _on_error,
    }
    if args.raw_websocket:
        overrides["use_framing_transport"] = False
    if args.max_attempts is not None:
        overrides["max_reconnect_attempts"] = args.max_attempts

    try:
        config = ClientConfig.from_env(_on_message, **overrides)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    try:
        client = ReconnectingClient(config, name="tail")
    except ConstructionError as exc:
        logger.error("Invalid endpoint: %s", exc)
        return 2

    async with client:
        while True:
            await asyncio.sleep(1.0)
            if not client.is_connecting and not client.is_connected and client.error:
                logger.error("Giving up: %s", client.error)
                return 1


def main() -> int:
    args = _parse_args()
    setup_logging(args.log_file)
    try:
        return asyncio.run(_tail(args))
    except KeyboardInterrupt:
        logger.info("Stopping")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
