#!/usr/bin/env python3
"""Gatehouse server — authentication gateway entry point.

Usage:
    python3 -m gatehouse.server --config .gatehouse/config.json
    python3 -m gatehouse.server --config .gatehouse/config.json --log-level DEBUG
    python3 -m gatehouse.server --test-mode --config config.json
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any

import jsonschema
from aiohttp import web

from gatehouse.app import create_app
from gatehouse.config import DEFAULT_CONFIG_PATH, build_config, load_config

logger = logging.getLogger("gatehouse.server")


async def run_server(config: dict[str, Any], test_mode: bool = False):
    """Main server coroutine.

    Args:
        config: Validated configuration dictionary
        test_mode: If True, build the app, print a summary and exit
    """
    host = config["server"]["host"]
    port = config["server"]["port"]

    if test_mode:
        print("Gatehouse — test mode")
        print(f"  Listen: {host}:{port}")
        print(f"  Credential store: {config['auth']['db_path']}")
        print(f"  Restricted prefix: {config['restricted_prefix']}")
        print(f"  Session max age: {config['session']['max_age']}s")
        print("Config valid. Exiting test mode.")
        return

    app = create_app(config)

    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.info("Shutdown signal received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    runner = web.AppRunner(app)
    await runner.setup()
    try:
        site = web.TCPSite(runner, host, port)
        await site.start()
        logger.info(f"~~~ Server listening on port {port} ~~~")

        await shutdown_event.wait()
    finally:
        logger.info("Shutting down...")
        await runner.cleanup()
        logger.info("Gatehouse offline")


def main():
    parser = argparse.ArgumentParser(
        prog="gatehouse-server",
        description="Gatehouse — session-backed authentication gateway",
        usage="%(prog)s [options]",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help=f"Path to config.json (default: {DEFAULT_CONFIG_PATH} if present)",
    )
    parser.add_argument(
        "--test-mode",
        "-t",
        action="store_true",
        help="Validate config and exit without starting",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config_path = args.config
    if config_path is None and Path(DEFAULT_CONFIG_PATH).exists():
        config_path = DEFAULT_CONFIG_PATH

    try:
        config = load_config(config_path) if config_path else build_config()
    except FileNotFoundError:
        print(f"Error: Config not found at {config_path}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Config is not valid JSON: {e}", file=sys.stderr)
        return 1
    except jsonschema.ValidationError as e:
        print(f"Error: Invalid config: {e.message}", file=sys.stderr)
        return 1

    try:
        asyncio.run(run_server(config, test_mode=args.test_mode))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
