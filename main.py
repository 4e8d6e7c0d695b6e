"""Main entry point for the PPM checker."""

import argparse
import asyncio
import importlib
import os
import sys

import structlog
import uvicorn

from ppm_checker import PPMChecker
from ppm_checker.api import create_app
from ppm_checker.config import load_config
from ppm_checker.logging_setup import configure_logging

logger = structlog.get_logger(__name__)


def load_host(factory_path: str):
    """Build host bindings from a ``module:attribute`` factory path."""
    module_name, sep, attr = factory_path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Host factory must look like 'module:attribute', got {factory_path!r}")
    factory = getattr(importlib.import_module(module_name), attr)
    return factory() if callable(factory) else factory


async def run_cli_command(checker: PPMChecker, command: str) -> int:
    """Run a single manual action and exit."""
    try:
        if command == "check":
            result = await checker.run_check_now()
            print(f"Check result: {result.kind.value if result else 'unavailable'}")
            return 0 if result is not None else 1
        if command == "stop-cluster":
            return 0 if await checker.send_stop_now() else 1
        if command == "start-cluster":
            return 0 if await checker.send_start_now() else 1
        print(f"Unknown command: {command}")
        print("Available commands: serve, check, stop-cluster, start-cluster")
        return 2
    finally:
        await checker.session.queue.join()
        checker.stop()


def main() -> int:
    parser = argparse.ArgumentParser(description="PPM Checker")
    parser.add_argument("command", nargs="?", default="serve",
                        help="serve (default), check, stop-cluster or start-cluster")
    parser.add_argument("--config", default=os.getenv("PPM_CHECKER_CONFIG"), help="Path to YAML config")
    parser.add_argument("--host-factory", default=None, help="module:attribute returning host bindings")
    parser.add_argument("--bind", default="0.0.0.0", help="HTTP bind address")
    parser.add_argument("--port", type=int, default=8000, help="HTTP port")
    args = parser.parse_args()

    config = load_config(args.config)
    configure_logging(config.log_level)

    factory_path = args.host_factory or config.host_factory
    if not factory_path:
        logger.error("No host bindings configured (use --host-factory or host_factory in config)")
        return 2
    host = load_host(factory_path)

    checker = PPMChecker(host, config_provider=lambda: load_config(args.config))

    if args.command != "serve":
        return asyncio.run(run_cli_command(checker, args.command))

    logger.info("Starting PPM checker web server", port=args.port)
    uvicorn.run(create_app(checker), host=args.bind, port=args.port, log_level="info")
    return 0


if __name__ == "__main__":
    sys.exit(main())
