#!/usr/bin/env python3
"""
PostgreSQL Redis Synchronization Service
--------------------------------------
Main entry point for PostgreSQL to Redis synchronization.

The service polls PostgreSQL for rows changed after the cursor stored in
Redis and writes their projections to Redis.

Usage:
    python -m pg_redis_sync.main --config-file=/app/env.conf
    python -m pg_redis_sync.main --log-level=DEBUG
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Callable, List, Optional

from .config.settings import WorkerSettings, load_settings
from .core.exceptions import ConfigurationError, SyncError
from .core.runner import SyncRunner
from .services.postgres_service import PostgresService
from .services.redis_service import RedisService

# Global logger instance
logger = logging.getLogger("pg-redis-sync")


def setup_logging(log_level: str, log_format: str):
    """Configure logging based on level."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=log_format)
    logger.info(f"Logging level set to {log_level.upper()}")


async def check_startup_services(
    source: PostgresService, cache: RedisService
) -> bool:
    """Check connectivity to PostgreSQL and Redis."""
    logger.info("Performing startup service checks...")

    if not await source.connect():
        logger.critical(
            "Startup Check Failed: Could not connect to PostgreSQL after multiple retries."
        )
        return False
    logger.info("Startup Check Passed: PostgreSQL connection successful.")

    if not await cache.connect():
        logger.critical(
            "Startup Check Failed: Could not connect to Redis after multiple retries."
        )
        return False
    logger.info("Startup Check Passed: Redis connection successful.")

    logger.info("All startup service checks passed.")
    return True


def create_signal_handler(runner: SyncRunner, sig: int) -> Callable[[], None]:
    """Create a signal handler that stops the runner."""

    def handler() -> None:
        logger.info(f"Received signal {sig}. Initiating shutdown...")
        runner.stop()

    return handler


async def run_worker(settings: WorkerSettings) -> int:
    """
    Connect to both stores and run the sync loop.

    Returns:
        Process exit code
    """
    source = PostgresService(settings.db, max_retries=settings.connect_max_retries)
    cache = RedisService(settings.redis, max_retries=settings.connect_max_retries)
    runner = SyncRunner(settings, source, cache)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, create_signal_handler(runner, sig))

    try:
        if not await check_startup_services(source, cache):
            logger.critical("Startup service checks failed. Exiting.")
            return 1

        await runner.run()
        return 0
    except ConfigurationError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1
    except SyncError as e:
        logger.critical(f"Sync stopped after an unrecoverable error: {e}", exc_info=True)
        return 1
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        await cache.close()
        await source.close()


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="PostgreSQL to Redis Synchronization Service"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: LOG_LEVEL, or DEBUG when WORKER_DEBUG is set)",
    )
    parser.add_argument(
        "--config-file",
        help="Path to configuration file (default: /app/env.conf)",
    )
    return parser.parse_args(args)


async def main(args: Optional[List[str]] = None) -> int:
    """Main entry point with argument parsing and setup."""
    parsed_args = parse_args(args)

    try:
        settings = load_settings(parsed_args.config_file)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.critical(f"Configuration validation failed: {e}")
        return 1

    log_level = parsed_args.log_level or ("DEBUG" if settings.debug else settings.log_level)
    setup_logging(log_level, settings.log_format)
    logger.info(f"Using settings: {settings.as_dict()}")

    return await run_worker(settings)


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
