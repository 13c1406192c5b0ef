"""
Order Book Recorder - Process Entry Point

Samples OKX order book snapshots for the configured instruments on a fixed
interval and stores the top levels of each side in PostgreSQL.

Startup (any failure here is fatal, exit code 1):
    1. Load and validate settings (.env / environment)
    2. Connect to the database
    3. Create destination tables (RUN_MIGRATIONS=true)
    4. Start the scheduler: first cycle immediately, then every POLL_INTERVAL_SECONDS

Shutdown:
    SIGINT / SIGTERM stop the timer, give in-flight cycles
    SHUTDOWN_GRACE_SECONDS to finish, cancel the rest and close connections.

Usage:
    python start.py
    orderbook-recorder          # console script installed by pyproject.toml
"""

import asyncio
import signal
import sys
from typing import Callable, List

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.config import Settings, load_settings, validate_configuration
from core.logging import get_logger, setup_logging
from exchanges.okx import OKXAPIClient
from services.scheduler import SnapshotScheduler
from services.snapshot_task import SnapshotTask
from storage.database import check_connection, create_engine
from storage.sink import OrderBookSink

logger = get_logger(__name__)


def install_signal_handlers(loop: asyncio.AbstractEventLoop, callback: Callable[[], None]) -> List[int]:
    """
    Route SIGINT and SIGTERM to callback.

    Returns:
        Signals that were installed (empty where the loop does not support it, e.g. Windows)
    """
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, callback)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig!r} not supported on this platform")
    return installed


async def run(settings: Settings) -> int:
    """
    Run the recorder until a shutdown signal arrives.

    Returns:
        Process exit code (0 on clean shutdown, 1 on startup failure)
    """
    logger.info("=== Order Book Recorder Starting ===")

    try:
        targets = validate_configuration(settings)
    except ValueError as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    engine = create_engine(settings)
    try:
        try:
            await check_connection(engine)
        except (SQLAlchemyError, OSError) as e:
            logger.critical(f"Database connection failed: {e}")
            return 1

        sink = OrderBookSink(engine)

        if settings.run_migrations:
            try:
                await sink.ensure_destinations(t.destination for t in targets)
            except SQLAlchemyError as e:
                logger.critical(f"Schema migration failed: {e}")
                return 1

        async with OKXAPIClient(
            base_url=settings.okx_base_url,
            timeout=settings.request_timeout,
            user_agent=settings.user_agent
        ) as client:
            scheduler = SnapshotScheduler(
                SnapshotTask(client, sink),
                targets,
                interval_seconds=settings.poll_interval_seconds,
                shutdown_grace_seconds=settings.shutdown_grace_seconds
            )

            loop = asyncio.get_running_loop()
            installed = install_signal_handlers(loop, scheduler.request_stop)

            await scheduler.start()
            logger.info("=== Started Successfully ===")
            try:
                await scheduler.wait_for_stop_request()
            finally:
                logger.info("=== Shutting Down ===")
                await scheduler.stop()
                for sig in installed:
                    loop.remove_signal_handler(sig)
    finally:
        await engine.dispose()

    logger.info("=== Shutdown Complete ===")
    return 0


def main() -> int:
    try:
        settings = load_settings()
    except ValidationError as e:
        setup_logging()
        logger.critical(f"Invalid configuration: {e}")
        return 1

    setup_logging(settings.log_level)

    try:
        return asyncio.run(run(settings))
    except KeyboardInterrupt:
        # Platforms without loop signal handlers end up here
        logger.info("Interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
