"""
Unified Logging Configuration

This module sets up a centralized logging system for the recorder.
All modules should import and use a logger from this module instead of
using print() statements.

Usage:
    from core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Fetching order book")

Log Levels used by the recorder:
    DEBUG    - HTTP request/response details (e.g., "API Response: okx /api/v5/market/books | Status: 200")
    INFO     - Lifecycle and per-cycle results (e.g., "Saved 10 levels to okx_prices_btc")
    WARNING  - Skipped order book levels (malformed price/size entries)
    ERROR    - Failed cycles for one instrument (fetch, extract or persist errors)
    CRITICAL - Startup failures that stop the process (e.g., database unreachable)

Configuration:
    Log level is controlled by the LOG_LEVEL setting. app.main calls
    setup_logging() again once settings are loaded.
"""

import logging
import sys
from typing import Optional

LOGGER_NAME = "orderbook_recorder"


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include logger name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Recorder started")
        2024-01-01 12:00:00 [INFO] orderbook_recorder Recorder started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    return logger


# Default logger until app.main applies the configured level
logger = setup_logging()


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance namespaced under the application logger

    Example:
        # In exchanges/okx/api_client.py:
        logger = get_logger(__name__)  # "orderbook_recorder.exchanges.okx.api_client"
    """
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(exchange: str, endpoint: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Example:
        >>> log_api_request("okx", "/api/v5/market/books", {"instId": "BTC-USDT", "sz": 5})
        [DEBUG] API Request: okx /api/v5/market/books | Params: {'instId': 'BTC-USDT', 'sz': 5}
    """
    if params:
        logger.debug(f"API Request: {exchange} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {exchange} {endpoint}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("okx", "/api/v5/market/books", 200, 0.342)
        [DEBUG] API Response: okx /api/v5/market/books | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{time_str}")


logger.debug("Logging system initialized")
