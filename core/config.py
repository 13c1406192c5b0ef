"""
Configuration Management Module

This module handles loading and validating the recorder's configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Parses the instrument list into InstrumentTarget objects
- Builds the database URL from either DATABASE_URL or the DB_* variables
- Validates everything once, before the scheduler starts

Usage:
    from core.config import load_settings, validate_configuration

    settings = load_settings()
    validate_configuration(settings)
    for target in settings.targets:
        print(target.instrument_id, target.destination, target.depth)

Settings are constructed once by app.main and passed down explicitly;
there is no module-level settings instance.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.logging import get_logger
from core.schemas import InstrumentTarget

logger = get_logger(__name__)


class Settings(BaseSettings):
    """
    Recorder Settings

    Attributes:
        okx_base_url: Base URL of the OKX REST API
        request_timeout: Total timeout of one order book request in seconds
        user_agent: User-Agent header sent to the provider
        instruments: Comma-separated "instrument_id:destination[:depth]" entries
        depth: Default levels per side for entries without an explicit depth
        poll_interval_seconds: Period of the snapshot timer
        shutdown_grace_seconds: How long shutdown waits for in-flight cycles
        database_url: SQLAlchemy URL (used when db_host is empty)
        db_host, db_port, db_user, db_password, db_name, db_sslmode: Discrete
            connection settings, take precedence over database_url when db_host is set
        run_migrations: Create missing destination tables at startup
        log_level: Logging level
    """

    # ============================================
    # Provider Configuration
    # ============================================

    okx_base_url: str = Field(
        default="https://www.okx.com",
        description="OKX REST API base URL"
    )

    request_timeout: float = Field(
        default=10.0,
        description="HTTP request timeout in seconds"
    )

    user_agent: str = Field(
        default="orderbook-recorder/1.0",
        description="User-Agent header for provider requests"
    )

    # ============================================
    # Instruments & Scheduling
    # ============================================

    instruments: str = Field(
        default=(
            "BTC-USDT:okx_prices_btc,"
            "ETH-USDT:okx_prices_eth,"
            "SOL-USDT:okx_prices_sol,"
            "TON-USDT:okx_prices_ton"
        ),
        description="Comma-separated instrument_id:destination[:depth] entries"
    )

    depth: int = Field(
        default=5,
        description="Default number of levels per side"
    )

    poll_interval_seconds: float = Field(
        default=60.0,
        description="Seconds between snapshot cycles"
    )

    shutdown_grace_seconds: float = Field(
        default=10.0,
        description="Seconds to wait for in-flight cycles on shutdown (0 = cancel immediately)"
    )

    # ============================================
    # Database Configuration
    # ============================================

    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/orderbook",
        description="SQLAlchemy database URL"
    )

    db_host: str = Field(default="", description="Database host (overrides database_url when set)")
    db_port: int = Field(default=5432, description="Database port")
    db_user: str = Field(default="", description="Database user")
    db_password: str = Field(default="", description="Database password")
    db_name: str = Field(default="", description="Database name")
    db_sslmode: str = Field(default="", description="SSL mode passed to the driver (e.g., 'require')")

    run_migrations: bool = Field(
        default=True,
        description="Create destination tables at startup"
    )

    # ============================================
    # Application Configuration
    # ============================================

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    # ============================================
    # Derived Values
    # ============================================

    @property
    def targets(self) -> List[InstrumentTarget]:
        """
        Parse the instruments string into InstrumentTarget objects.

        Returns:
            List of targets in configuration order

        Raises:
            ValueError: If an entry is malformed

        Example:
            >>> Settings(instruments="BTC-USDT:okx_prices_btc:10,ETH-USDT:okx_prices_eth").targets
            [InstrumentTarget(instrument_id='BTC-USDT', destination='okx_prices_btc', depth=10),
             InstrumentTarget(instrument_id='ETH-USDT', destination='okx_prices_eth', depth=5)]
        """
        targets = []
        for entry in self.instruments.split(","):
            entry = entry.strip()
            if not entry:
                continue

            parts = [p.strip() for p in entry.split(":")]
            if len(parts) not in (2, 3):
                raise ValueError(
                    f"Invalid instrument entry '{entry}'. "
                    f"Expected instrument_id:destination[:depth]"
                )

            depth = self.depth
            if len(parts) == 3:
                try:
                    depth = int(parts[2])
                except ValueError:
                    raise ValueError(f"Invalid depth in instrument entry '{entry}'")

            targets.append(
                InstrumentTarget(instrument_id=parts[0], destination=parts[1], depth=depth)
            )
        return targets

    @property
    def uses_discrete_db_settings(self) -> bool:
        """True when the DB_* variables should be used instead of database_url"""
        return bool(self.db_host)


def load_settings(**overrides) -> Settings:
    """
    Build Settings from the environment and .env file.

    Args:
        **overrides: Explicit values that win over the environment (used by tests)
    """
    return Settings(**overrides)


# ============================================
# Configuration Validation
# ============================================

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def validate_configuration(settings: Settings) -> List[InstrumentTarget]:
    """
    Validate settings on startup.

    Args:
        settings: Settings to validate

    Returns:
        The parsed instrument targets

    Raises:
        ValueError: If configuration is missing or invalid
    """
    targets = settings.targets

    if not targets:
        raise ValueError("INSTRUMENTS must contain at least one instrument")

    # Rows carry no instrument column, so each table belongs to exactly one target
    owners = {}
    for target in targets:
        owner = owners.get(target.destination)
        if owner is not None:
            if owner == target.instrument_id:
                raise ValueError(
                    f"Duplicate instrument entry: {target.instrument_id} -> {target.destination}"
                )
            raise ValueError(
                f"Destination '{target.destination}' is shared by "
                f"{owner} and {target.instrument_id}. Each instrument needs its own table"
            )
        owners[target.destination] = target.instrument_id

    if settings.depth <= 0:
        raise ValueError(f"Invalid DEPTH: {settings.depth}. Must be positive")

    if settings.poll_interval_seconds <= 0:
        raise ValueError(
            f"Invalid POLL_INTERVAL_SECONDS: {settings.poll_interval_seconds}. Must be positive"
        )

    if settings.request_timeout <= 0:
        raise ValueError(f"Invalid REQUEST_TIMEOUT: {settings.request_timeout}. Must be positive")

    if settings.shutdown_grace_seconds < 0:
        raise ValueError(
            f"Invalid SHUTDOWN_GRACE_SECONDS: {settings.shutdown_grace_seconds}. Must not be negative"
        )

    if settings.uses_discrete_db_settings:
        missing = [
            name for name in ("db_user", "db_password", "db_name")
            if not getattr(settings, name)
        ]
        if missing:
            raise ValueError(
                f"DB_HOST is set but {', '.join(n.upper() for n in missing)} missing. "
                f"Check the .env file or environment"
            )
    elif not settings.database_url:
        raise ValueError("Either DATABASE_URL or DB_HOST must be set")

    if settings.log_level.upper() not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(
        "Tracking instruments: "
        + ", ".join(f"{t.instrument_id}->{t.destination} (depth={t.depth})" for t in targets)
    )
    logger.info(f"OKX API: {settings.okx_base_url}")
    logger.info(f"Poll interval: {settings.poll_interval_seconds}s")
    logger.info(f"Log level: {settings.log_level.upper()}")

    return targets
