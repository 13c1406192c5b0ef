"""
Order Book Sink

Writes the levels of one snapshot to a destination table.

Guarantees:
    - An empty batch is a no-op
    - A non-empty batch is one multi-row INSERT inside one transaction:
      either every level of the snapshot lands or none does
    - Every row of a batch gets the same persisted_at, taken at write time
    - Storage failures surface as PersistError; nothing is retried here

The destination is whatever table name the caller passes; it is never
interpreted here. Configuration gives every instrument its own table.
"""

from typing import Dict, Iterable, List, Protocol

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    insert,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from core.errors import PersistError
from core.logging import get_logger
from core.schemas import PriceLevel
from core.utils.time import current_utc_datetime


class LevelSink(Protocol):
    """Anything that can persist a batch of levels for one destination"""

    async def persist(self, destination: str, levels: List[PriceLevel]) -> int:
        ...


def build_levels_table(destination: str, metadata: MetaData) -> Table:
    """
    Define the table for one destination.

    Args:
        destination: Table name, optionally schema-qualified ("market.okx_prices_btc")
        metadata: MetaData the table is registered in

    Returns:
        Table with the order book level columns
    """
    schema, _, name = destination.rpartition(".")
    return Table(
        name,
        metadata,
        Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
        Column("snapshot_timestamp", DateTime(timezone=True), nullable=False),
        Column("price", Numeric(20, 10), nullable=False),
        Column("size", Numeric(20, 10), nullable=False),
        Column("side", String(4), nullable=False),
        Column("rank", Integer, nullable=False),
        Column("persisted_at", DateTime(timezone=True), nullable=False),
        Index(f"ix_{name}_snapshot_timestamp", "snapshot_timestamp"),
        schema=schema or None,
    )


class OrderBookSink:
    """
    SQLAlchemy-backed sink for order book levels.

    Attributes:
        engine: Shared AsyncEngine (its pool serves concurrent persist calls)
        metadata: MetaData holding one Table per destination seen so far

    Example:
        >>> sink = OrderBookSink(engine)
        >>> await sink.ensure_destinations(["okx_prices_btc"])
        >>> await sink.persist("okx_prices_btc", levels)
        10
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.metadata = MetaData()
        self._tables: Dict[str, Table] = {}
        self.logger = get_logger(__name__)

    def table_for(self, destination: str) -> Table:
        """Return the (cached) Table for a destination"""
        table = self._tables.get(destination)
        if table is None:
            table = build_levels_table(destination, self.metadata)
            self._tables[destination] = table
        return table

    async def ensure_destinations(self, destinations: Iterable[str]) -> None:
        """
        Create missing destination tables. Called once at startup, not per cycle.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the schema cannot be created
        """
        tables = [self.table_for(d) for d in dict.fromkeys(destinations)]
        if not tables:
            return

        for table in tables:
            self.logger.info(f"Migrating table {table.fullname}...")

        async with self.engine.begin() as conn:
            await conn.run_sync(self.metadata.create_all, tables=tables, checkfirst=True)

        self.logger.info(f"Schema ready for {len(tables)} destination table(s)")

    async def persist(self, destination: str, levels: List[PriceLevel]) -> int:
        """
        Write one snapshot's levels to a destination as a single transaction.

        Args:
            destination: Destination table name
            levels: Levels of one snapshot

        Returns:
            Number of rows written (0 for an empty batch)

        Raises:
            PersistError: If the write fails; the cause is chained
        """
        if not levels:
            self.logger.info(f"[{destination}] No order book levels to save")
            return 0

        table = self.table_for(destination)
        persisted_at = current_utc_datetime()
        rows = [
            {
                "snapshot_timestamp": level.snapshot_timestamp,
                "price": level.price,
                "size": level.size,
                "side": level.side,
                "rank": level.rank,
                "persisted_at": persisted_at,
            }
            for level in levels
        ]

        try:
            async with self.engine.begin() as conn:
                await conn.execute(insert(table), rows)
        except SQLAlchemyError as e:
            raise PersistError(
                f"[{destination}] Failed to save {len(rows)} order book levels: {e}",
                destination=destination
            ) from e

        self.logger.info(f"[{destination}] Saved {len(rows)} order book levels")
        return len(rows)
