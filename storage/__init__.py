"""
Storage Package

Handles persistence of order book levels.

Modules:
- database: Async SQLAlchemy engine creation and startup connectivity check
- sink: OrderBookSink, writes one snapshot's levels as a single transaction

Each destination is a table with the columns
(id, snapshot_timestamp, price, size, side, rank, persisted_at).
"""

from storage.database import check_connection, create_engine
from storage.sink import LevelSink, OrderBookSink

__all__ = ["LevelSink", "OrderBookSink", "check_connection", "create_engine"]
