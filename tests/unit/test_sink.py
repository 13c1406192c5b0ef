"""
Unit Tests for the Order Book Sink

These tests verify that OrderBookSink:
- Treats an empty batch as a no-op
- Writes a batch as one INSERT inside one transaction
- Stamps every row with the same persisted_at
- Wraps storage failures in PersistError
- Creates destination tables on demand at startup

Run with:
    pytest tests/unit/test_sink.py -v
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import MetaData
from sqlalchemy.exc import OperationalError

from core.errors import PersistError, PersistErrorKind
from core.schemas import PriceLevel
from storage.sink import OrderBookSink, build_levels_table


SNAPSHOT_TS = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


class FakeEngine:
    """Minimal AsyncEngine stand-in: begin() yields one mocked connection"""

    def __init__(self):
        self.conn = MagicMock()
        self.conn.execute = AsyncMock()
        self.conn.run_sync = AsyncMock()
        self.transactions = 0

    @asynccontextmanager
    async def begin(self):
        self.transactions += 1
        yield self.conn


def make_levels():
    return [
        PriceLevel(snapshot_timestamp=SNAPSHOT_TS, side="bid", rank=1, price=Decimal("100.5"), size=Decimal("2")),
        PriceLevel(snapshot_timestamp=SNAPSHOT_TS, side="bid", rank=2, price=Decimal("100.4"), size=Decimal("1")),
        PriceLevel(snapshot_timestamp=SNAPSHOT_TS, side="ask", rank=1, price=Decimal("100.6"), size=Decimal("3")),
    ]


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def sink(engine):
    return OrderBookSink(engine)


# ============================================
# persist()
# ============================================

class TestPersist:
    """Tests for batch writes"""

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self, sink, engine):
        """Verify nothing touches the database for an empty batch"""
        written = await sink.persist("okx_prices_btc", [])

        assert written == 0
        assert engine.transactions == 0
        engine.conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_batch_is_one_insert_in_one_transaction(self, sink, engine):
        written = await sink.persist("okx_prices_btc", make_levels())

        assert written == 3
        assert engine.transactions == 1
        assert engine.conn.execute.await_count == 1

        statement, rows = engine.conn.execute.await_args.args
        assert statement.table.name == "okx_prices_btc"
        assert len(rows) == 3

    @pytest.mark.asyncio
    async def test_rows_carry_level_fields(self, sink, engine):
        await sink.persist("okx_prices_btc", make_levels())

        _, rows = engine.conn.execute.await_args.args
        first = rows[0]
        assert first["snapshot_timestamp"] == SNAPSHOT_TS
        assert first["side"] == "bid"
        assert first["rank"] == 1
        assert first["price"] == Decimal("100.5")
        assert first["size"] == Decimal("2")
        assert [(r["side"], r["rank"]) for r in rows] == [("bid", 1), ("bid", 2), ("ask", 1)]

    @pytest.mark.asyncio
    async def test_rows_share_persisted_at_independent_of_snapshot(self, sink, engine):
        """Verify persisted_at is one write-time stamp for the whole batch"""
        await sink.persist("okx_prices_btc", make_levels())

        _, rows = engine.conn.execute.await_args.args
        stamps = {r["persisted_at"] for r in rows}
        assert len(stamps) == 1
        persisted_at = stamps.pop()
        assert persisted_at.tzinfo is not None
        assert persisted_at > SNAPSHOT_TS

    @pytest.mark.asyncio
    async def test_storage_failure_raises_persist_error(self, sink, engine):
        """Verify SQLAlchemy errors surface as PersistError with the cause chained"""
        cause = OperationalError("INSERT", {}, Exception("connection reset"))
        engine.conn.execute.side_effect = cause

        with pytest.raises(PersistError) as exc_info:
            await sink.persist("okx_prices_eth", make_levels())

        error = exc_info.value
        assert error.kind == PersistErrorKind.WRITE_FAILED
        assert error.destination == "okx_prices_eth"
        assert error.__cause__ is cause

    @pytest.mark.asyncio
    async def test_destinations_resolve_to_distinct_tables(self, sink, engine):
        await sink.persist("okx_prices_btc", make_levels())
        await sink.persist("okx_prices_eth", make_levels())

        tables = [c.args[0].table.name for c in engine.conn.execute.await_args_list]
        assert tables == ["okx_prices_btc", "okx_prices_eth"]

    def test_table_is_cached_per_destination(self, sink):
        assert sink.table_for("okx_prices_btc") is sink.table_for("okx_prices_btc")


# ============================================
# ensure_destinations()
# ============================================

class TestEnsureDestinations:
    """Tests for startup table creation"""

    @pytest.mark.asyncio
    async def test_creates_each_destination_once(self, sink, engine):
        await sink.ensure_destinations(["okx_prices_btc", "okx_prices_eth", "okx_prices_btc"])

        assert engine.transactions == 1
        engine.conn.run_sync.assert_awaited_once()
        call = engine.conn.run_sync.await_args
        assert call.args[0] == sink.metadata.create_all
        assert [t.name for t in call.kwargs["tables"]] == ["okx_prices_btc", "okx_prices_eth"]
        assert call.kwargs["checkfirst"] is True

    @pytest.mark.asyncio
    async def test_no_destinations_is_noop(self, sink, engine):
        await sink.ensure_destinations([])

        assert engine.transactions == 0


# ============================================
# Table Definition
# ============================================

class TestTableDefinition:
    """Tests for the destination table layout"""

    def test_columns(self):
        table = build_levels_table("okx_prices_btc", MetaData())

        assert [c.name for c in table.columns] == [
            "id", "snapshot_timestamp", "price", "size", "side", "rank", "persisted_at"
        ]
        assert table.c.price.type.precision == 20
        assert table.c.price.type.scale == 10
        assert table.c.snapshot_timestamp.type.timezone is True

    def test_schema_qualified_destination(self):
        table = build_levels_table("market.okx_prices", MetaData())

        assert table.name == "okx_prices"
        assert table.schema == "market"
        assert table.fullname == "market.okx_prices"
