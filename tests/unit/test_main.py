"""
Unit Tests for the Process Entry Point

These tests verify startup wiring without a real database or network:
- Invalid configuration and unreachable storage are fatal (exit code 1)
- A clean run migrates destinations, starts the scheduler and shuts down
  when a stop is requested

Run with:
    pytest tests/unit/test_main.py -v
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app import main as main_module
from core.config import Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


@pytest.fixture
def engine(monkeypatch):
    engine = MagicMock()
    engine.dispose = AsyncMock()
    monkeypatch.setattr(main_module, "create_engine", lambda settings: engine)
    return engine


class TestStartupFailures:
    """Tests for fatal startup paths"""

    @pytest.mark.asyncio
    async def test_invalid_configuration_exits_with_error(self, engine):
        code = await main_module.run(make_settings(instruments=""))

        assert code == 1
        engine.dispose.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreachable_database_exits_with_error(self, engine, monkeypatch):
        monkeypatch.setattr(
            main_module,
            "check_connection",
            AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("refused")))
        )

        code = await main_module.run(make_settings())

        assert code == 1
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_migration_exits_with_error(self, engine, monkeypatch):
        monkeypatch.setattr(main_module, "check_connection", AsyncMock())
        monkeypatch.setattr(
            main_module.OrderBookSink,
            "ensure_destinations",
            AsyncMock(side_effect=OperationalError("CREATE TABLE", {}, Exception("denied")))
        )

        code = await main_module.run(make_settings())

        assert code == 1
        engine.dispose.assert_awaited_once()


class TestCleanRun:
    """Tests for a full start/stop cycle with fakes"""

    @pytest.mark.asyncio
    async def test_runs_until_stop_requested(self, engine, monkeypatch):
        monkeypatch.setattr(main_module, "check_connection", AsyncMock())
        ensure = AsyncMock()
        monkeypatch.setattr(main_module.OrderBookSink, "ensure_destinations", ensure)

        created = []

        class StubScheduler:
            def __init__(self, task, targets, interval_seconds, shutdown_grace_seconds):
                self.targets = targets
                self.interval_seconds = interval_seconds
                self.started = False
                self.stopped = False
                self._stop = asyncio.Event()
                created.append(self)

            async def start(self):
                self.started = True
                # Simulate a shutdown signal arriving right after startup
                asyncio.get_running_loop().call_soon(self.request_stop)

            def request_stop(self):
                self._stop.set()

            async def wait_for_stop_request(self):
                await self._stop.wait()

            async def stop(self):
                self.stopped = True

        monkeypatch.setattr(main_module, "SnapshotScheduler", StubScheduler)

        code = await asyncio.wait_for(
            main_module.run(make_settings(poll_interval_seconds=30)),
            timeout=5
        )

        assert code == 0
        scheduler = created[0]
        assert scheduler.started and scheduler.stopped
        assert scheduler.interval_seconds == 30
        assert len(scheduler.targets) == 4
        destinations = list(ensure.await_args.args[0])
        assert destinations == ["okx_prices_btc", "okx_prices_eth", "okx_prices_sol", "okx_prices_ton"]
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_migrations_can_be_disabled(self, engine, monkeypatch):
        monkeypatch.setattr(main_module, "check_connection", AsyncMock())
        ensure = AsyncMock()
        monkeypatch.setattr(main_module.OrderBookSink, "ensure_destinations", ensure)

        class ImmediateStopScheduler:
            def __init__(self, *args, **kwargs):
                pass

            async def start(self):
                pass

            def request_stop(self):
                pass

            async def wait_for_stop_request(self):
                return None

            async def stop(self):
                pass

        monkeypatch.setattr(main_module, "SnapshotScheduler", ImmediateStopScheduler)

        code = await main_module.run(make_settings(run_migrations=False))

        assert code == 0
        ensure.assert_not_called()
