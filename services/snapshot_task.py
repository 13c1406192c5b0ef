"""
Per-Instrument Snapshot Task

Runs one fetch -> extract -> persist cycle for one instrument.

    Fetching -> Extracting -> Persisting -> Done
        |            |            |
        +------------+------------+--> Done (error logged, not raised)

Every failure ends the cycle for this instrument only. Nothing is retried;
the next scheduler tick starts a fresh cycle.
"""

from typing import Protocol

from core.errors import ExtractError, FetchError, PersistError
from core.extractor import extract_levels
from core.logging import get_logger
from core.schemas import InstrumentTarget, RawSnapshot
from storage.sink import LevelSink


class SnapshotSource(Protocol):
    """Anything that can fetch a raw order book snapshot (OKXAPIClient)"""

    async def fetch_order_book(self, instrument_id: str, depth: int) -> RawSnapshot:
        ...


class SnapshotTask:
    """
    Fetch, extract and persist one instrument's order book.

    Attributes:
        source: Quote source client
        sink: Level sink

    Example:
        >>> task = SnapshotTask(client, sink)
        >>> await task.run(InstrumentTarget(instrument_id="BTC-USDT", destination="okx_prices_btc", depth=5))
    """

    def __init__(self, source: SnapshotSource, sink: LevelSink):
        self.source = source
        self.sink = sink
        self._logger = get_logger(__name__)

    async def run(self, target: InstrumentTarget) -> None:
        """
        Run one cycle for a target. Never raises; errors are logged.
        """
        instrument = target.instrument_id
        self._logger.debug(f"[{instrument}] Starting collection...")

        try:
            snapshot = await self.source.fetch_order_book(instrument, target.depth)
        except FetchError as e:
            self._logger.error(f"[{instrument}] Failed to fetch order book ({e.kind.value}): {e}")
            return
        except Exception:
            self._logger.exception(f"[{instrument}] Unexpected error while fetching order book")
            return

        try:
            levels = extract_levels(snapshot, target.depth)
        except ExtractError as e:
            self._logger.error(f"[{instrument}] Failed to process order book ({e.kind.value}): {e}")
            return
        except Exception:
            self._logger.exception(f"[{instrument}] Unexpected error while processing order book")
            return

        try:
            await self.sink.persist(target.destination, levels)
        except PersistError as e:
            self._logger.error(f"[{instrument} -> {target.destination}] Failed to save levels: {e}")
        except Exception:
            self._logger.exception(f"[{instrument} -> {target.destination}] Unexpected error while saving levels")
