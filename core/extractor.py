"""
Snapshot Extractor

Turns a RawSnapshot into a bounded list of PriceLevel rows.

Rules:
    - The snapshot timestamp is parsed once; a bad timestamp rejects the snapshot
    - Bids first, then asks; each side is cut to the first `depth` entries
    - An entry needs a price and a size, both finite positive decimals.
      Anything else is logged and skipped, the rest of the side is still used
    - Rank is the 1-based index in the provider's list, so a skipped entry
      leaves a gap instead of shifting later ranks down
    - No surviving levels on either side is an error, not an empty result

extract_levels() is a pure function of its input apart from logging.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence

from core.errors import ExtractError, ExtractErrorKind
from core.logging import get_logger
from core.schemas import PriceLevel, RawSnapshot, Side
from core.utils.time import ms_to_utc_datetime

logger = get_logger(__name__)


def _parse_positive_decimal(value: Any) -> Optional[Decimal]:
    """Return value as a finite positive Decimal, or None"""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number <= 0:
        return None
    return number


def _extract_side(
    entries: Sequence[Sequence[Any]],
    side: Side,
    depth: int,
    snapshot_timestamp: datetime
) -> List[PriceLevel]:
    levels = []

    for index, entry in enumerate(entries[:depth]):
        rank = index + 1

        # OKX entries are [price, size, deprecated, order_count]
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            logger.warning(f"Skipped {side} at level {rank}: incomplete entry {entry!r}")
            continue

        price = _parse_positive_decimal(entry[0])
        if price is None:
            logger.warning(f"Skipped {side} at level {rank}: invalid price {entry[0]!r}")
            continue

        size = _parse_positive_decimal(entry[1])
        if size is None:
            logger.warning(f"Skipped {side} at level {rank}: invalid size {entry[1]!r}")
            continue

        levels.append(
            PriceLevel(
                snapshot_timestamp=snapshot_timestamp,
                side=side,
                rank=rank,
                price=price,
                size=size
            )
        )

    return levels


def extract_levels(snapshot: RawSnapshot, depth: int) -> List[PriceLevel]:
    """
    Extract up to `depth` levels per side from a snapshot.

    Args:
        snapshot: Provider snapshot
        depth: Maximum levels kept per side (positive)

    Returns:
        Bid levels (rank order) followed by ask levels (rank order)

    Raises:
        ValueError: If depth is not positive
        ExtractError(BAD_TIMESTAMP): If snapshot.ts is not an epoch-ms integer
        ExtractError(NO_VALID_LEVELS): If no level survives validation

    Example:
        >>> snapshot = RawSnapshot(
        ...     bids=[["100.5", "2"], ["100.4", "1"]],
        ...     asks=[["100.6", "3"], ["bad", "1"]],
        ...     ts="1700000000000"
        ... )
        >>> [(l.side, l.rank, l.price) for l in extract_levels(snapshot, 2)]
        [('bid', 1, Decimal('100.5')), ('bid', 2, Decimal('100.4')), ('ask', 1, Decimal('100.6'))]
    """
    if depth <= 0:
        raise ValueError(f"depth must be positive, got {depth}")

    try:
        snapshot_timestamp = ms_to_utc_datetime(snapshot.ts)
    except ValueError as e:
        raise ExtractError(
            ExtractErrorKind.BAD_TIMESTAMP,
            f"Cannot parse snapshot timestamp '{snapshot.ts}': {e}"
        )

    levels = _extract_side(snapshot.bids, "bid", depth, snapshot_timestamp)
    levels += _extract_side(snapshot.asks, "ask", depth, snapshot_timestamp)

    if not levels:
        raise ExtractError(
            ExtractErrorKind.NO_VALID_LEVELS,
            f"No valid order book levels (depth={depth}) in snapshot at {snapshot.ts}"
        )

    logger.info(f"Extracted {len(levels)} order book levels (depth={depth})")
    return levels
