"""
Order Book Data Schemas

This module defines the Pydantic models that flow through the snapshot pipeline.

Models:
    - InstrumentTarget: Static configuration for one tracked instrument
    - RawSnapshot: The provider's order book for one instrument at one instant
    - OrderBookResponse: The provider's response envelope ({code, msg, data})
    - PriceLevel: One normalized row to persist

Flow:
    OKXAPIClient -> RawSnapshot -> extract_levels() -> List[PriceLevel] -> OrderBookSink

RawSnapshot keeps level entries exactly as the provider sent them. Validation of
individual price/size values happens in the extractor, so one malformed level
never rejects the whole snapshot.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# schema-qualified names are allowed ("market.okx_prices_btc")
DESTINATION_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

Side = Literal["bid", "ask"]


# ============================================
# Instrument Target (configuration)
# ============================================

class InstrumentTarget(BaseModel):
    """
    One instrument to sample and where its levels go.

    Attributes:
        instrument_id: Provider-side instrument identifier (e.g., "BTC-USDT")
        destination: Table that receives the levels (e.g., "okx_prices_btc")
        depth: Number of levels requested and kept per side

    Example:
        >>> InstrumentTarget(instrument_id="BTC-USDT", destination="okx_prices_btc", depth=5)

    Notes:
        - Targets are frozen: they are built once at startup and never change
        - Each target owns its destination table; validate_configuration
          rejects a table shared by two targets
    """

    instrument_id: str = Field(
        ...,
        min_length=1,
        description="Provider instrument identifier",
        examples=["BTC-USDT", "ETH-USDT"]
    )

    destination: str = Field(
        ...,
        min_length=1,
        description="Destination table name",
        examples=["okx_prices_btc"]
    )

    depth: int = Field(
        ...,
        gt=0,
        description="Levels per side"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("instrument_id")
    @classmethod
    def validate_instrument_id(cls, v: str) -> str:
        """Strip whitespace and reject blank identifiers"""
        v = v.strip()
        if not v:
            raise ValueError("instrument_id must not be blank")
        return v

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        """Destination must be a plain SQL identifier"""
        v = v.strip()
        if not DESTINATION_PATTERN.match(v):
            raise ValueError(f"Invalid destination name: '{v}'")
        return v


# ============================================
# Provider Payloads
# ============================================

class RawSnapshot(BaseModel):
    """
    Order book snapshot as returned by the provider.

    Attributes:
        bids: Bid entries, best (highest) price first. Each entry is
              [price, size, ...] with prices and sizes as strings
        asks: Ask entries, best (lowest) price first
        ts: Snapshot time in epoch milliseconds, as a numeric string

    OKX Response Format (one element of "data"):
        {
          "asks": [["41006.8", "0.60038921", "0", "1"]],
          "bids": [["41006.3", "0.30178218", "0", "2"]],
          "ts": "1629966436396"
        }

    Notes:
        - The provider sorts both sides; entries are never re-sorted here
        - Entries stay untyped: the extractor validates them one by one
    """

    bids: List[List[Any]] = Field(default_factory=list)
    asks: List[List[Any]] = Field(default_factory=list)
    ts: str = ""

    @field_validator("bids", "asks", mode="before")
    @classmethod
    def coerce_null_side(cls, v: Any) -> Any:
        """A null side is an empty side; the other side is still usable"""
        if v is None:
            return []
        return v

    @field_validator("ts", mode="before")
    @classmethod
    def coerce_ts(cls, v: Any) -> Any:
        """
        Accept numeric timestamps as well as numeric strings.

        A null timestamp becomes "" and is rejected by the extractor.
        """
        if v is None:
            return ""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class OrderBookResponse(BaseModel):
    """
    Response envelope of GET /api/v5/market/books.

    code "0" means success; any other code is an application-level error
    described by msg.
    """

    code: str
    msg: str = ""
    data: List[RawSnapshot] = Field(default_factory=list)

    @field_validator("code", mode="before")
    @classmethod
    def coerce_code(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


# ============================================
# Price Level (persisted row)
# ============================================

class PriceLevel(BaseModel):
    """
    One price level of one snapshot, ready to be persisted.

    Attributes:
        snapshot_timestamp: Snapshot time in UTC, shared by every level of a snapshot
        side: "bid" or "ask"
        rank: 1-based position of the entry in the provider's list for its side.
              Skipped entries keep their slot, so ranks can have gaps
        price: Level price (positive)
        size: Quantity resting at this price (positive)

    Notes:
        - The instrument is implied by the destination the level is written to
        - persisted_at is assigned by the sink when the batch is written
    """

    snapshot_timestamp: datetime
    side: Side
    rank: int = Field(..., ge=1)
    price: Decimal = Field(..., gt=0)
    size: Decimal = Field(..., gt=0)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "snapshot_timestamp": "2023-11-14T22:13:20Z",
                "side": "bid",
                "rank": 1,
                "price": "100.5",
                "size": "2"
            }
        }
    )
