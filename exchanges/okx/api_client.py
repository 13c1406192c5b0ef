"""
OKX REST API Client

This module provides an async HTTP client for the OKX order book endpoint.
It handles:
- One GET request per snapshot with a bounded timeout
- Mapping HTTP, transport and application errors to FetchError
- Parsing the response envelope into a RawSnapshot

API Documentation:
    https://www.okx.com/docs-v5/en/#order-book-trading-market-data-get-order-book

Retries:
    None. A failed request skips the current cycle for that instrument;
    the scheduler tries again on the next tick.

Usage:
    async with OKXAPIClient() as client:
        snapshot = await client.fetch_order_book("BTC-USDT", depth=5)
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from core.errors import FetchError, FetchErrorKind
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import OrderBookResponse, RawSnapshot


class OKXAPIClient:
    """
    Async HTTP client for the OKX public market data API

    Attributes:
        base_url: OKX API base URL
        timeout: Total request timeout in seconds
        user_agent: User-Agent header value
        session: aiohttp ClientSession, shared by concurrent requests

    Example:
        >>> async with OKXAPIClient(timeout=10) as client:
        ...     snapshot = await client.fetch_order_book("ETH-USDT", 5)
        ...     print(len(snapshot.bids), len(snapshot.asks))

    Notes:
        - Uses context manager for automatic session cleanup
        - Stateless per request, safe to call concurrently for different instruments
        - No API key needed for the public order book endpoint
    """

    BASE_URL = "https://www.okx.com"
    BOOKS_ENDPOINT = "/api/v5/market/books"
    EXCHANGE = "okx"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        user_agent: str = "orderbook-recorder/1.0"
    ):
        """
        Initialize the OKX API client.

        Args:
            base_url: Override for the API base URL (defaults to BASE_URL)
            timeout: Total request timeout in seconds
            user_agent: User-Agent header sent with every request
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent}
        )
        self.logger.debug("OKXAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("OKXAPIClient session closed")

    # ============================================
    # HTTP Request Handler
    # ============================================

    async def _get(self, path: str, params: Dict[str, Any], instrument_id: str) -> Any:
        """
        Make one GET request and return the decoded JSON body.

        Args:
            path: API endpoint path (e.g., "/api/v5/market/books")
            params: Query parameters
            instrument_id: Instrument being fetched (for error context)

        Returns:
            Decoded JSON response

        Raises:
            RuntimeError: If the session was not opened with 'async with'
            FetchError(TRANSPORT_OR_API): On non-200 status, network error,
                timeout or a body that is not valid JSON
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        log_api_request(self.EXCHANGE, path, params)
        started = time.monotonic()

        try:
            async with self.session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                text = await resp.text()
                log_api_response(self.EXCHANGE, path, resp.status, time.monotonic() - started)

                if resp.status != 200:
                    raise FetchError(
                        FetchErrorKind.TRANSPORT_OR_API,
                        f"HTTP {resp.status} on {path} for {instrument_id}: {text}",
                        instrument_id=instrument_id,
                        status=resp.status,
                        body=text
                    )

                try:
                    return json.loads(text)
                except ValueError as e:
                    raise FetchError(
                        FetchErrorKind.TRANSPORT_OR_API,
                        f"Invalid JSON on {path} for {instrument_id}: {e}",
                        instrument_id=instrument_id,
                        status=resp.status,
                        body=text
                    )

        except asyncio.TimeoutError:
            raise FetchError(
                FetchErrorKind.TRANSPORT_OR_API,
                f"Timeout after {self.timeout}s on {path} for {instrument_id}",
                instrument_id=instrument_id
            )

        except aiohttp.ClientError as e:
            raise FetchError(
                FetchErrorKind.TRANSPORT_OR_API,
                f"Request failed on {path} for {instrument_id}: {e}",
                instrument_id=instrument_id
            )

    # ============================================
    # API Methods
    # ============================================

    async def fetch_order_book(self, instrument_id: str, depth: int) -> RawSnapshot:
        """
        Fetch the current order book snapshot for one instrument.

        Args:
            instrument_id: OKX instrument ID (e.g., "BTC-USDT")
            depth: Levels per side to request (OKX "sz" parameter)

        Returns:
            RawSnapshot with bids/asks best-first and the snapshot timestamp

        Raises:
            ValueError: If instrument_id is empty or depth is not positive
            FetchError: TRANSPORT_OR_API, API_ERROR or NO_DATA

        OKX Endpoint:
            GET /api/v5/market/books?instId=BTC-USDT&sz=5

        Response Format:
            {
              "code": "0",
              "msg": "",
              "data": [
                {
                  "asks": [["41006.8", "0.60038921", "0", "1"]],
                  "bids": [["41006.3", "0.30178218", "0", "2"]],
                  "ts": "1629966436396"
                }
              ]
            }
        """
        if not instrument_id:
            raise ValueError("instrument_id must not be empty")
        if depth <= 0:
            raise ValueError(f"depth must be positive, got {depth}")

        params = {"instId": instrument_id, "sz": depth}
        self.logger.debug(f"Fetching order book: {instrument_id} (sz={depth})")

        payload = await self._get(self.BOOKS_ENDPOINT, params, instrument_id)

        try:
            response = OrderBookResponse.model_validate(payload)
        except ValidationError as e:
            raise FetchError(
                FetchErrorKind.TRANSPORT_OR_API,
                f"Unexpected response shape for {instrument_id}: {e}",
                instrument_id=instrument_id,
                body=str(payload)[:500]
            )

        if response.code != "0":
            raise FetchError(
                FetchErrorKind.API_ERROR,
                f"OKX API error for {instrument_id}: code {response.code}, message: {response.msg}",
                instrument_id=instrument_id,
                status=200,
                code=response.code,
                msg=response.msg
            )

        if not response.data:
            raise FetchError(
                FetchErrorKind.NO_DATA,
                f"OKX API returned no order book data for {instrument_id}",
                instrument_id=instrument_id,
                status=200
            )

        return response.data[0]
