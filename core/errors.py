"""
Pipeline Errors

Hard errors that end one instrument's cycle. Each carries a `kind` so callers
and tests can tell failure modes apart without parsing messages.

    FetchError    - the provider round trip failed (OKXAPIClient)
    ExtractError  - the snapshot could not be turned into levels (extract_levels)
    PersistError  - the batch could not be written (OrderBookSink)

Per-level problems (incomplete entry, bad price or size) are not errors: the
extractor logs them and skips the level.
"""

from enum import Enum
from typing import Optional


class FetchErrorKind(str, Enum):
    TRANSPORT_OR_API = "transport_or_api"
    API_ERROR = "api_error"
    NO_DATA = "no_data"


class ExtractErrorKind(str, Enum):
    BAD_TIMESTAMP = "bad_timestamp"
    NO_VALID_LEVELS = "no_valid_levels"


class PersistErrorKind(str, Enum):
    WRITE_FAILED = "write_failed"


class RecorderError(Exception):
    """Base class for all pipeline errors"""


class FetchError(RecorderError):
    """
    Provider request failed.

    Attributes:
        kind: TRANSPORT_OR_API (bad HTTP status, network failure, unreadable body),
              API_ERROR (code != "0"), NO_DATA (empty result set)
        instrument_id: Instrument that was requested
        status: HTTP status code, if a response was received
        body: Response body for diagnostics, if any
        code: Provider error code (API_ERROR only)
        msg: Provider error message (API_ERROR only)
    """

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        instrument_id: Optional[str] = None,
        status: Optional[int] = None,
        body: Optional[str] = None,
        code: Optional[str] = None,
        msg: Optional[str] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.instrument_id = instrument_id
        self.status = status
        self.body = body
        self.code = code
        self.msg = msg


class ExtractError(RecorderError):
    """Snapshot could not be converted into price levels"""

    def __init__(self, kind: ExtractErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class PersistError(RecorderError):
    """
    Batch write failed. The underlying storage exception is chained as __cause__.
    """

    def __init__(self, message: str, destination: str, kind: PersistErrorKind = PersistErrorKind.WRITE_FAILED):
        super().__init__(message)
        self.kind = kind
        self.destination = destination
