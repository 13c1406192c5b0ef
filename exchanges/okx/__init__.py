"""
OKX Exchange Connector

Only the public order book endpoint is used by the recorder.
"""

from exchanges.okx.api_client import OKXAPIClient

__all__ = ["OKXAPIClient"]
