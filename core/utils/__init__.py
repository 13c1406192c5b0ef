"""
Core Utilities Package

Modules:
    - time: Timestamp conversion utilities
"""

from core.utils.time import current_utc_datetime, ms_to_utc_datetime

__all__ = ["current_utc_datetime", "ms_to_utc_datetime"]
