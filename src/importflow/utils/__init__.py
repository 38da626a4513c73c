"""Utility functions for importflow."""

from importflow.utils.date_parser import parse_date, utc_now
from importflow.utils.amount_parser import parse_amount
from importflow.utils.storage_keys import build_storage_key, parse_storage_key

__all__ = ["parse_date", "utc_now", "parse_amount", "build_storage_key", "parse_storage_key"]
