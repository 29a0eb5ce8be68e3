"""Shared utility helpers."""

from skm.utils.io import (
    write_csv_atomically,
    write_json_atomically,
    write_parquet_atomically,
    write_text_atomically,
)
from skm.utils.time_utils import now_utc, utc_from_timestamp

__all__ = [
    "write_csv_atomically",
    "write_json_atomically",
    "write_parquet_atomically",
    "write_text_atomically",
    "now_utc",
    "utc_from_timestamp",
]
