"""Freshness-gated portfolio snapshot cache at ``<root>/.skm/status.json``.

There is no cross-process lock: concurrent scans of the same root race, and
the last writer wins because each save replaces the file wholesale.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from skm.errors import FilesystemError, SerializationError
from skm.meta.store import STATE_DIR_NAME
from skm.models import PortfolioSnapshot, format_timestamp
from skm.utils.io import write_json_atomically
from skm.utils.time_utils import now_utc

LOGGER = logging.getLogger(__name__)

STATUS_CACHE_FILE = "status.json"
DEFAULT_FRESHNESS = timedelta(minutes=5)


@dataclass(frozen=True, slots=True)
class CachedSnapshot:
    """A snapshot plus the time it was cached."""

    last_updated: datetime
    payload: PortfolioSnapshot

    def to_payload(self) -> dict[str, Any]:
        return {
            "last_updated": format_timestamp(self.last_updated),
            "data": self.payload.to_payload(),
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "CachedSnapshot":
        if not isinstance(payload, dict):
            raise SerializationError("status cache must be a JSON object")
        for key in ("last_updated", "data"):
            if key not in payload:
                raise SerializationError(f"status cache is missing field '{key}'")
        raw_ts = payload["last_updated"]
        if not isinstance(raw_ts, str):
            raise SerializationError("status cache last_updated must be a string")
        try:
            last_updated = datetime.fromisoformat(raw_ts)
        except ValueError as exc:
            raise SerializationError(f"status cache last_updated is invalid: {raw_ts!r}") from exc
        if last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        return cls(last_updated=last_updated, payload=PortfolioSnapshot.from_payload(payload["data"]))


def status_cache_path(root: Path) -> Path:
    return root / STATE_DIR_NAME / STATUS_CACHE_FILE


def is_fresh(last_updated: datetime, now: datetime, freshness: timedelta = DEFAULT_FRESHNESS) -> bool:
    """Fresh while ``now - last_updated < freshness``."""

    return now - last_updated < freshness


def load_status_cache(
    root: Path,
    *,
    now: datetime | None = None,
    freshness: timedelta = DEFAULT_FRESHNESS,
    logger: logging.Logger | None = None,
) -> PortfolioSnapshot | None:
    """Return the cached snapshot if it is still fresh.

    A missing file or a stale entry returns ``None``; a malformed file raises
    ``SerializationError`` instead of being treated as a cache miss.
    """

    effective_logger = logger or LOGGER
    path = status_cache_path(root)
    if not path.exists():
        effective_logger.debug("cache.miss reason=missing path=%s", path)
        return None

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(path, exc) from exc
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Malformed status cache {path}: {exc}") from exc

    cached = CachedSnapshot.from_payload(decoded)
    current = now or now_utc()
    if not is_fresh(cached.last_updated, current, freshness):
        effective_logger.debug(
            "cache.miss reason=stale path=%s last_updated=%s", path, format_timestamp(cached.last_updated)
        )
        return None

    effective_logger.debug("cache.hit path=%s last_updated=%s", path, format_timestamp(cached.last_updated))
    return cached.payload


def save_status_cache(
    root: Path,
    snapshot: PortfolioSnapshot,
    *,
    last_updated: datetime | None = None,
    logger: logging.Logger | None = None,
) -> Path:
    """Write the snapshot to the cache file, replacing any previous entry."""

    effective_logger = logger or LOGGER
    path = status_cache_path(root)
    cached = CachedSnapshot(last_updated=last_updated or now_utc(), payload=snapshot)
    try:
        write_json_atomically(cached.to_payload(), path)
    except OSError as exc:
        raise FilesystemError(path, exc) from exc
    effective_logger.debug("cache.saved path=%s projects=%s", path, len(snapshot.projects))
    return path
