"""Persistence for project metadata and the status cache."""

from skm.meta.cache import (
    DEFAULT_FRESHNESS,
    CachedSnapshot,
    is_fresh,
    load_status_cache,
    save_status_cache,
    status_cache_path,
)
from skm.meta.store import (
    ProjectMeta,
    ProjectMetaStore,
    load_meta_store,
    meta_store_path,
    save_meta_store,
)

__all__ = [
    "DEFAULT_FRESHNESS",
    "CachedSnapshot",
    "is_fresh",
    "load_status_cache",
    "save_status_cache",
    "status_cache_path",
    "ProjectMeta",
    "ProjectMetaStore",
    "load_meta_store",
    "meta_store_path",
    "save_meta_store",
]
