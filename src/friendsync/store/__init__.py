"""Watermark store package.

Provides the WatermarkStore interface, its two backends and helpers to
open or reset the store selected by a StoreConfig.
"""

from __future__ import annotations

import logging
from pathlib import Path

from friendsync.core.config import BACKEND_SNAPSHOT, StoreConfig
from friendsync.store.base import (
    DuplicateKeyError,
    PersistenceError,
    StoreError,
    SubscriptionNotFoundError,
    WatermarkStore,
)
from friendsync.store.snapshot import SnapshotWatermarkStore
from friendsync.store.sqlite import SQLiteWatermarkStore

logger = logging.getLogger(__name__)

# SQLite side files removed together with the database
_SQLITE_SUFFIXES = ("-wal", "-shm", "-journal")


def open_store(config: StoreConfig) -> WatermarkStore:
    """Open the watermark store selected by the configuration.

    A missing store is created empty.

    Args:
        config: Store configuration.

    Returns:
        An open WatermarkStore.

    Raises:
        PersistenceError: If the existing store cannot be read.
    """
    if config.backend == BACKEND_SNAPSHOT:
        store: WatermarkStore = SnapshotWatermarkStore(config.path)
    else:
        store = SQLiteWatermarkStore(config.path)
    logger.debug("Opened %s", store.location)
    return store


def reset_store(config: StoreConfig) -> list[Path]:
    """Remove the on-disk store so the next open starts empty.

    Args:
        config: Store configuration.

    Returns:
        Paths that were deleted.

    Raises:
        PersistenceError: If a file cannot be deleted.
    """
    candidates = [config.path]
    if config.is_snapshot:
        candidates.append(config.path.with_name(config.path.name + ".tmp"))
    else:
        candidates.extend(
            config.path.with_name(config.path.name + suffix) for suffix in _SQLITE_SUFFIXES
        )

    removed: list[Path] = []
    for path in candidates:
        if not path.exists():
            continue
        try:
            path.unlink()
        except OSError as e:
            raise PersistenceError(f"Could not remove {path}: {e}") from e
        removed.append(path)

    logger.info("Reset subscription store at %s", config.path)
    return removed


__all__ = [
    "DuplicateKeyError",
    "PersistenceError",
    "SQLiteWatermarkStore",
    "SnapshotWatermarkStore",
    "StoreError",
    "SubscriptionNotFoundError",
    "WatermarkStore",
    "open_store",
    "reset_store",
]
