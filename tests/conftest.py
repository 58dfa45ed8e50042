"""Shared pytest fixtures for friendsync tests."""

from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from friendsync.store import SnapshotWatermarkStore, SQLiteWatermarkStore, WatermarkStore


def _set_mtime(path: Path, mtime_ms: int) -> None:
    """Set a path's access and modification time in milliseconds."""
    ns = mtime_ms * 1_000_000
    os.utime(path, ns=(ns, ns))


@pytest.fixture
def set_mtime() -> Callable[[Path, int], None]:
    """Set the modification time (ms) of an existing file or directory."""
    return _set_mtime


@pytest.fixture
def touch() -> Callable[..., Path]:
    """Create a file with content and a given modification time (ms)."""

    def _touch(path: Path, mtime_ms: int, content: str = "data") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        _set_mtime(path, mtime_ms)
        return path

    return _touch


@pytest.fixture(params=["sqlite", "snapshot"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Generator[WatermarkStore, None, None]:
    """An empty watermark store, once per backend."""
    s: WatermarkStore
    if request.param == "sqlite":
        s = SQLiteWatermarkStore(tmp_path / "subscriptions.db")
    else:
        s = SnapshotWatermarkStore(tmp_path / "subscriptions.json")
    yield s
    s.close()
