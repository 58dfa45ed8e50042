"""Tests for open_store() and reset_store()."""

from __future__ import annotations

from pathlib import Path

from friendsync.core.config import StoreConfig
from friendsync.core.types import Subscription
from friendsync.store import (
    SnapshotWatermarkStore,
    SQLiteWatermarkStore,
    open_store,
    reset_store,
)


class TestOpenStore:
    """Tests for backend selection."""

    def test_sqlite_backend(self, tmp_path: Path) -> None:
        store = open_store(StoreConfig(path=tmp_path / "s.db", backend="sqlite"))
        assert isinstance(store, SQLiteWatermarkStore)
        store.close()

    def test_snapshot_backend(self, tmp_path: Path) -> None:
        store = open_store(StoreConfig(path=tmp_path / "s.json", backend="snapshot"))
        assert isinstance(store, SnapshotWatermarkStore)
        store.close()


class TestResetStore:
    """Tests for removing the whole store."""

    def test_reset_sqlite_removes_database_and_side_files(self, tmp_path: Path) -> None:
        config = StoreConfig(path=tmp_path / "s.db", backend="sqlite")
        with open_store(config) as store:
            store.create(Subscription(1, "a", "b/", "/dest", 0))

        removed = reset_store(config)

        assert config.path in removed
        assert not any(p.name.startswith("s.db") for p in tmp_path.iterdir())
        with open_store(config) as store:
            assert store.list_all() == []

    def test_reset_snapshot(self, tmp_path: Path) -> None:
        config = StoreConfig(path=tmp_path / "s.json", backend="snapshot")
        with open_store(config) as store:
            store.create(Subscription(1, "a", "b/", "/dest", 0))

        assert reset_store(config) == [config.path]
        with open_store(config) as store:
            assert store.list_all() == []

    def test_reset_missing_store_is_noop(self, tmp_path: Path) -> None:
        config = StoreConfig(path=tmp_path / "absent.db")
        assert reset_store(config) == []
