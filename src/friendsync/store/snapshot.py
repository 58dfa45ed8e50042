"""Snapshot-file watermark store.

The whole subscription list is kept in memory, loaded from a JSON file at
startup and rewritten in full on save() and close(). Updates made after
the last save are lost if the process dies before closing the store.

Remove the file to erase all subscriptions; it is recreated empty.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Any

from friendsync.core.types import Subscription
from friendsync.store.base import (
    DuplicateKeyError,
    PersistenceError,
    SubscriptionNotFoundError,
    WatermarkStore,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def _from_dict(data: dict[str, Any]) -> Subscription:
    """Create Subscription from a snapshot entry."""
    return Subscription(
        peer_id=int(data["peer_id"]),
        share_base=str(data["share_base"]),
        sub_path=str(data["sub_path"]),
        local_destination=str(data["local_destination"]),
        watermark=int(data["watermark"]),
    )


class SnapshotWatermarkStore(WatermarkStore):
    """Whole-snapshot file backend for friend subscriptions."""

    def __init__(self, path: Path) -> None:
        """Load the snapshot if it exists.

        Args:
            path: Path to the JSON snapshot file.

        Raises:
            PersistenceError: If an existing snapshot cannot be read.
        """
        self._path = Path(path)
        self._lock = threading.RLock()
        self._closed = False
        self._subscriptions: list[Subscription] = []

        if self._path.exists():
            self._subscriptions = self._load()
            logger.debug("Loaded %d subscription(s) from %s", len(self._subscriptions), self._path)

    @property
    def location(self) -> str:
        """Return the snapshot file path."""
        return f"Snapshot file: {self._path}"

    def _load(self) -> list[Subscription]:
        """Read the full subscription list from disk."""
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not load subscriptions from {self._path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("subscriptions"), list):
            raise PersistenceError(f"Malformed subscription snapshot: {self._path}")

        try:
            return [_from_dict(entry) for entry in data["subscriptions"]]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed subscription entry in {self._path}: {e}") from e

    def save(self) -> None:
        """Rewrite the snapshot file with the current state.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        with self._lock:
            data = {
                "version": SNAPSHOT_VERSION,
                "subscriptions": [asdict(sub) for sub in self._subscriptions],
            }
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
                os.replace(tmp_path, self._path)
            except OSError as e:
                raise PersistenceError(f"Could not save subscriptions to {self._path}: {e}") from e
        logger.debug("Saved %d subscription(s) to %s", len(data["subscriptions"]), self._path)

    def _check_open(self) -> None:
        if self._closed:
            raise PersistenceError("Subscription snapshot is closed")

    def _index_of(self, peer_id: int, share_base: str, sub_path: str) -> int:
        """Position of the first record with this key, or -1."""
        for i, sub in enumerate(self._subscriptions):
            if sub.peer_id == peer_id and sub.share_base == share_base and sub.sub_path == sub_path:
                return i
        return -1

    def create(self, subscription: Subscription) -> None:
        """Add a new subscription."""
        with self._lock:
            self._check_open()
            if self._index_of(*subscription.key) >= 0:
                raise DuplicateKeyError(f"Subscription already exists: {subscription}")
            self._subscriptions.append(subscription)
        logger.info("Created subscription: %s", subscription)

    def list_all(self) -> list[Subscription]:
        """List all subscriptions ordered by key."""
        with self._lock:
            self._check_open()
            return sorted(self._subscriptions, key=lambda sub: sub.key)

    def list_for_peer(self, peer_id: int) -> list[Subscription]:
        """List subscriptions of one peer."""
        with self._lock:
            self._check_open()
            return sorted(
                (sub for sub in self._subscriptions if sub.peer_id == peer_id),
                key=lambda sub: sub.key,
            )

    def find(self, peer_id: int, share_base: str, sub_path: str) -> Subscription | None:
        """Find a subscription by key."""
        with self._lock:
            self._check_open()
            matches = [
                sub for sub in self._subscriptions
                if sub.key == (peer_id, share_base, sub_path)
            ]
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                "Multiple subscriptions for peer %s, share '%s', sub-path '%s'; using the first",
                peer_id, share_base, sub_path,
            )
        return matches[0]

    def advance_watermark(
        self,
        peer_id: int,
        share_base: str,
        sub_path: str,
        timestamp: int,
    ) -> None:
        """Replace the record with a copy carrying the new watermark."""
        with self._lock:
            self._check_open()
            index = self._index_of(peer_id, share_base, sub_path)
            if index < 0:
                raise SubscriptionNotFoundError(
                    f"No subscription for peer {peer_id}, share '{share_base}', sub-path '{sub_path}'"
                )
            self._subscriptions[index] = self._subscriptions[index].with_watermark(timestamp)
        logger.debug(
            "Advanced watermark for peer %s, share '%s', sub-path '%s' to %s",
            peer_id, share_base, sub_path, timestamp,
        )

    def remove(self, peer_id: int, share_base: str, sub_path: str) -> None:
        """Delete every record with this key."""
        with self._lock:
            self._check_open()
            remaining = [
                sub for sub in self._subscriptions
                if sub.key != (peer_id, share_base, sub_path)
            ]
            if len(remaining) == len(self._subscriptions):
                raise SubscriptionNotFoundError(
                    f"No subscription for peer {peer_id}, share '{share_base}', sub-path '{sub_path}'"
                )
            self._subscriptions = remaining
        logger.info(
            "Removed subscription for peer %s, share '%s', sub-path '%s'",
            peer_id, share_base, sub_path,
        )

    def close(self) -> None:
        """Save the snapshot and refuse further use."""
        with self._lock:
            if self._closed:
                return
            self.save()
            self._closed = True
