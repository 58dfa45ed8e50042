"""Per-peer share-base index registry.

Share-bases are only ever identified on the wire by their position in the
list a peer reported for the current connection, so full local paths never
leave the machine.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

NOT_FOUND = -1


class TranslationError(Exception):
    """Raised when a share name or index cannot be resolved for a peer.

    Usually the peer's share set changed since the subscription was
    created or since the query was sent.
    """


class ShareIndexRegistry:
    """Thread-safe mapping of peer id to its ordered share-base names.

    Snapshots are immutable tuples replaced wholesale, so readers never
    observe a partially updated list.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._shares: dict[int, tuple[str, ...]] = {}

    def record(self, peer_id: int, names: Iterable[str]) -> None:
        """Replace the share list of a peer."""
        snapshot = tuple(names)
        with self._lock:
            self._shares[peer_id] = snapshot

    def forget(self, peer_id: int) -> None:
        """Drop the share list of a peer (connection closed)."""
        with self._lock:
            self._shares.pop(peer_id, None)

    def names_for(self, peer_id: int) -> tuple[str, ...] | None:
        """Get the current share list of a peer, or None if unknown."""
        with self._lock:
            return self._shares.get(peer_id)

    def index_of(self, peer_id: int, share_base: str) -> int:
        """Get the index of a share-base for a peer.

        Returns:
            Position of the share-base, or -1 if the peer is unknown or
            no longer exports a share with that name.
        """
        names = self.names_for(peer_id)
        if names is None:
            return NOT_FOUND
        try:
            return names.index(share_base)
        except ValueError:
            return NOT_FOUND

    def name_at(self, peer_id: int, index: int) -> str | None:
        """Get the share-base name at an index for a peer.

        Returns:
            The name, or None if the peer is unknown or the index is out
            of range (the share list may have shrunk since the query).
        """
        names = self.names_for(peer_id)
        if names is None or not 0 <= index < len(names):
            return None
        return names[index]

    def __contains__(self, peer_id: object) -> bool:
        with self._lock:
            return peer_id in self._shares
