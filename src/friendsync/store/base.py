"""Watermark store abstraction for friend subscriptions.

This module provides:
- Abstract interface for subscription persistence
- Exceptions shared by all backends

Backends:
- SQLiteWatermarkStore: transactional table, survives restarts and can be
  inspected by external tools while the host runs
- SnapshotWatermarkStore: whole-state JSON snapshot loaded at startup and
  rewritten on close
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType

    from friendsync.core.types import Subscription


class StoreError(Exception):
    """Base exception for watermark store errors."""


class DuplicateKeyError(StoreError):
    """Raised when creating a subscription whose key already exists."""


class SubscriptionNotFoundError(StoreError):
    """Raised when updating or removing a subscription that doesn't exist."""


class PersistenceError(StoreError):
    """Raised when the backend fails to read or write its data."""


class WatermarkStore(ABC):
    """Abstract interface for subscription watermark storage.

    Implementations must serialize read-modify-write sequences so that
    at most one record exists per key and watermark advances are atomic.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of where data is stored."""

    @abstractmethod
    def create(self, subscription: Subscription) -> None:
        """Persist a new subscription.

        Args:
            subscription: Subscription to store.

        Raises:
            DuplicateKeyError: If a subscription with the same key exists.
            PersistenceError: On backend failure.
        """

    @abstractmethod
    def list_all(self) -> list[Subscription]:
        """List all subscriptions.

        Returns:
            All stored subscriptions.
        """

    @abstractmethod
    def list_for_peer(self, peer_id: int) -> list[Subscription]:
        """List the subscriptions of one peer.

        Args:
            peer_id: Identifier of the remote peer.

        Returns:
            Subscriptions for that peer.
        """

    @abstractmethod
    def find(self, peer_id: int, share_base: str, sub_path: str) -> Subscription | None:
        """Find a subscription by key.

        If legacy data contains several records for the key, the first
        one is returned and a warning is logged.

        Returns:
            Subscription if found, None otherwise.
        """

    @abstractmethod
    def advance_watermark(
        self,
        peer_id: int,
        share_base: str,
        sub_path: str,
        timestamp: int,
    ) -> None:
        """Replace the watermark of a subscription.

        Args:
            peer_id: Identifier of the remote peer.
            share_base: Remote share-base name.
            sub_path: Path below the share-base.
            timestamp: New watermark in milliseconds.

        Raises:
            SubscriptionNotFoundError: If no subscription matches the key.
            PersistenceError: On backend failure.
        """

    @abstractmethod
    def remove(self, peer_id: int, share_base: str, sub_path: str) -> None:
        """Delete a subscription.

        Raises:
            SubscriptionNotFoundError: If no subscription matches the key.
            PersistenceError: On backend failure.
        """

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources. Calling it twice is a no-op."""

    def __enter__(self) -> WatermarkStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
