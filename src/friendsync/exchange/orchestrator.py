"""Subscription change exchange between peers.

This module provides:
- PeerHost: interface to the hosting file-sharing application
- PeerSession: per-connection exchange state
- ChangeExchange: reacts to host events, answers queries and applies replies

Flow:
    peer connected ─► request share list ─► share list received
        ─► one ChangesQuery per subscription of that peer
    remote: ChangesQuery ─► scan ─► ChangesReply
    local:  ChangesReply ─► download + hash request per file ─► advance watermark

Handlers are expected to run on the host's own task queue. They never
raise: every failure is logged and limited to the subscription or file it
concerns. Nothing waits for replies, so a peer that never answers just
leaves the watermark where it was until the next connection.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from friendsync.core.types import PeerState, Subscription
from friendsync.exchange.codec import (
    ChangesQuery,
    ChangesReply,
    DecodeError,
    decode_message,
    encode_message,
)
from friendsync.exchange.registry import NOT_FOUND, ShareIndexRegistry, TranslationError
from friendsync.exchange.scanner import ScanTargetMissingError, scan
from friendsync.store.base import PersistenceError, StoreError, SubscriptionNotFoundError

if TYPE_CHECKING:
    from friendsync.store.base import WatermarkStore

logger = logging.getLogger(__name__)


class PeerHost(ABC):
    """Services of the hosting application used by the exchange."""

    @abstractmethod
    def request_share_list(self, peer_id: int) -> None:
        """Ask a peer for its ordered share-base names.

        The answer arrives later through ChangeExchange.on_share_list().

        Raises:
            OSError: If the request cannot be sent.
        """

    @abstractmethod
    def send(self, peer_id: int, data: str) -> None:
        """Send an opaque message on the peer's connection.

        Raises:
            OSError: If the message cannot be sent.
        """

    @abstractmethod
    def resolve_share_path(self, share_index: int) -> Path | None:
        """Get the local path of one of our share-bases, or None if stale."""

    @abstractmethod
    def schedule_download(self, peer_id: int, destination: str, remote_path: str) -> None:
        """Queue a download of a remote file into a local directory."""

    @abstractmethod
    def request_hashes(self, peer_id: int, share_index: int, remote_path: str) -> None:
        """Ask the peer for the content hashes of a remote path.

        Raises:
            OSError: If the request cannot be sent.
        """


@dataclass
class PeerSession:
    """Exchange state for one connected peer."""

    peer_id: int
    state: PeerState = PeerState.UNKNOWN


def remote_file_path(sub_path: str, file: str) -> str:
    """Build the remote path of a file reported relative to a sub-path.

    A sub-path naming a single file is reported as "", in which case the
    sub-path itself is the remote path.
    """
    if not file:
        return sub_path
    if not sub_path or sub_path.endswith("/"):
        return f"{sub_path}{file}"
    return f"{sub_path}/{file}"


def resolve_under(base: Path, sub_path: str) -> Path | None:
    """Join a requested sub-path under a share root.

    Returns:
        The joined path, or None if it would escape the share root or
        cannot name a file at all.
    """
    if "\x00" in sub_path:
        return None
    parts = PurePosixPath(sub_path.replace("\\", "/")).parts
    if any(part == ".." for part in parts) or (parts and parts[0] == "/"):
        return None
    return base.joinpath(*parts) if parts else base


class ChangeExchange:
    """Drives the subscription change exchange for all connected peers.

    Usage:
        exchange = ChangeExchange(store, host)

        # wired to host callbacks
        exchange.on_peer_connected(peer_id)
        exchange.on_share_list(peer_id, names)
        exchange.on_message(peer_id, data)
        exchange.on_peer_disconnected(peer_id)
    """

    def __init__(
        self,
        store: WatermarkStore,
        host: PeerHost,
        registry: ShareIndexRegistry | None = None,
    ) -> None:
        """Initialize the exchange.

        Args:
            store: Watermark store holding the subscriptions.
            host: Services of the hosting application.
            registry: Share-index registry (a fresh one by default).
        """
        self._store = store
        self._host = host
        self._registry = registry if registry is not None else ShareIndexRegistry()
        self._sessions: dict[int, PeerSession] = {}
        self._lock = threading.Lock()

    @property
    def registry(self) -> ShareIndexRegistry:
        """Get the share-index registry."""
        return self._registry

    def session(self, peer_id: int) -> PeerSession:
        """Get (or create) the session of a peer."""
        with self._lock:
            session = self._sessions.get(peer_id)
            if session is None:
                session = PeerSession(peer_id)
                self._sessions[peer_id] = session
            return session

    def peer_state(self, peer_id: int) -> PeerState:
        """Get the exchange state of a peer (UNKNOWN if never seen)."""
        with self._lock:
            session = self._sessions.get(peer_id)
            return session.state if session else PeerState.UNKNOWN

    # === Connection events ===

    def on_peer_connected(self, peer_id: int) -> None:
        """Request the peer's share list unless already requested or known."""
        with self._lock:
            session = self._sessions.setdefault(peer_id, PeerSession(peer_id))
            if session.state is not PeerState.UNKNOWN:
                return
            session.state = PeerState.SHARES_REQUESTED

        logger.info("Peer %s connected, requesting share list", peer_id)
        try:
            self._host.request_share_list(peer_id)
        except OSError as e:
            logger.warning(
                "Could not request share list from peer %s, no subscription checks for now: %s",
                peer_id, e,
            )
            with self._lock:
                session.state = PeerState.UNKNOWN

    def on_peer_disconnected(self, peer_id: int) -> None:
        """Forget the session and share list of a peer."""
        with self._lock:
            self._sessions.pop(peer_id, None)
        self._registry.forget(peer_id)
        logger.debug("Peer %s disconnected, session dropped", peer_id)

    def on_share_list(self, peer_id: int, names: Sequence[str]) -> int:
        """Record a peer's share list and query all its subscriptions.

        Args:
            peer_id: Identifier of the peer.
            names: Ordered share-base names exported by the peer.

        Returns:
            Number of queries sent.
        """
        self._registry.record(peer_id, names)
        with self._lock:
            self._sessions.setdefault(peer_id, PeerSession(peer_id)).state = PeerState.SHARES_KNOWN
        logger.info("Received share list from peer %s: %s", peer_id, list(names))

        try:
            subscriptions = self._store.list_for_peer(peer_id)
        except StoreError as e:
            logger.error("Failed to read subscriptions for peer %s: %s", peer_id, e)
            return 0

        sent = 0
        for subscription in subscriptions:
            if self.query_subscription(subscription):
                sent += 1
        return sent

    def query_subscription(self, subscription: Subscription) -> bool:
        """Send a query for one subscription.

        Returns:
            True if the query was sent.
        """
        share_index = self._registry.index_of(subscription.peer_id, subscription.share_base)
        if share_index == NOT_FOUND:
            error = TranslationError(
                f"Share-base '{subscription.share_base}' is no longer exported "
                f"by peer {subscription.peer_id}"
            )
            logger.warning("Skipping subscription %s: %s", subscription, error)
            return False

        try:
            self.send_query(
                subscription.peer_id,
                share_index,
                subscription.sub_path,
                subscription.watermark,
            )
        except OSError as e:
            logger.warning("Failed to send change query for %s: %s", subscription, e)
            return False
        return True

    def send_query(self, peer_id: int, share_index: int, sub_path: str, since: int) -> None:
        """Send a change query to a peer.

        Raises:
            OSError: If the message cannot be sent.
        """
        query = ChangesQuery(share_index=share_index, sub_path=sub_path, since_timestamp=since)
        logger.info(
            "Sending change query to peer %s: share %s, sub-path '%s', since %s",
            peer_id, share_index, sub_path, since,
        )
        self._host.send(peer_id, encode_message(query))

    # === Incoming messages ===

    def on_message(self, peer_id: int, data: str) -> None:
        """Dispatch a message received from a peer.

        Messages of other plug-ins or unsupported versions are ignored;
        malformed messages are dropped with a warning.
        """
        try:
            message = decode_message(data)
        except DecodeError as e:
            logger.warning("Dropping message from peer %s: %s", peer_id, e)
            return

        if isinstance(message, ChangesQuery):
            self.handle_query(peer_id, message)
        elif isinstance(message, ChangesReply):
            self.handle_reply(peer_id, message)

    def handle_query(self, peer_id: int, query: ChangesQuery) -> ChangesReply | None:
        """Scan the requested folder and reply with the changed files.

        Returns:
            The reply sent, or None if no reply could be produced.
        """
        share_root = self._host.resolve_share_path(query.share_index)
        if share_root is None:
            logger.warning(
                "Query from peer %s: %s",
                peer_id, TranslationError(f"no local share-base with index {query.share_index}"),
            )
            return None

        target = resolve_under(Path(share_root), query.sub_path)
        if target is None:
            logger.warning(
                "Query from peer %s: sub-path %r is not a valid path under share-base %s, ignoring",
                peer_id, query.sub_path, query.share_index,
            )
            return None

        try:
            result = scan(target, query.since_timestamp)
        except ScanTargetMissingError as e:
            logger.warning("Query from peer %s: %s", peer_id, e)
            return None

        changed = result.changed
        if target.is_file():
            # Relative to a single-file sub-path the file is the sub-path itself
            changed = ["" for _ in changed]

        reply = ChangesReply(
            share_index=query.share_index,
            sub_path=query.sub_path,
            new_watermark=max(query.since_timestamp, result.max_modified),
            changed_files=changed,
        )
        try:
            data = encode_message(reply)
        except ValueError as e:
            logger.warning("Cannot encode change reply for peer %s: %s", peer_id, e)
            return None

        logger.info(
            "Replying to peer %s: %d changed file(s) under %r, watermark %s",
            peer_id, len(reply.changed_files), reply.sub_path, reply.new_watermark,
        )
        try:
            self._host.send(peer_id, data)
        except OSError as e:
            logger.warning("Failed to send change reply to peer %s: %s", peer_id, e)
            return None
        return reply

    def handle_reply(self, peer_id: int, reply: ChangesReply) -> int:
        """Schedule downloads for changed files and advance the watermark.

        Returns:
            Number of files scheduled for download.
        """
        share_base = self._registry.name_at(peer_id, reply.share_index)
        if share_base is None:
            logger.warning(
                "Reply from peer %s: %s",
                peer_id,
                TranslationError(
                    f"share index {reply.share_index} is not in the share list "
                    f"{self._registry.names_for(peer_id)}"
                ),
            )
            return 0

        try:
            subscription = self._store.find(peer_id, share_base, reply.sub_path)
        except StoreError as e:
            logger.warning(
                "Reply from peer %s: cannot read subscription for share '%s' sub-path '%s': %s",
                peer_id, share_base, reply.sub_path, e,
            )
            return 0

        if subscription is None:
            for file in reply.changed_files:
                logger.warning(
                    "Reply from peer %s: no subscription for share '%s' sub-path '%s', skipping %s",
                    peer_id, share_base, reply.sub_path, file,
                )
            return 0

        scheduled = 0
        for file in reply.changed_files:
            remote_path = remote_file_path(reply.sub_path, file)
            if self._request_file(subscription, reply.share_index, remote_path):
                scheduled += 1

        try:
            self._store.advance_watermark(
                peer_id, share_base, reply.sub_path, reply.new_watermark,
            )
        except (SubscriptionNotFoundError, PersistenceError) as e:
            logger.warning("Could not advance watermark for %s: %s", subscription, e)
        else:
            logger.info(
                "Advanced watermark for peer %s share '%s' sub-path '%s' to %s",
                peer_id, share_base, reply.sub_path, reply.new_watermark,
            )
        return scheduled

    def _request_file(self, subscription: Subscription, share_index: int, remote_path: str) -> bool:
        """Schedule a download and a hash request for one remote file.

        Returns:
            True if the download was scheduled.
        """
        peer_id = subscription.peer_id
        try:
            self._host.schedule_download(peer_id, subscription.local_destination, remote_path)
        except Exception as e:
            logger.warning("Failed to schedule download of %s from peer %s: %s", remote_path, peer_id, e)
            return False

        logger.debug("Scheduled download of %s into %s", remote_path, subscription.local_destination)
        try:
            self._host.request_hashes(peer_id, share_index, remote_path)
        except OSError as e:
            logger.warning("Failed to request hashes of %s from peer %s: %s", remote_path, peer_id, e)
        return True
